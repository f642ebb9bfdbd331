"""Rotation router: read-only view of the weekend on-call cursor."""
from fastapi import APIRouter

from ..dependencies import get_db, get_planner

router = APIRouter()


@router.get("/api/rotation-state", tags=["Rotation"], summary="Rotation cursor", description="Last Saturday/Sunday on-call holders and the number of completed rotation periods.")
def get_rotation_state():
    return get_db().get_rotation_state().to_json()


@router.get("/api/rotation-state/preview", tags=["Rotation"], summary="Next weekend on-call", description="Who the next generated Saturday and Sunday would put on duty. Null when rotation is suppressed.")
def preview_rotation():
    picks = get_planner().preview_rotation()
    return {day: (emp.to_json() if emp is not None else None) for day, emp in picks.items()}
