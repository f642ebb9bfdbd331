"""Holidays router: recurring MM-DD holidays (national and Recife calendars)."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from escalalib.models import HolidayType
from ..dependencies import get_db, _to_http
from .events import broadcast

router = APIRouter()


class HolidayCreate(BaseModel):
    date: str
    name: str
    type: HolidayType = 'national'
    active: bool = True


class HolidayUpdate(BaseModel):
    date: Optional[str] = None
    name: Optional[str] = None
    type: Optional[HolidayType] = None
    active: Optional[bool] = None


@router.get("/api/holidays", tags=["Holidays"], summary="List holidays")
def get_holidays(include_inactive: bool = False):
    return [h.to_json() for h in get_db().get_holidays(include_inactive=include_inactive)]


@router.get("/api/holidays/upcoming", tags=["Holidays"], summary="Upcoming holidays", description="Active holidays from `today` (default: the current date) to the end of that year, soonest first.")
def get_upcoming_holidays(today: Optional[str] = Query(None, description="Reference date YYYY-MM-DD")):
    try:
        ref = date.fromisoformat(today) if today else date.today()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format, use YYYY-MM-DD")
    result = []
    for h in get_db().get_holidays():
        month, day = (int(p) for p in h.date.split('-'))
        try:
            occurs = date(ref.year, month, day)
        except ValueError:
            # 02-29 outside a leap year
            continue
        if occurs >= ref:
            result.append({**h.to_json(), 'fullDate': occurs.isoformat()})
    result.sort(key=lambda r: r['fullDate'])
    return result


@router.get("/api/holidays/{holiday_id}", tags=["Holidays"], summary="Get holiday by ID")
def get_holiday(holiday_id: int):
    h = get_db().get_holiday(holiday_id)
    if h is None:
        raise HTTPException(status_code=404, detail=f"Holiday {holiday_id} not found")
    return h.to_json()


@router.post("/api/holidays", tags=["Holidays"], summary="Create holiday", status_code=201)
def create_holiday(body: HolidayCreate):
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Field 'name' must not be empty")
    try:
        holiday = get_db().create_holiday(body.model_dump())
    except Exception as e:
        raise _to_http(e, 'create_holiday')
    broadcast("holiday_changed", {"id": holiday.id, "action": "created"})
    return holiday.to_json()


@router.put("/api/holidays/{holiday_id}", tags=["Holidays"], summary="Update holiday")
def update_holiday(holiday_id: int, body: HolidayUpdate):
    data = {k: v for k, v in body.model_dump().items() if v is not None}
    try:
        holiday = get_db().update_holiday(holiday_id, data)
    except Exception as e:
        raise _to_http(e, f'update_holiday/{holiday_id}')
    broadcast("holiday_changed", {"id": holiday_id, "action": "updated"})
    return holiday.to_json()


@router.delete("/api/holidays/{holiday_id}", tags=["Holidays"], summary="Deactivate holiday", status_code=204)
def delete_holiday(holiday_id: int):
    try:
        count = get_db().delete_holiday(holiday_id)
    except Exception as e:
        raise _to_http(e, f'delete_holiday/{holiday_id}')
    if count == 0:
        raise HTTPException(status_code=404, detail=f"Holiday {holiday_id} not found")
    broadcast("holiday_changed", {"id": holiday_id, "action": "deactivated"})
