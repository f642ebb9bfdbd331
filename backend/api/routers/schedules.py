"""Schedules router: weekly and monthly schedules, manual edits and exports.

Both period kinds share the same handlers; the routes differ only in their
prefix and in the name of the period tag (``weekStart`` / ``monthStart``).
"""
from typing import Any, Dict, List, Literal

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import Response as _Response
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from escalalib.export import schedule_rows, to_csv, to_pdf, to_xlsx
from ..dependencies import get_db, get_planner, limiter, _to_http, _logger, GENERATE_RATE
from .events import broadcast

router = APIRouter()


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WeeklyGenerateBody(_Body):
    week_start: str
    force: bool = False


class MonthlyGenerateBody(_Body):
    month_start: str
    force: bool = False


class EntryUpdateBody(_Body):
    # Raw dicts; the planner validates them into Assignment records
    assignments: List[Dict[str, Any]] = Field(default_factory=list)


def _csv_response(content: str, filename: str) -> _Response:
    return _Response(
        content=content.encode("utf-8-sig"),  # BOM for Excel
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _xlsx_response(content: bytes, filename: str) -> _Response:
    return _Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _pdf_response(content: bytes, filename: str) -> _Response:
    return _Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Shared handlers ──────────────────────────────────────────

def _list(kind: str) -> list:
    return [s.to_json() for s in get_db().get_periods(kind)]


def _get_by_id(kind: str, schedule_id: int) -> dict:
    schedule = get_db().get_period(kind, schedule_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail=f"{kind.capitalize()} schedule {schedule_id} not found")
    return schedule.to_json()


def _lazy(kind: str, start: str) -> dict:
    try:
        schedule, created = get_planner().get_or_generate(kind, start)
    except Exception as e:
        raise _to_http(e, f'get_or_generate/{kind}/{start}')
    if created:
        broadcast("schedule_generated", {"kind": kind, "id": schedule.id, "start": schedule.start})
    return schedule.to_json()


def _generate(kind: str, start: str, force: bool) -> dict:
    try:
        schedule = get_planner().generate(kind, start, force=force)
    except Exception as e:
        raise _to_http(e, f'generate/{kind}/{start}')
    _logger.info("%s schedule %s generated via API (force=%s)", kind, schedule.start, force)
    broadcast("schedule_generated", {"kind": kind, "id": schedule.id, "start": schedule.start})
    return schedule.to_json()


def _update_entry(kind: str, schedule_id: int, day: str, body: EntryUpdateBody) -> dict:
    try:
        schedule = get_planner().update_entry(kind, schedule_id, day, body.assignments)
    except Exception as e:
        raise _to_http(e, f'update_entry/{kind}/{schedule_id}/{day}')
    broadcast("schedule_changed", {"kind": kind, "id": schedule_id, "date": day})
    return schedule.entry_for(day).to_json()


# ── Weekly ───────────────────────────────────────────────────

@router.get("/api/schedules", tags=["Schedules"], summary="List weekly schedules")
def list_weekly_schedules():
    return _list('weekly')


@router.get(
    "/api/schedules/week/{week_start}",
    tags=["Schedules"],
    summary="Weekly schedule (lazy)",
    description="Return the stored schedule for the 7 days from `week_start`, generating and storing it on first request.",
)
def get_week(week_start: str):
    return _lazy('weekly', week_start)


@router.post("/api/schedules/generate", tags=["Schedules"], summary="Generate weekly schedule", status_code=201)
@limiter.limit(GENERATE_RATE)
def generate_week(request: Request, body: WeeklyGenerateBody):
    return _generate('weekly', body.week_start, body.force)


@router.get("/api/schedules/{schedule_id}", tags=["Schedules"], summary="Get weekly schedule by ID")
def get_weekly_schedule(schedule_id: int):
    return _get_by_id('weekly', schedule_id)


@router.put("/api/schedules/{schedule_id}/entries/{day}", tags=["Schedules"], summary="Edit one day of a weekly schedule")
def update_weekly_entry(schedule_id: int, day: str, body: EntryUpdateBody):
    return _update_entry('weekly', schedule_id, day, body)


# ── Monthly ──────────────────────────────────────────────────

@router.get("/api/monthly-schedules", tags=["Schedules"], summary="List monthly schedules")
def list_monthly_schedules():
    return _list('monthly')


@router.get(
    "/api/monthly-schedules/month/{month_start}",
    tags=["Schedules"],
    summary="Monthly schedule (lazy)",
    description="`month_start` is `YYYY-MM` or any `YYYY-MM-DD` in the month.",
)
def get_month(month_start: str):
    return _lazy('monthly', month_start)


@router.post("/api/monthly-schedules/generate", tags=["Schedules"], summary="Generate monthly schedule", status_code=201)
@limiter.limit(GENERATE_RATE)
def generate_month(request: Request, body: MonthlyGenerateBody):
    return _generate('monthly', body.month_start, body.force)


@router.get("/api/monthly-schedules/{schedule_id}", tags=["Schedules"], summary="Get monthly schedule by ID")
def get_monthly_schedule(schedule_id: int):
    return _get_by_id('monthly', schedule_id)


@router.put("/api/monthly-schedules/{schedule_id}/entries/{day}", tags=["Schedules"], summary="Edit one day of a monthly schedule")
def update_monthly_entry(schedule_id: int, day: str, body: EntryUpdateBody):
    return _update_entry('monthly', schedule_id, day, body)


@router.get(
    "/api/monthly-schedules/{schedule_id}/export",
    tags=["Schedules"],
    summary="Export monthly schedule",
    description="Download a stored monthly schedule as CSV, XLSX or PDF, one row per day.",
)
def export_monthly_schedule(schedule_id: int, format: Literal['csv', 'xlsx', 'pdf'] = Query('csv')):
    db = get_db()
    schedule = db.get_period('monthly', schedule_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail=f"Monthly schedule {schedule_id} not found")
    rows = schedule_rows(schedule, db.get_employees(include_inactive=True))
    filename = f"escala_{schedule.start[:7]}.{format}"
    if format == 'xlsx':
        return _xlsx_response(to_xlsx(schedule, rows), filename)
    if format == 'pdf':
        return _pdf_response(to_pdf(schedule, rows), filename)
    return _csv_response(to_csv(rows), filename)
