"""
Period generator: entries for every date of a week or month, with the
Saturday and Sunday rotation indexes threaded through the period.
"""
import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, List, Optional, Sequence, Tuple

from .models import Employee, Holiday, PeriodSchedule, RotationState
from .resolver import resolve_day
from .rotation import starting_index

_logger = logging.getLogger(__name__)

DEFAULT_MIN_POOL_SIZE = 2


@dataclass
class GenerationResult:
    schedule: PeriodSchedule
    last_saturday_id: Optional[int]
    last_sunday_id: Optional[int]
    rotation_active: bool


def weekend_pool(employees: Sequence[Employee]) -> List[Employee]:
    """Active, rotation-eligible employees in stable id order."""
    return sorted(
        (e for e in employees if e.active and e.weekend_rotation),
        key=lambda e: e.id,
    )


def week_bounds(week_start: date) -> Tuple[date, date]:
    return week_start, week_start + timedelta(days=6)


def month_bounds(day: date) -> Tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def period_bounds(kind: str, day: date) -> Tuple[date, date]:
    if kind == 'weekly':
        return week_bounds(day)
    if kind == 'monthly':
        return month_bounds(day)
    raise ValueError(f"Unknown period kind '{kind}'")


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def generate_period(
    kind: str,
    start: date,
    end: date,
    employees: Sequence[Employee],
    holidays: Sequence[Holiday],
    rotation: RotationState,
    min_pool_size: int = DEFAULT_MIN_POOL_SIZE,
) -> GenerationResult:
    """Resolve every date in ``[start, end]``.

    Nothing is persisted here: the returned result names who served on the
    last Saturday and Sunday so the caller can advance the cursor once, after
    the whole period has been computed.
    """
    if end < start:
        raise ValueError(f"Period end {end} is before start {start}")

    active = sorted((e for e in employees if e.active), key=lambda e: e.id)
    holidays = [h for h in holidays if h.active]
    pool = weekend_pool(active)
    rotation_active = len(pool) >= max(min_pool_size, 1)

    sat_index = starting_index(pool, rotation.last_saturday_employee_id)
    sun_index = starting_index(pool, rotation.last_sunday_employee_id)
    last_saturday_id = None
    last_sunday_id = None

    entries = []
    for day in iter_dates(start, end):
        weekday = day.weekday()
        if rotation_active and weekday == 5:
            entry = resolve_day(day, active, holidays, pool, sat_index)
            last_saturday_id = entry.oncall_employee_id
            sat_index = (sat_index + 1) % len(pool)
        elif rotation_active and weekday == 6:
            entry = resolve_day(day, active, holidays, pool, sun_index)
            last_sunday_id = entry.oncall_employee_id
            sun_index = (sun_index + 1) % len(pool)
        else:
            entry = resolve_day(day, active, holidays, pool, None)
        entries.append(entry)

    schedule = PeriodSchedule(
        kind=kind,
        start=start.isoformat(),
        end=end.isoformat(),
        entries=entries,
    )
    _logger.info(
        "Generated %s schedule %s..%s: %d entries, pool=%d, rotation=%s",
        kind, schedule.start, schedule.end, len(entries), len(pool),
        'on' if rotation_active else 'off',
    )
    return GenerationResult(
        schedule=schedule,
        last_saturday_id=last_saturday_id,
        last_sunday_id=last_sunday_id,
        rotation_active=rotation_active,
    )
