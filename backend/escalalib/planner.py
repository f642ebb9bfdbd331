"""
Schedule planner: lazy generation, regeneration and manual edits of stored
weekly and monthly schedules.

Every operation that reads and then writes the rotation cursor runs inside
:func:`generation_lock`. A period is committed as a unit: the schedule is
stored first and the cursor advanced second; if the cursor write fails the
schedule write is rolled back before the error propagates.
"""
import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple, Union

from .database import EscalaDatabase
from .exceptions import NotFoundError, PeriodOverlapError, ScheduleExistsError
from .generator import DEFAULT_MIN_POOL_SIZE, generate_period, period_bounds, weekend_pool
from .legacy import apply_legacy_fields, replace_assignments
from .models import Assignment, Employee, PeriodSchedule
from .rotation import RotationCursor, generation_lock, starting_index

_logger = logging.getLogger(__name__)

PERIOD_KINDS = ('weekly', 'monthly')


def parse_period_start(kind: str, value: Union[str, date]) -> date:
    """Normalise a period tag: weekly keeps the given day, monthly snaps to day 1.

    Monthly tags may be given as ``YYYY-MM`` or any ``YYYY-MM-DD`` in the month.
    """
    if kind not in PERIOD_KINDS:
        raise ValueError(f"Unknown period kind '{kind}'")
    if isinstance(value, date):
        day = value
    else:
        text = (value or '').strip()
        fmt = '%Y-%m' if kind == 'monthly' and len(text) == 7 else '%Y-%m-%d'
        try:
            day = datetime.strptime(text, fmt).date()
        except ValueError:
            raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD") from None
    return period_bounds(kind, day)[0]


class SchedulePlanner:
    def __init__(self, db: EscalaDatabase, min_pool_size: int = DEFAULT_MIN_POOL_SIZE):
        self.db = db
        self.min_pool_size = min_pool_size
        self.cursor = RotationCursor(db)

    def get_or_generate(self, kind: str, start: Union[str, date]) -> Tuple[PeriodSchedule, bool]:
        """Stored schedule for the period, generating it on first request.

        Returns ``(schedule, created)``. A stored period is returned as is and
        the cursor is left untouched.
        """
        start_day, end_day = period_bounds(kind, parse_period_start(kind, start))
        existing = self.db.find_period(kind, start_day.isoformat())
        if existing is not None:
            return existing, False
        with generation_lock(self.db.data_dir):
            # Another request may have generated it while we waited
            existing = self.db.find_period(kind, start_day.isoformat())
            if existing is not None:
                return existing, False
            self._check_overlap(kind, start_day, end_day)
            return self._generate_locked(kind, start_day, end_day, previous=None), True

    def generate(self, kind: str, start: Union[str, date], force: bool = False) -> PeriodSchedule:
        """Explicit generation. ``force`` replaces a stored period, keeping its id."""
        start_day, end_day = period_bounds(kind, parse_period_start(kind, start))
        with generation_lock(self.db.data_dir):
            existing = self.db.find_period(kind, start_day.isoformat())
            if existing is not None and not force:
                raise ScheduleExistsError(kind, existing.start, existing.id)
            if existing is None:
                self._check_overlap(kind, start_day, end_day)
            return self._generate_locked(kind, start_day, end_day, previous=existing)

    def _check_overlap(self, kind: str, start: date, end: date) -> None:
        """Weekly tags are free-form dates, so two stored weeks must not share a day."""
        for other in self.db.get_periods(kind):
            if other.start <= end.isoformat() and other.end >= start.isoformat():
                raise PeriodOverlapError(kind, start.isoformat(), other)

    def _generate_locked(
        self, kind: str, start: date, end: date, previous: Optional[PeriodSchedule],
    ) -> PeriodSchedule:
        result = generate_period(
            kind, start, end,
            employees=self.db.get_employees(),
            holidays=self.db.get_holidays(),
            rotation=self.cursor.read(),
            min_pool_size=self.min_pool_size,
        )
        schedule = result.schedule.model_copy(update={
            'entries': [apply_legacy_fields(e) for e in result.schedule.entries],
            'id': previous.id if previous is not None else None,
        })

        stored = self.db.save_period(schedule)
        try:
            self.cursor.advance(
                saturday_id=result.last_saturday_id,
                sunday_id=result.last_sunday_id,
                cycle_completed=result.rotation_active,
            )
        except Exception:
            _logger.error("Cursor update failed, rolling back %s schedule %s", kind, stored.start)
            if previous is not None:
                self.db.save_period(previous)
            else:
                self.db.delete_period(kind, stored.id)
            raise
        return stored

    def update_entry(
        self, kind: str, schedule_id: int, day: str, assignments: List[Union[Assignment, dict]],
    ) -> PeriodSchedule:
        """Replace one date's assignments in a stored schedule. The cursor is not touched."""
        parsed = [a if isinstance(a, Assignment) else Assignment.model_validate(a) for a in assignments]
        with generation_lock(self.db.data_dir):
            schedule = self.db.get_period(kind, schedule_id)
            if schedule is None:
                raise NotFoundError(f"{kind.capitalize()} schedule {schedule_id} not found")
            for i, entry in enumerate(schedule.entries):
                if entry.date == day:
                    schedule.entries[i] = replace_assignments(entry, parsed)
                    break
            else:
                raise NotFoundError(f"No entry for {day} in schedule {schedule_id}")
            stored = self.db.save_period(schedule)
        _logger.info("Manual edit of %s schedule %s on %s", kind, schedule_id, day)
        return stored

    def preview_rotation(self) -> Dict[str, Optional[Employee]]:
        """Who the cursor puts on duty for the next Saturday and Sunday."""
        pool = weekend_pool(self.db.get_employees())
        if len(pool) < max(self.min_pool_size, 1):
            return {'saturday': None, 'sunday': None}
        state = self.cursor.read()
        return {
            'saturday': pool[starting_index(pool, state.last_saturday_employee_id)],
            'sunday': pool[starting_index(pool, state.last_sunday_employee_id)],
        }
