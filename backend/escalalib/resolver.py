"""
Assignment resolver: the schedule entry for a single calendar date.

``resolve_day`` is a pure function of its arguments. It never reads or
writes the rotation cursor; the period generator hands it the pool index for
the weekend slot being resolved.
"""
from datetime import date
from typing import List, Optional, Sequence

from .models import (
    WEEKEND, Assignment, Employee, Holiday, ScheduleEntry, month_day, weekday_tag,
)

# Fixed on-call window, independent of the employee's own shift
ONCALL_START = "08:00"
ONCALL_END = "17:00"


def find_holiday(day: date, holidays: Sequence[Holiday]) -> Optional[Holiday]:
    """First active holiday recurring on this date's MM-DD."""
    md = month_day(day)
    return next((h for h in holidays if h.active and h.date == md), None)


def working_employees(employees: Sequence[Employee], tag: str) -> List[Employee]:
    return [e for e in employees if e.active and e.works_on(tag)]


def regular_assignments(employees: Sequence[Employee], tag: str) -> List[Assignment]:
    result = []
    for emp in employees:
        window = emp.window_for(tag)
        result.append(Assignment(
            employee_id=emp.id,
            start_time=window.start,
            end_time=window.end,
            type='regular',
        ))
    return result


def resolve_day(
    day: date,
    employees: Sequence[Employee],
    holidays: Sequence[Holiday],
    weekend_pool: Sequence[Employee],
    rotation_index: Optional[int] = None,
) -> ScheduleEntry:
    """Build the entry for ``day``.

    Every employee working that weekday gets a regular assignment. On
    Saturday and Sunday, when ``rotation_index`` is given and the pool is not
    empty, ``weekend_pool[rotation_index % len(weekend_pool)]`` holds on-call
    duty; an oncall assignment is appended for them unless they already work
    that day.
    """
    tag = weekday_tag(day)
    holiday = find_holiday(day, holidays)

    assignments = regular_assignments(working_employees(employees, tag), tag)

    oncall_id = None
    appended = False
    if tag in WEEKEND and weekend_pool and rotation_index is not None:
        oncall = weekend_pool[rotation_index % len(weekend_pool)]
        oncall_id = oncall.id
        if oncall.id not in {a.employee_id for a in assignments}:
            assignments.append(Assignment(
                employee_id=oncall.id,
                start_time=ONCALL_START,
                end_time=ONCALL_END,
                type='oncall',
            ))
            appended = True

    if holiday is not None:
        status = 'holiday'
    elif appended:
        status = 'oncall'
    else:
        status = 'normal'

    return ScheduleEntry(
        date=day.isoformat(),
        day_of_week=tag,
        assignments=assignments,
        is_holiday=holiday is not None,
        holiday_name=holiday.name if holiday else None,
        status=status,
        oncall_employee_id=oncall_id,
    )
