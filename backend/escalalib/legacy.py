"""
Single-slot projection (morning / afternoon / on-call employee id) kept for
consumers that predate the assignment list. ``assignments`` stays the source
of truth; these helpers only derive the old fields from it.
"""
from typing import Dict, List, Optional

from .models import Assignment, ScheduleEntry

NOON = "12:00"


def legacy_slots(entry: ScheduleEntry) -> Dict[str, Optional[int]]:
    regular = [a for a in entry.assignments if a.type == 'regular']
    morning = next((a.employee_id for a in regular if a.start_time <= NOON), None)
    afternoon = next((a.employee_id for a in regular if a.start_time >= NOON), None)
    return {
        'morningEmployeeId': morning,
        'afternoonEmployeeId': afternoon,
        'oncallEmployeeId': entry.oncall_employee_id,
    }


def apply_legacy_fields(entry: ScheduleEntry) -> ScheduleEntry:
    slots = legacy_slots(entry)
    return entry.model_copy(update={
        'morning_employee_id': slots['morningEmployeeId'],
        'afternoon_employee_id': slots['afternoonEmployeeId'],
    })


def check_assignments(assignments: List[Assignment]) -> None:
    """Reject lists that book one employee twice or hold two on-call slots."""
    seen = set()
    for a in assignments:
        if a.employee_id in seen:
            raise ValueError(f"Employee {a.employee_id} is assigned twice on the same day")
        seen.add(a.employee_id)
    if sum(1 for a in assignments if a.type == 'oncall') > 1:
        raise ValueError("At most one oncall assignment per day")


def replace_assignments(entry: ScheduleEntry, assignments: List[Assignment]) -> ScheduleEntry:
    """Manual edit of one day: new assignment list, status and legacy fields re-derived."""
    check_assignments(assignments)
    oncall = next((a for a in assignments if a.type == 'oncall'), None)
    if oncall is not None:
        oncall_id = oncall.employee_id
    elif entry.oncall_employee_id in {a.employee_id for a in assignments}:
        oncall_id = entry.oncall_employee_id
    else:
        oncall_id = None

    if entry.is_holiday:
        status = 'holiday'
    elif oncall is not None:
        status = 'oncall'
    else:
        status = 'normal'

    edited = entry.model_copy(update={
        'assignments': list(assignments),
        'oncall_employee_id': oncall_id,
        'status': status,
    })
    return apply_legacy_fields(edited)
