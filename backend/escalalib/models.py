"""
Record types for the roster, the holiday calendar, the rotation cursor and
generated schedules.

All models serialize to the camelCase JSON used by the store and the API
(``workDays``, ``shiftStart``, ``lastSaturdayEmployeeId`` ...). Validation
here is the ingestion boundary: the generator assumes well-formed records.
"""
import re
from datetime import date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Index matches date.weekday(): 0=Monday ... 6=Sunday
WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')
WEEKEND = ('saturday', 'sunday')

Weekday = Literal['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']
HolidayType = Literal['national', 'recife']
AssignmentType = Literal['regular', 'oncall', 'holiday']
EntryStatus = Literal['normal', 'holiday', 'oncall']
PeriodKind = Literal['weekly', 'monthly']

_HHMM_RE = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')
_MMDD_RE = re.compile(r'^(\d{2})-(\d{2})$')


def check_hhmm(value: str) -> str:
    if not isinstance(value, str) or not _HHMM_RE.match(value):
        raise ValueError(f"'{value}' is not a HH:MM time")
    return value


def check_mmdd(value: str) -> str:
    m = _MMDD_RE.match(value or '')
    if not m:
        raise ValueError(f"'{value}' is not a MM-DD date")
    # 2000 is a leap year, so 02-29 is accepted
    try:
        date(2000, int(m.group(1)), int(m.group(2)))
    except ValueError:
        raise ValueError(f"'{value}' is not a valid month-day") from None
    return value


def weekday_tag(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def month_day(day: date) -> str:
    return f"{day.month:02d}-{day.day:02d}"


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode='json', by_alias=True)


class ShiftWindow(_Record):
    start: str
    end: str

    @field_validator('start', 'end')
    @classmethod
    def _time_format(cls, v: str) -> str:
        return check_hhmm(v)

    @model_validator(mode='after')
    def _end_after_start(self):
        # Zero-padded HH:MM compares correctly as text
        if self.end <= self.start:
            raise ValueError(f"shift end {self.end} must be later than start {self.start}")
        return self


class Employee(_Record):
    id: int
    name: str = Field(min_length=1)
    work_days: List[Weekday] = Field(default_factory=list)
    shift_start: str
    shift_end: str
    custom_schedule: Dict[Weekday, ShiftWindow] = Field(default_factory=dict)
    weekend_rotation: bool = False
    active: bool = True

    @field_validator('name')
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator('work_days')
    @classmethod
    def _dedupe_days(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))

    @field_validator('shift_start', 'shift_end')
    @classmethod
    def _time_format(cls, v: str) -> str:
        return check_hhmm(v)

    @field_validator('custom_schedule', mode='before')
    @classmethod
    def _null_schedule(cls, v):
        return v or {}

    @model_validator(mode='after')
    def _end_after_start(self):
        if self.shift_end <= self.shift_start:
            raise ValueError(
                f"shiftEnd {self.shift_end} must be later than shiftStart {self.shift_start}"
            )
        return self

    def works_on(self, tag: str) -> bool:
        return tag in self.work_days

    def window_for(self, tag: str) -> ShiftWindow:
        """Effective shift for a weekday: the custom override if any, else the default."""
        custom = self.custom_schedule.get(tag)
        if custom is not None:
            return custom
        return ShiftWindow(start=self.shift_start, end=self.shift_end)


class Holiday(_Record):
    id: int
    date: str
    name: str = Field(min_length=1)
    type: HolidayType = 'national'
    active: bool = True

    @field_validator('name')
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator('date')
    @classmethod
    def _month_day(cls, v: str) -> str:
        return check_mmdd(v)


class RotationState(_Record):
    last_saturday_employee_id: Optional[int] = None
    last_sunday_employee_id: Optional[int] = None
    week_count: int = 0


class Assignment(_Record):
    employee_id: int
    start_time: str
    end_time: str
    type: AssignmentType = 'regular'

    @field_validator('start_time', 'end_time')
    @classmethod
    def _time_format(cls, v: str) -> str:
        return check_hhmm(v)


class ScheduleEntry(_Record):
    date: str
    day_of_week: Weekday
    assignments: List[Assignment] = Field(default_factory=list)
    is_holiday: bool = False
    holiday_name: Optional[str] = None
    status: EntryStatus = 'normal'
    # Weekend duty holder picked by the rotation, whether or not an
    # oncall assignment had to be appended for them.
    oncall_employee_id: Optional[int] = None
    morning_employee_id: Optional[int] = None
    afternoon_employee_id: Optional[int] = None

    def employee_ids(self) -> List[int]:
        return [a.employee_id for a in self.assignments]

    def oncall_assignment(self) -> Optional[Assignment]:
        return next((a for a in self.assignments if a.type == 'oncall'), None)


class PeriodSchedule(_Record):
    id: Optional[int] = None
    kind: PeriodKind
    start: str
    end: str
    entries: List[ScheduleEntry] = Field(default_factory=list)
    created_at: Optional[str] = None

    def entry_for(self, day: str) -> Optional[ScheduleEntry]:
        return next((e for e in self.entries if e.date == day), None)

    def same_entries(self, other: 'PeriodSchedule') -> bool:
        """Equality that ignores storage id and creation timestamp."""
        return (
            (self.kind, self.start, self.end) == (other.kind, other.start, other.end)
            and [e.to_json() for e in self.entries] == [e.to_json() for e in other.entries]
        )
