"""Exceptions raised by escalalib; the API maps them onto HTTP status codes."""


class EscalaError(Exception):
    """Base class for store and planner errors."""


class NotFoundError(EscalaError, LookupError):
    """A record (employee, holiday, schedule or entry) does not exist."""


class DuplicateError(EscalaError, ValueError):
    """A record would break a uniqueness constraint, e.g. two active holidays on one MM-DD."""


class ScheduleExistsError(EscalaError):
    """A schedule is already stored for the requested period."""

    def __init__(self, kind: str, start: str, schedule_id: int):
        super().__init__(f"A {kind} schedule starting {start} already exists (id {schedule_id})")
        self.kind = kind
        self.start = start
        self.schedule_id = schedule_id


class PeriodOverlapError(EscalaError):
    """A new period would share dates with a stored period of the same kind."""

    def __init__(self, kind: str, start: str, other):
        super().__init__(
            f"A {kind} schedule starting {start} would overlap the stored "
            f"{other.start}..{other.end} (id {other.id})"
        )
        self.kind = kind
        self.start = start
        self.schedule_id = other.id
