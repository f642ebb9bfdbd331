"""
JSON file store for the roster, the holiday calendar, generated schedules and
the weekend rotation cursor.

Each collection lives in its own file inside ``data_dir``. Reads are served
from a process-wide mtime cache; writes go to a temp file that replaces the
target atomically while an exclusive ``flock`` on a sidecar ``.lock`` file is
held, so concurrent writers never interleave a read-modify-write.
"""
import fcntl
import json
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from .exceptions import DuplicateError, NotFoundError
from .models import Employee, Holiday, PeriodSchedule, RotationState

_logger = logging.getLogger(__name__)

# ── Global cross-request JSON cache ─────────────────────────────
# Maps (data_dir, collection) → (mtime, data)
_GLOBAL_JSON_CACHE: Dict[tuple, tuple] = {}

_FILES = {
    'employees': 'funcionarios.json',
    'holidays': 'feriados.json',
    'weekly': 'escalas.json',
    'monthly': 'escalas-mensais.json',
    'rotation': 'revezamento.json',
}

_DEFAULT_EMPLOYEES = [
    {"name": "João Miranda", "workDays": ["monday", "tuesday", "wednesday", "thursday", "friday"],
     "shiftStart": "08:00", "shiftEnd": "12:00", "weekendRotation": False},
    {"name": "Ana Silva", "workDays": ["monday", "tuesday", "wednesday", "thursday", "friday"],
     "shiftStart": "12:00", "shiftEnd": "18:00", "weekendRotation": False},
    {"name": "Marcos Costa", "workDays": ["tuesday", "wednesday", "thursday", "friday"],
     "shiftStart": "08:00", "shiftEnd": "12:00", "weekendRotation": False},
    {"name": "Lucas Ferreira", "workDays": ["tuesday", "wednesday", "thursday", "friday"],
     "shiftStart": "12:00", "shiftEnd": "18:00", "weekendRotation": False},
    {"name": "Kellen Silva", "workDays": ["saturday", "sunday"],
     "shiftStart": "08:00", "shiftEnd": "18:00", "weekendRotation": True},
    {"name": "Maicon Rocha", "workDays": ["saturday", "sunday"],
     "shiftStart": "08:00", "shiftEnd": "18:00", "weekendRotation": True},
]

_DEFAULT_HOLIDAYS = [
    {"date": "01-01", "name": "Confraternização Universal", "type": "national"},
    {"date": "06-24", "name": "São João", "type": "recife"},
    {"date": "09-07", "name": "Independência do Brasil", "type": "national"},
    {"date": "10-12", "name": "Nossa Senhora Aparecida", "type": "national"},
    {"date": "11-02", "name": "Finados", "type": "national"},
    {"date": "11-15", "name": "Proclamação da República", "type": "national"},
    {"date": "12-25", "name": "Natal", "type": "national"},
]


def _utc_timestamp() -> str:
    return time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime())


def _next_id(rows: List[Dict]) -> int:
    return max((r['id'] for r in rows), default=0) + 1


class EscalaDatabase:
    def __init__(self, data_dir: str):
        self.data_dir = data_dir

    def _path(self, name: str) -> str:
        return os.path.join(self.data_dir, _FILES[name])

    def _load(self, name: str, default: Any) -> Any:
        path = self._path(name)
        if not os.path.exists(path):
            return default
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def _read(self, name: str, default: Any = None) -> Any:
        """Read a collection, using a global mtime-based cache.

        The cached value is shared between requests, so callers build fresh
        model objects from it instead of mutating it.
        """
        if default is None:
            default = []
        path = self._path(name)
        key = (self.data_dir, name)
        try:
            mtime = os.path.getmtime(path)
        except OSError:
            return default

        cached = _GLOBAL_JSON_CACHE.get(key)
        if cached is not None and cached[0] == mtime:
            return cached[1]

        data = self._load(name, default)
        _GLOBAL_JSON_CACHE[key] = (mtime, data)
        return data

    def _invalidate_cache(self, name: str) -> None:
        # Writes within the same mtime tick would otherwise be missed
        _GLOBAL_JSON_CACHE.pop((self.data_dir, name), None)

    @contextmanager
    def _exclusive(self, name: str):
        """Hold an exclusive POSIX lock on the collection's sidecar lock file."""
        os.makedirs(self.data_dir, exist_ok=True)
        with open(self._path(name) + '.lock', 'a') as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def _save(self, name: str, data: Any) -> None:
        """Atomically write a collection (write-to-temp + os.replace).

        Must be called while the collection's lock is held.
        """
        path = self._path(name)
        with tempfile.NamedTemporaryFile(
            'w', encoding='utf-8', dir=self.data_dir, delete=False, suffix='.tmp'
        ) as tmp:
            json.dump(data, tmp, indent=2, ensure_ascii=False)
            tmp_path = tmp.name
        try:
            os.replace(tmp_path, path)
        except OSError:
            os.unlink(tmp_path)
            raise
        self._invalidate_cache(name)

    def _modify(self, name: str, fn: Callable[[Any], Any], default: Any = None) -> Any:
        """Read-modify-write a collection under its lock. fn mutates data in place."""
        if default is None:
            default = []
        with self._exclusive(name):
            data = self._load(name, default)
            result = fn(data)
            self._save(name, data)
        return result

    # ── Employees ──────────────────────────────────────────────
    def get_employees(self, include_inactive: bool = False) -> List[Employee]:
        rows = [Employee.model_validate(r) for r in self._read('employees')]
        if not include_inactive:
            rows = [e for e in rows if e.active]
        rows.sort(key=lambda e: e.id)
        return rows

    def get_employee(self, emp_id: int) -> Optional[Employee]:
        return next((e for e in self.get_employees(include_inactive=True) if e.id == emp_id), None)

    def create_employee(self, data: dict) -> Employee:
        def _create(rows):
            emp = Employee.model_validate({**data, 'id': _next_id(rows)})
            rows.append(emp.to_json())
            return emp
        emp = self._modify('employees', _create)
        _logger.info("Employee created id=%s name=%s", emp.id, emp.name)
        return emp

    def update_employee(self, emp_id: int, data: dict) -> Employee:
        def _update(rows):
            for i, r in enumerate(rows):
                if r['id'] == emp_id:
                    emp = Employee.model_validate({**r, **data, 'id': emp_id})
                    rows[i] = emp.to_json()
                    return emp
            raise NotFoundError(f"Employee {emp_id} not found")
        return self._modify('employees', _update)

    def delete_employee(self, emp_id: int) -> int:
        """Soft delete: the record stays for historical schedules. Returns count hidden."""
        def _hide(rows):
            for r in rows:
                if r['id'] == emp_id:
                    r['active'] = False
                    return 1
            return 0
        return self._modify('employees', _hide)

    # ── Holidays ───────────────────────────────────────────────
    def get_holidays(self, include_inactive: bool = False) -> List[Holiday]:
        rows = [Holiday.model_validate(r) for r in self._read('holidays')]
        if not include_inactive:
            rows = [h for h in rows if h.active]
        rows.sort(key=lambda h: h.id)
        return rows

    def get_holiday(self, holiday_id: int) -> Optional[Holiday]:
        return next((h for h in self.get_holidays(include_inactive=True) if h.id == holiday_id), None)

    @staticmethod
    def _check_unique_date(rows: List[Dict], holiday: Holiday) -> None:
        if not holiday.active:
            return
        for r in rows:
            if r['id'] != holiday.id and r.get('active', True) and r['date'] == holiday.date:
                raise DuplicateError(
                    f"Holiday '{r['name']}' already falls on {holiday.date}"
                )

    def create_holiday(self, data: dict) -> Holiday:
        def _create(rows):
            holiday = Holiday.model_validate({**data, 'id': _next_id(rows)})
            self._check_unique_date(rows, holiday)
            rows.append(holiday.to_json())
            return holiday
        return self._modify('holidays', _create)

    def update_holiday(self, holiday_id: int, data: dict) -> Holiday:
        def _update(rows):
            for i, r in enumerate(rows):
                if r['id'] == holiday_id:
                    holiday = Holiday.model_validate({**r, **data, 'id': holiday_id})
                    self._check_unique_date(rows, holiday)
                    rows[i] = holiday.to_json()
                    return holiday
            raise NotFoundError(f"Holiday {holiday_id} not found")
        return self._modify('holidays', _update)

    def delete_holiday(self, holiday_id: int) -> int:
        def _hide(rows):
            for r in rows:
                if r['id'] == holiday_id:
                    r['active'] = False
                    return 1
            return 0
        return self._modify('holidays', _hide)

    # ── Rotation cursor ────────────────────────────────────────
    def get_rotation_state(self) -> RotationState:
        return RotationState.model_validate(self._read('rotation', default={}))

    def save_rotation_state(self, state: RotationState) -> RotationState:
        def _replace(data):
            data.clear()
            data.update(state.to_json())
        self._modify('rotation', _replace, default={})
        return state

    # ── Period schedules ───────────────────────────────────────
    def get_periods(self, kind: str) -> List[PeriodSchedule]:
        rows = [PeriodSchedule.model_validate(r) for r in self._read(kind)]
        rows.sort(key=lambda s: s.start)
        return rows

    def get_period(self, kind: str, schedule_id: int) -> Optional[PeriodSchedule]:
        return next((s for s in self.get_periods(kind) if s.id == schedule_id), None)

    def find_period(self, kind: str, start: str) -> Optional[PeriodSchedule]:
        return next((s for s in self.get_periods(kind) if s.start == start), None)

    def save_period(self, schedule: PeriodSchedule) -> PeriodSchedule:
        """Insert (id assigned) or replace (same id) a period schedule."""
        def _save(rows):
            stored = schedule.model_copy(deep=True)
            if stored.created_at is None:
                stored.created_at = _utc_timestamp()
            if stored.id is None:
                stored.id = _next_id(rows)
                rows.append(stored.to_json())
                return stored
            for i, r in enumerate(rows):
                if r['id'] == stored.id:
                    rows[i] = stored.to_json()
                    return stored
            rows.append(stored.to_json())
            return stored
        return self._modify(schedule.kind, _save)

    def delete_period(self, kind: str, schedule_id: int) -> int:
        def _delete(rows):
            before = len(rows)
            rows[:] = [r for r in rows if r['id'] != schedule_id]
            return before - len(rows)
        return self._modify(kind, _delete)

    # ── Bootstrap / stats ──────────────────────────────────────
    def seed_defaults(self) -> bool:
        """Write the default roster and holiday calendar if neither file exists yet."""
        seeded = False
        if not os.path.exists(self._path('employees')):
            for data in _DEFAULT_EMPLOYEES:
                self.create_employee(data)
            seeded = True
        if not os.path.exists(self._path('holidays')):
            for data in _DEFAULT_HOLIDAYS:
                self.create_holiday(data)
            seeded = True
        if seeded:
            _logger.info("Seeded default data in %s", self.data_dir)
        return seeded

    def get_stats(self) -> Dict:
        employees = self.get_employees()
        return {
            'employees': len(employees),
            'weekend_pool': sum(1 for e in employees if e.weekend_rotation),
            'holidays': len(self.get_holidays()),
            'weekly_schedules': len(self._read('weekly')),
            'monthly_schedules': len(self._read('monthly')),
        }
