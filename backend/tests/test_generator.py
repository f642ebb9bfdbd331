"""
Resolver and period generator (escalalib.resolver / escalalib.generator).

These tests exercise the pure engine directly, without the store.
"""
from collections import Counter
from datetime import date

import pytest

from escalalib.generator import generate_period, month_bounds, period_bounds, weekend_pool
from escalalib.models import Employee, Holiday, RotationState
from escalalib.resolver import ONCALL_END, ONCALL_START, resolve_day
from escalalib.rotation import advance_state

WEEKDAYS_MF = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday']


def _emp(emp_id, days=None, start='08:00', end='12:00', rotation=False, active=True, custom=None):
    return Employee(
        id=emp_id, name=f"Funcionario {emp_id}", work_days=days or [],
        shift_start=start, shift_end=end, weekend_rotation=rotation,
        active=active, custom_schedule=custom or {},
    )


def _saturdays(schedule):
    return [e for e in schedule.entries if e.day_of_week == 'saturday']


def _sundays(schedule):
    return [e for e in schedule.entries if e.day_of_week == 'sunday']


# ─────────────────────────────────────────────────────────────
# resolve_day
# ─────────────────────────────────────────────────────────────

class TestResolveDay:
    def test_custom_schedule_window(self):
        emp = _emp(1, days=['saturday'], start='08:00', end='18:00',
                   custom={'saturday': {'start': '09:00', 'end': '13:00'}})
        entry = resolve_day(date(2026, 2, 7), [emp], [], [])
        assert len(entry.assignments) == 1
        a = entry.assignments[0]
        assert (a.employee_id, a.start_time, a.end_time, a.type) == (1, '09:00', '13:00', 'regular')

    def test_holiday_marks_entry(self):
        natal = Holiday(id=1, date='12-25', name='Natal')
        entry = resolve_day(date(2026, 12, 25), [_emp(1, days=WEEKDAYS_MF)], [natal], [])
        assert entry.is_holiday is True
        assert entry.holiday_name == 'Natal'
        assert entry.status == 'holiday'

    def test_inactive_holiday_ignored(self):
        natal = Holiday(id=1, date='12-25', name='Natal', active=False)
        entry = resolve_day(date(2026, 12, 25), [], [natal], [])
        assert entry.is_holiday is False
        assert entry.status == 'normal'

    def test_only_employees_working_that_weekday(self):
        employees = [_emp(1, days=['monday']), _emp(2, days=['tuesday']), _emp(3, days=['monday'], active=False)]
        entry = resolve_day(date(2026, 2, 2), employees, [], [])
        assert entry.employee_ids() == [1]
        assert entry.day_of_week == 'monday'
        assert entry.date == '2026-02-02'

    def test_oncall_appended_for_non_working_pool_member(self):
        pool = [_emp(7, rotation=True), _emp(8, rotation=True)]
        entry = resolve_day(date(2026, 2, 7), pool, [], pool, rotation_index=1)
        oncall = entry.oncall_assignment()
        assert oncall is not None
        assert (oncall.employee_id, oncall.start_time, oncall.end_time) == (8, ONCALL_START, ONCALL_END)
        assert entry.oncall_employee_id == 8
        assert entry.status == 'oncall'

    def test_working_pool_member_not_double_booked(self):
        pool = [_emp(5, days=['saturday'], end='18:00', rotation=True)]
        entry = resolve_day(date(2026, 2, 7), pool, [], pool, rotation_index=0)
        assert entry.employee_ids() == [5]
        assert entry.assignments[0].type == 'regular'
        assert entry.oncall_employee_id == 5
        assert entry.status == 'normal'

    def test_holiday_takes_precedence_over_oncall(self):
        # 2026-11-15 is a Sunday
        holiday = Holiday(id=1, date='11-15', name='Proclamação da República')
        pool = [_emp(7, rotation=True)]
        entry = resolve_day(date(2026, 11, 15), pool, [holiday], pool, rotation_index=0)
        assert entry.oncall_assignment() is not None
        assert entry.status == 'holiday'

    def test_no_oncall_on_weekdays(self):
        pool = [_emp(7, rotation=True)]
        entry = resolve_day(date(2026, 2, 2), pool, [], pool, rotation_index=0)
        assert entry.oncall_employee_id is None
        assert entry.assignments == []

    def test_no_oncall_without_index(self):
        pool = [_emp(7, rotation=True)]
        entry = resolve_day(date(2026, 2, 7), pool, [], pool, rotation_index=None)
        assert entry.oncall_employee_id is None


# ─────────────────────────────────────────────────────────────
# Period bounds
# ─────────────────────────────────────────────────────────────

class TestBounds:
    def test_week_is_seven_days_from_start(self):
        assert period_bounds('weekly', date(2026, 2, 4)) == (date(2026, 2, 4), date(2026, 2, 10))

    def test_month_snaps_to_first_and_last(self):
        assert month_bounds(date(2028, 2, 17)) == (date(2028, 2, 1), date(2028, 2, 29))

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            period_bounds('daily', date(2026, 2, 1))

    def test_weekend_pool_sorted_active_only(self):
        employees = [_emp(6, rotation=True), _emp(5, rotation=True), _emp(4, rotation=True, active=False), _emp(3)]
        assert [e.id for e in weekend_pool(employees)] == [5, 6]


# ─────────────────────────────────────────────────────────────
# generate_period
# ─────────────────────────────────────────────────────────────

class TestGeneratePeriod:
    def _february(self, employees, state, holidays=(), **kwargs):
        # February 2026 starts on a Sunday and has four Saturdays
        return generate_period('monthly', date(2026, 2, 1), date(2026, 2, 28),
                               employees, list(holidays), state, **kwargs)

    def test_saturday_sequence_from_null_cursor(self, seeded_db):
        result = self._february(seeded_db.get_employees(), RotationState())
        assert [e.oncall_employee_id for e in _saturdays(result.schedule)] == [5, 6, 5, 6]
        assert result.last_saturday_id == 6
        assert result.rotation_active is True

    def test_resumes_after_last_holder(self, seeded_db):
        result = self._february(seeded_db.get_employees(), RotationState(last_saturday_employee_id=5))
        assert _saturdays(result.schedule)[0].oncall_employee_id == 6

    def test_saturday_and_sunday_rotate_independently(self, seeded_db):
        state = RotationState(last_saturday_employee_id=5, last_sunday_employee_id=6)
        result = self._february(seeded_db.get_employees(), state)
        assert [e.oncall_employee_id for e in _saturdays(result.schedule)] == [6, 5, 6, 5]
        assert [e.oncall_employee_id for e in _sundays(result.schedule)] == [5, 6, 5, 6]
        assert (result.last_saturday_id, result.last_sunday_id) == (5, 6)

    def test_every_date_once_in_order(self, seeded_db):
        result = self._february(seeded_db.get_employees(), RotationState())
        dates = [e.date for e in result.schedule.entries]
        assert len(dates) == 28
        assert dates[0] == '2026-02-01'
        assert dates[-1] == '2026-02-28'
        assert dates == sorted(dates)

    def test_single_member_pool_suppressed_by_default(self):
        employees = [_emp(1, days=WEEKDAYS_MF), _emp(2, rotation=True)]
        result = self._february(employees, RotationState())
        assert result.rotation_active is False
        assert result.last_saturday_id is None
        assert all(e.oncall_employee_id is None for e in result.schedule.entries)

    def test_single_member_pool_when_allowed(self):
        employees = [_emp(2, rotation=True)]
        result = self._february(employees, RotationState(), min_pool_size=1)
        assert {e.oncall_employee_id for e in _saturdays(result.schedule)} == {2}

    def test_empty_pool(self):
        result = self._february([_emp(1, days=WEEKDAYS_MF)], RotationState(), min_pool_size=1)
        assert result.rotation_active is False
        assert all(e.status != 'oncall' for e in result.schedule.entries)

    def test_no_employee_twice_on_a_day(self):
        employees = [
            _emp(1, days=WEEKDAYS_MF + ['saturday'], rotation=True),
            _emp(2, days=WEEKDAYS_MF, start='12:00', end='18:00', rotation=True),
            _emp(3, days=['sunday'], rotation=True),
        ]
        result = self._february(employees, RotationState())
        for entry in result.schedule.entries:
            ids = entry.employee_ids()
            assert len(ids) == len(set(ids)), entry.date

    def test_deterministic(self, seeded_db):
        employees = seeded_db.get_employees()
        holidays = seeded_db.get_holidays()
        state = RotationState(last_saturday_employee_id=6, last_sunday_employee_id=5)
        first = self._february(employees, state, holidays)
        second = self._february(employees, state, holidays)
        assert first.schedule.same_entries(second.schedule)

    def test_holidays_in_period(self, seeded_db):
        result = generate_period('monthly', date(2026, 11, 1), date(2026, 11, 30),
                                 seeded_db.get_employees(), seeded_db.get_holidays(), RotationState())
        by_date = {e.date: e for e in result.schedule.entries}
        assert by_date['2026-11-02'].status == 'holiday'
        assert by_date['2026-11-02'].holiday_name == 'Finados'
        assert by_date['2026-11-15'].status == 'holiday'
        assert by_date['2026-11-03'].is_holiday is False

    def test_end_before_start(self):
        with pytest.raises(ValueError):
            generate_period('weekly', date(2026, 2, 8), date(2026, 2, 2), [], [], RotationState())

    def test_fair_across_periods(self):
        pool = [_emp(1, rotation=True), _emp(2, rotation=True), _emp(3, rotation=True)]
        state = RotationState()
        picks = []
        start = date(2026, 2, 2)
        for week in range(7):
            week_start = date.fromordinal(start.toordinal() + 7 * week)
            result = generate_period('weekly', *period_bounds('weekly', week_start), pool, [], state)
            picks.extend(e.oncall_employee_id for e in _saturdays(result.schedule))
            state = advance_state(state, result.last_saturday_id, result.last_sunday_id,
                                  result.rotation_active)
        assert picks == [1, 2, 3, 1, 2, 3, 1]
        counts = Counter(picks)
        assert max(counts.values()) - min(counts.values()) <= 1
        assert state.week_count == 7
