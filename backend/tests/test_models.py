"""Ingestion validation of roster, holiday and schedule records."""
from datetime import date

import pytest
from pydantic import ValidationError

from escalalib.models import (
    Employee, Holiday, PeriodSchedule, ScheduleEntry, ShiftWindow,
    check_hhmm, check_mmdd, month_day, weekday_tag,
)


def _employee(**overrides):
    data = {
        'id': 1, 'name': 'Ana Silva', 'workDays': ['monday'],
        'shiftStart': '08:00', 'shiftEnd': '12:00',
    }
    data.update(overrides)
    return Employee.model_validate(data)


class TestHelpers:
    def test_weekday_tag_matches_calendar(self):
        assert weekday_tag(date(2026, 2, 1)) == 'sunday'
        assert weekday_tag(date(2026, 2, 2)) == 'monday'
        assert weekday_tag(date(2026, 2, 7)) == 'saturday'

    def test_month_day_is_zero_padded(self):
        assert month_day(date(2026, 1, 5)) == '01-05'

    @pytest.mark.parametrize('value', ['8:00', '24:00', '12:60', '', 'noon'])
    def test_check_hhmm_rejects(self, value):
        with pytest.raises(ValueError):
            check_hhmm(value)

    def test_check_mmdd_accepts_leap_day(self):
        assert check_mmdd('02-29') == '02-29'

    @pytest.mark.parametrize('value', ['02-30', '13-01', '1-1', '25-12'])
    def test_check_mmdd_rejects(self, value):
        with pytest.raises(ValueError):
            check_mmdd(value)


class TestEmployee:
    def test_camel_case_round_trip(self):
        emp = _employee(weekendRotation=True)
        data = emp.to_json()
        assert data['workDays'] == ['monday']
        assert data['shiftStart'] == '08:00'
        assert data['weekendRotation'] is True
        assert data['customSchedule'] == {}
        assert Employee.model_validate(data) == emp

    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError):
            _employee(shiftStart='12:00', shiftEnd='12:00')

    def test_name_is_stripped_and_required(self):
        assert _employee(name='  Ana  ').name == 'Ana'
        with pytest.raises(ValidationError):
            _employee(name='   ')

    def test_duplicate_work_days_collapse(self):
        assert _employee(workDays=['monday', 'monday', 'friday']).work_days == ['monday', 'friday']

    def test_unknown_weekday_rejected(self):
        with pytest.raises(ValidationError):
            _employee(workDays=['funday'])

    def test_null_custom_schedule_is_empty(self):
        assert _employee(customSchedule=None).custom_schedule == {}

    def test_custom_window_overrides_default(self):
        emp = _employee(customSchedule={'saturday': {'start': '09:00', 'end': '13:00'}})
        assert emp.window_for('saturday') == ShiftWindow(start='09:00', end='13:00')
        assert emp.window_for('monday') == ShiftWindow(start='08:00', end='12:00')

    def test_custom_window_validated(self):
        with pytest.raises(ValidationError):
            _employee(customSchedule={'saturday': {'start': '13:00', 'end': '09:00'}})


class TestHoliday:
    def test_defaults(self):
        h = Holiday.model_validate({'id': 1, 'date': '12-25', 'name': 'Natal'})
        assert h.type == 'national'
        assert h.active is True

    def test_rejects_day_month_order(self):
        # 25-12 is the DD-MM form of Christmas
        with pytest.raises(ValidationError):
            Holiday.model_validate({'id': 1, 'date': '25-12', 'name': 'Natal'})

    def test_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            Holiday.model_validate({'id': 1, 'date': '12-25', 'name': 'Natal', 'type': 'state'})

    def test_name_stripped(self):
        h = Holiday.model_validate({'id': 1, 'date': '12-25', 'name': '  Natal '})
        assert h.name == 'Natal'

    def test_rejects_blank_name(self):
        with pytest.raises(ValidationError):
            Holiday.model_validate({'id': 1, 'date': '12-25', 'name': '   '})


class TestPeriodSchedule:
    def test_same_entries_ignores_id_and_timestamp(self):
        entry = ScheduleEntry(date='2026-02-02', day_of_week='monday')
        a = PeriodSchedule(id=1, kind='weekly', start='2026-02-02', end='2026-02-08',
                           entries=[entry], created_at='2026-01-01T00:00:00Z')
        b = PeriodSchedule(kind='weekly', start='2026-02-02', end='2026-02-08', entries=[entry])
        assert a.same_entries(b)

    def test_entry_for(self):
        entry = ScheduleEntry(date='2026-02-02', day_of_week='monday')
        s = PeriodSchedule(kind='weekly', start='2026-02-02', end='2026-02-08', entries=[entry])
        assert s.entry_for('2026-02-02') is entry
        assert s.entry_for('2026-02-03') is None
