"""
Tests for the working calendar (pure date arithmetic, no Flask).
"""
from datetime import date, timedelta

import pytest

from lineplan.planning.scheduling import CalendarExhaustedError, ParseError, WorkingCalendar
from lineplan.planning.scheduling.calendar import shift_days


WEEKDAYS_ONLY = WorkingCalendar(weekends_excluded=True)
EVERY_DAY = WorkingCalendar(weekends_excluded=False)


class TestIsWorkingDay:
    """Tests for the working-day predicate."""

    def test_weekday_is_working(self):
        assert WEEKDAYS_ONLY.is_working_day(date(2024, 2, 15)) is True  # Thursday

    def test_weekend_excluded(self):
        assert WEEKDAYS_ONLY.is_working_day(date(2024, 2, 17)) is False  # Saturday
        assert WEEKDAYS_ONLY.is_working_day(date(2024, 2, 18)) is False  # Sunday

    def test_weekend_included_when_not_excluded(self):
        assert EVERY_DAY.is_working_day(date(2024, 2, 17)) is True

    def test_holiday_is_never_working(self):
        calendar = WorkingCalendar(weekends_excluded=False, holidays=frozenset({date(2024, 2, 15)}))
        assert calendar.is_working_day(date(2024, 2, 15)) is False


class TestAddWorkingDays:
    """Tests for stepping across working days."""

    def test_backward_from_thursday(self):
        assert WEEKDAYS_ONLY.add_working_days(date(2024, 2, 15), -3) == date(2024, 2, 12)

    def test_forward_skips_weekend(self):
        assert WEEKDAYS_ONLY.add_working_days(date(2024, 2, 16), 1) == date(2024, 2, 19)

    def test_start_date_is_not_counted(self):
        assert WEEKDAYS_ONLY.add_working_days(date(2024, 2, 12), 1) == date(2024, 2, 13)

    def test_zero_returns_start_even_on_weekend(self):
        saturday = date(2024, 2, 17)
        assert WEEKDAYS_ONLY.add_working_days(saturday, 0) == saturday

    def test_from_non_working_start(self):
        assert WEEKDAYS_ONLY.add_working_days(date(2024, 2, 17), 1) == date(2024, 2, 19)
        assert WEEKDAYS_ONLY.add_working_days(date(2024, 2, 18), -1) == date(2024, 2, 16)

    def test_holidays_are_skipped(self):
        calendar = WEEKDAYS_ONLY.add_holiday(date(2024, 2, 19))
        assert calendar.add_working_days(date(2024, 2, 16), 1) == date(2024, 2, 20)

    def test_scan_bound_raises_on_exhausted_calendar(self):
        start = date(2024, 2, 15)
        calendar = WorkingCalendar(
            weekends_excluded=False,
            holidays=frozenset(start + timedelta(days=i) for i in range(1, 30)),
        )
        with pytest.raises(CalendarExhaustedError):
            calendar.add_working_days(start, 1, max_scan_days=10)

    def test_scan_bound_not_hit_on_normal_calendar(self):
        assert WEEKDAYS_ONLY.add_working_days(date(2024, 2, 16), 1, max_scan_days=3) == date(2024, 2, 19)


class TestNextWorkingDay:

    def test_friday_to_monday(self):
        assert WEEKDAYS_ONLY.next_working_day(date(2024, 2, 16)) == date(2024, 2, 19)

    def test_strictly_after(self):
        assert EVERY_DAY.next_working_day(date(2024, 2, 16)) == date(2024, 2, 17)


class TestCalendarReducers:
    """Tests for the immutable calendar updates."""

    def test_add_holiday_is_idempotent(self):
        calendar = WEEKDAYS_ONLY.add_holiday(date(2024, 3, 1))
        assert calendar.add_holiday(date(2024, 3, 1)) is calendar
        assert calendar.holidays == frozenset({date(2024, 3, 1)})

    def test_remove_holiday(self):
        calendar = WEEKDAYS_ONLY.add_holiday(date(2024, 3, 1)).remove_holiday(date(2024, 3, 1))
        assert calendar.holidays == frozenset()

    def test_original_calendar_unchanged(self):
        WEEKDAYS_ONLY.add_holiday(date(2024, 3, 1))
        assert WEEKDAYS_ONLY.holidays == frozenset()

    def test_with_weekends_excluded(self):
        assert WEEKDAYS_ONLY.with_weekends_excluded(False).weekends_excluded is False

    def test_working_days_between(self):
        days = WEEKDAYS_ONLY.working_days_between(date(2024, 2, 15), 4)
        assert days == [date(2024, 2, 15), date(2024, 2, 16)]


class TestCalendarSerialization:

    def test_from_dict(self):
        calendar = WorkingCalendar.from_dict({'weekends_excluded': False, 'holidays': ['2024-12-25']})
        assert calendar.weekends_excluded is False
        assert calendar.holidays == frozenset({date(2024, 12, 25)})

    def test_from_dict_rejects_malformed_holiday(self):
        with pytest.raises(ParseError):
            WorkingCalendar.from_dict({'holidays': ['25/12/2024']})

    def test_to_dict_sorts_holidays(self):
        calendar = WorkingCalendar(holidays=frozenset({date(2024, 12, 26), date(2024, 12, 25)}))
        assert calendar.to_dict() == {
            'weekends_excluded': True,
            'holidays': ['2024-12-25', '2024-12-26'],
        }


class TestDateRangeLimits:
    """Tests for stepping past the ends of the supported date range."""

    def test_forward_past_last_date(self):
        with pytest.raises(CalendarExhaustedError):
            EVERY_DAY.add_working_days(date.max, 1)

    def test_backward_past_first_date(self):
        with pytest.raises(CalendarExhaustedError):
            EVERY_DAY.add_working_days(date.min, -1)

    def test_working_days_between_near_last_date(self):
        with pytest.raises(CalendarExhaustedError):
            EVERY_DAY.working_days_between(date(9999, 12, 30), 5)

    def test_range_ending_on_last_date(self):
        assert EVERY_DAY.working_days_between(date(9999, 12, 30), 2) == [date(9999, 12, 30), date(9999, 12, 31)]

    def test_shift_days(self):
        assert shift_days(date(2024, 2, 28), 2) == date(2024, 3, 1)


class TestWeekendsExcludedFlag:

    def test_string_flag_rejected(self):
        with pytest.raises(ParseError):
            WorkingCalendar.from_dict({'weekends_excluded': 'false', 'holidays': []})

    def test_integer_flag_rejected(self):
        with pytest.raises(ParseError):
            WorkingCalendar.from_dict({'weekends_excluded': 0})

    def test_missing_flag_defaults_to_excluded(self):
        assert WorkingCalendar.from_dict({'holidays': []}).weekends_excluded is True
