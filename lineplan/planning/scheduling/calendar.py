"""
Working calendar: which days count as production days, and stepping across them.
"""
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import FrozenSet, Optional

from lineplan.datetime_utils import format_iso_date, parse_iso_date
from lineplan.exceptions import CalendarExhaustedError, ParseError


def shift_days(day: date, days: int) -> date:
    """
    Add a signed number of calendar days.

    Raises:
        CalendarExhaustedError: If the result falls outside the supported date range
    """
    try:
        return day + timedelta(days=days)
    except OverflowError:
        raise CalendarExhaustedError(
            f"{day.isoformat()} shifted by {days} days is outside the supported date range",
            start=day.isoformat(),
            days=days,
        )


@dataclass(frozen=True)
class WorkingCalendar:
    """
    Working/non-working day predicate.

    A day is working iff it is not a holiday and, when weekends are excluded,
    not a Saturday or Sunday.
    """
    weekends_excluded: bool = True
    holidays: FrozenSet[date] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, data) -> 'WorkingCalendar':
        """
        Build a calendar from {"weekends_excluded": bool, "holidays": ["YYYY-MM-DD", ...]}.

        Raises:
            ParseError: If a holiday is not a valid date
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ParseError("calendar must be an object")
        holidays = data.get('holidays') or []
        if not isinstance(holidays, (list, tuple, set)):
            raise ParseError("holidays must be a list of dates")
        weekends_excluded = data.get('weekends_excluded', True)
        if not isinstance(weekends_excluded, bool):
            raise ParseError("weekends_excluded must be true or false", value=str(weekends_excluded))
        return cls(
            weekends_excluded=weekends_excluded,
            holidays=frozenset(parse_iso_date(h) for h in holidays),
        )

    def to_dict(self):
        return {
            'weekends_excluded': self.weekends_excluded,
            'holidays': [format_iso_date(h) for h in sorted(self.holidays)],
        }

    def is_working_day(self, day: date) -> bool:
        if day in self.holidays:
            return False
        # Monday=0, Sunday=6
        if self.weekends_excluded and day.weekday() >= 5:
            return False
        return True

    def add_working_days(self, start: date, working_days: int, max_scan_days: Optional[int] = None) -> date:
        """
        Step a number of working days forward (positive) or backward (negative).

        The start date itself is never counted, and zero returns the start date
        unchanged even when it is not a working day.

        Args:
            start: Date to step from
            working_days: Signed number of working days
            max_scan_days: Optional bound on calendar days examined. None scans
                without limit, which never terminates on a calendar with no
                working days in the stepping direction.

        Returns:
            date: The date reached

        Raises:
            CalendarExhaustedError: If max_scan_days calendar days were examined
                without reaching the requested count
        """
        if working_days == 0:
            return start

        step = 1 if working_days > 0 else -1
        remaining = abs(working_days)
        current = start
        scanned = 0

        while remaining > 0:
            if max_scan_days is not None and scanned >= max_scan_days:
                raise CalendarExhaustedError(
                    f"No {abs(working_days)} working days within {max_scan_days} days of {start.isoformat()}",
                    start=start.isoformat(),
                    working_days=working_days,
                )
            current = shift_days(current, step)
            scanned += 1
            if self.is_working_day(current):
                remaining -= 1

        return current

    def next_working_day(self, day: date, max_scan_days: Optional[int] = None) -> date:
        """Smallest working day strictly after day."""
        return self.add_working_days(day, 1, max_scan_days=max_scan_days)

    def working_days_between(self, start: date, calendar_days: int) -> list:
        """Working days among the calendar_days consecutive days starting at start."""
        days = (shift_days(start, offset) for offset in range(max(0, calendar_days)))
        return [day for day in days if self.is_working_day(day)]

    def with_weekends_excluded(self, excluded: bool) -> 'WorkingCalendar':
        return replace(self, weekends_excluded=bool(excluded))

    def add_holiday(self, day: date) -> 'WorkingCalendar':
        if day in self.holidays:
            return self
        return replace(self, holidays=self.holidays | {day})

    def remove_holiday(self, day: date) -> 'WorkingCalendar':
        if day not in self.holidays:
            return self
        return replace(self, holidays=self.holidays - {day})
