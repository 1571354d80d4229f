"""
Strip distributor.

Spreads a total quantity evenly over the working days of a calendar-day range
and models the primary timeline strip that drives it.
"""
import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, Tuple

from lineplan.datetime_utils import format_iso_date, parse_iso_date
from lineplan.planning.scheduling.calendar import WorkingCalendar, shift_days
from lineplan.exceptions import InvalidDurationError, ParseError
from lineplan.planning.scheduling.models import DailyQuantity, Schedule, coerce_quantity

logger = logging.getLogger(__name__)


def _validate_duration(duration_days) -> int:
    if isinstance(duration_days, bool) or not isinstance(duration_days, int):
        raise InvalidDurationError(f"duration_days must be an integer, got {duration_days!r}")
    if duration_days < 1:
        raise InvalidDurationError(
            f"duration_days must be at least 1, got {duration_days}",
            duration_days=duration_days,
        )
    return duration_days


def distribute_quantity(
    start_date: date,
    duration_days: int,
    total_quantity: int,
    calendar: WorkingCalendar,
) -> Schedule:
    """
    Spread a total evenly across the working days of a date range.

    Every working day receives floor(total / k); the first (total mod k) days
    in chronological order receive one extra unit. When the range holds no
    working day the total cannot be placed and an empty schedule is returned.

    Args:
        start_date: First calendar day of the range
        duration_days: Number of consecutive calendar days (>= 1)
        total_quantity: Quantity to distribute (negative is clamped to 0)
        calendar: Working calendar

    Returns:
        Schedule: Sum equals total_quantity whenever the range has a working day

    Raises:
        InvalidDurationError: If duration_days < 1
    """
    duration_days = _validate_duration(duration_days)
    total = coerce_quantity(total_quantity)

    working_days = calendar.working_days_between(start_date, duration_days)
    if not working_days:
        if total > 0:
            logger.warning(
                "No working days in %s + %d days; %d units not distributed",
                start_date.isoformat(), duration_days, total,
            )
        return Schedule()

    base, remainder = divmod(total, len(working_days))
    return Schedule.from_entries(
        DailyQuantity(day, base + (1 if index < remainder else 0))
        for index, day in enumerate(working_days)
    )


@dataclass(frozen=True)
class Timeline:
    """
    The primary strip: a start day, a length in calendar days and a total.

    Day deltas come from the drag/keyboard layer; pixel translation is not
    handled here.
    """
    start_date: date
    duration_days: int
    total_quantity: int

    def __post_init__(self):
        _validate_duration(self.duration_days)
        object.__setattr__(self, 'total_quantity', coerce_quantity(self.total_quantity))
        # The whole strip must fit in the supported date range
        shift_days(self.start_date, self.duration_days - 1)

    @classmethod
    def from_dict(cls, data) -> 'Timeline':
        if not isinstance(data, dict):
            raise ParseError("timeline must be an object")
        missing = [key for key in ('start_date', 'duration_days', 'total_quantity') if key not in data]
        if missing:
            raise ParseError(f"timeline is missing: {', '.join(missing)}")

        duration = data['duration_days']
        if isinstance(duration, str) and duration.strip().lstrip('-').isdigit():
            duration = int(duration)
        return cls(
            start_date=parse_iso_date(data['start_date']),
            duration_days=duration,
            total_quantity=coerce_quantity(data['total_quantity']),
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            'start_date': format_iso_date(self.start_date),
            'end_date': format_iso_date(self.end_date),
            'duration_days': self.duration_days,
            'total_quantity': self.total_quantity,
        }

    @property
    def end_date(self) -> date:
        return shift_days(self.start_date, self.duration_days - 1)

    def move(self, delta_days: int) -> 'Timeline':
        return replace(self, start_date=shift_days(self.start_date, delta_days))

    def resize_start(self, delta_days: int) -> 'Timeline':
        """Move the start edge, keeping the end edge fixed; at least one day remains."""
        delta_days = min(delta_days, self.duration_days - 1)
        return replace(
            self,
            start_date=shift_days(self.start_date, delta_days),
            duration_days=self.duration_days - delta_days,
        )

    def resize_end(self, delta_days: int) -> 'Timeline':
        return replace(self, duration_days=max(1, self.duration_days + delta_days))

    def with_total(self, total_quantity: int) -> 'Timeline':
        return replace(self, total_quantity=total_quantity)

    def distribute(self, calendar: WorkingCalendar) -> Schedule:
        return distribute_quantity(self.start_date, self.duration_days, self.total_quantity, calendar)

    def per_day_summary(self, calendar: WorkingCalendar) -> Tuple[int, int]:
        """(units per working day, units spread as +1 over the first days)."""
        working = len(calendar.working_days_between(self.start_date, self.duration_days))
        if working == 0:
            return 0, 0
        return divmod(self.total_quantity, working)


def distribution_loss(timeline: Timeline, calendar: WorkingCalendar) -> int:
    """
    Quantity a timeline cannot place because its range has no working day.

    Callers must surface a non-zero value; distribute_quantity drops it silently.
    """
    if calendar.working_days_between(timeline.start_date, timeline.duration_days):
        return 0
    return timeline.total_quantity
