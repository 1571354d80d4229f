"""
Offset scheduler: derive a dependent stage's schedule from the primary schedule.
"""
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, Optional, Union

from lineplan.planning.scheduling.calendar import WorkingCalendar
from lineplan.planning.scheduling.models import DailyQuantity, Schedule


def derive_dependent_schedule(
    primary: Union[Schedule, Iterable[DailyQuantity]],
    offset_working_days: int,
    calendar: WorkingCalendar,
    max_scan_days: Optional[int] = None,
) -> Schedule:
    """
    Shift every primary entry by a signed number of working days.

    Entries landing on the same target day are summed. The result is sorted
    by date and does not depend on the order of the input entries.

    Args:
        primary: Primary schedule (or raw entries, normalized first)
        offset_working_days: Signed working-day offset; 0 is the identity
        calendar: Working calendar used for stepping
        max_scan_days: Optional stepping bound, see WorkingCalendar.add_working_days

    Returns:
        Schedule: The derived schedule
    """
    if not isinstance(primary, Schedule):
        primary = Schedule.from_entries(primary)

    if offset_working_days == 0:
        return primary

    shifted: Dict[date, int] = defaultdict(int)
    for entry in primary:
        target = calendar.add_working_days(entry.date, offset_working_days, max_scan_days=max_scan_days)
        shifted[target] += entry.quantity

    return Schedule.from_mapping(shifted)
