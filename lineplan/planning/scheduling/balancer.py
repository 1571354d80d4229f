"""
Balancer: apply one manual quantity edit to a dependent schedule while keeping
its total equal to a target.

The edit is two-phase. balance_edit either finishes the edit or stops with
NEEDS_CONFIRMATION when a deficit can only be absorbed by creating a new day;
resolve_confirmation then applies or reverts it. apply_manual_edit composes the
two with an injected decision function.
"""
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Dict, Optional

from lineplan.planning.scheduling.calendar import WorkingCalendar
from lineplan.planning.scheduling.models import Schedule, coerce_quantity

logger = logging.getLogger(__name__)


class BalanceStatus(Enum):
    APPLIED = 'applied'
    NEEDS_CONFIRMATION = 'needs_confirmation'
    REVERTED = 'reverted'


@dataclass(frozen=True)
class BalanceOutcome:
    """
    Result of a balancing pass.

    ``schedule`` is always safe to display: the balanced schedule when applied,
    the pre-edit schedule otherwise. ``pending`` holds the schedule that a
    confirmation would apply.
    """
    status: BalanceStatus
    schedule: Schedule
    original: Schedule
    edit_date: date
    quantity: int
    pending: Optional[Schedule] = None
    proposed_date: Optional[date] = None
    proposed_quantity: int = 0

    @property
    def applied(self) -> bool:
        return self.status is BalanceStatus.APPLIED

    @property
    def needs_confirmation(self) -> bool:
        return self.status is BalanceStatus.NEEDS_CONFIRMATION

    def to_dict(self):
        return {
            'status': self.status.value,
            'schedule': self.schedule.to_dicts(),
            'edit_date': self.edit_date.isoformat(),
            'quantity': self.quantity,
            'proposed_date': self.proposed_date.isoformat() if self.proposed_date else None,
            'proposed_quantity': self.proposed_quantity,
        }


def _absorb_excess(days: Dict[date, int], edit_date: date, excess: int) -> None:
    # Latest days give up quantity first; the edited day only covers what is left
    for day in sorted((d for d in days if d != edit_date), reverse=True):
        if excess <= 0:
            break
        taken = min(days[day], excess)
        days[day] -= taken
        excess -= taken
        if days[day] == 0:
            del days[day]

    if excess > 0 and edit_date in days:
        taken = min(days[edit_date], excess)
        days[edit_date] -= taken
        if days[edit_date] == 0:
            del days[edit_date]


def balance_edit(
    schedule: Schedule,
    edit_date: date,
    quantity: int,
    target_total: int,
    calendar: WorkingCalendar,
    max_scan_days: Optional[int] = None,
) -> BalanceOutcome:
    """
    Set quantity on edit_date and rebalance the rest of the schedule.

    Quantities are base units; undo any view multiplier before calling.

    Args:
        schedule: Dependent schedule before the edit
        edit_date: Day being edited
        quantity: New quantity for that day (negative is clamped to 0, 0 removes the day)
        target_total: Total the schedule must keep (the primary's total)
        calendar: Working calendar, used to place a new day for an unabsorbable deficit
        max_scan_days: Optional stepping bound for that placement

    Returns:
        BalanceOutcome: APPLIED, or NEEDS_CONFIRMATION when a new day is required
    """
    quantity = coerce_quantity(quantity)
    target_total = coerce_quantity(target_total)

    days = schedule.as_dict()
    if quantity > 0:
        days[edit_date] = quantity
    else:
        days.pop(edit_date, None)

    delta = sum(days.values()) - target_total

    if delta > 0:
        _absorb_excess(days, edit_date, delta)
    elif delta < 0:
        deficit = -delta
        others = sorted((d for d in days if d != edit_date), reverse=True)
        if others:
            # The whole deficit lands on the latest other day
            days[others[0]] += deficit
        else:
            last_date = max(days) if days else edit_date
            proposed_date = calendar.next_working_day(last_date, max_scan_days=max_scan_days)
            pending = dict(days)
            pending[proposed_date] = pending.get(proposed_date, 0) + deficit
            logger.info(
                "Edit on %s leaves a deficit of %d with no other day; proposing %s",
                edit_date.isoformat(), deficit, proposed_date.isoformat(),
            )
            return BalanceOutcome(
                status=BalanceStatus.NEEDS_CONFIRMATION,
                schedule=schedule,
                original=schedule,
                edit_date=edit_date,
                quantity=quantity,
                pending=Schedule.from_mapping(pending),
                proposed_date=proposed_date,
                proposed_quantity=deficit,
            )

    return BalanceOutcome(
        status=BalanceStatus.APPLIED,
        schedule=Schedule.from_mapping(days),
        original=schedule,
        edit_date=edit_date,
        quantity=quantity,
    )


def resolve_confirmation(outcome: BalanceOutcome, accepted: bool) -> BalanceOutcome:
    """
    Finish an edit that was waiting on day creation.

    Accepting applies the pending schedule; declining reverts the edit
    entirely, restoring the pre-edit schedule.
    """
    if not outcome.needs_confirmation:
        return outcome

    if accepted:
        return BalanceOutcome(
            status=BalanceStatus.APPLIED,
            schedule=outcome.pending,
            original=outcome.original,
            edit_date=outcome.edit_date,
            quantity=outcome.quantity,
            proposed_date=outcome.proposed_date,
            proposed_quantity=outcome.proposed_quantity,
        )

    logger.info("Day creation on %s declined; edit reverted", outcome.proposed_date.isoformat())
    return BalanceOutcome(
        status=BalanceStatus.REVERTED,
        schedule=outcome.original,
        original=outcome.original,
        edit_date=outcome.edit_date,
        quantity=outcome.quantity,
        proposed_date=outcome.proposed_date,
        proposed_quantity=outcome.proposed_quantity,
    )


def apply_manual_edit(
    schedule: Schedule,
    edit_date: date,
    quantity: int,
    target_total: int,
    calendar: WorkingCalendar,
    confirm_create_day: Callable[[], bool],
    max_scan_days: Optional[int] = None,
) -> Schedule:
    """
    Apply a manual edit, asking confirm_create_day when a new day is needed.

    Returns:
        Schedule: The balanced schedule, or the unchanged input when day
        creation was declined
    """
    outcome = balance_edit(schedule, edit_date, quantity, target_total, calendar, max_scan_days=max_scan_days)
    if outcome.needs_confirmation:
        outcome = resolve_confirmation(outcome, bool(confirm_create_day()))
    return outcome.schedule
