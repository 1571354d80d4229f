"""
Process registry: an immutable snapshot of the planning session plus pure
reducer functions.

Every reducer takes the prior snapshot and returns a new one. Changes to the
primary schedule or the calendar recompute every dependent that still follows
the primary before the reducer returns.
"""
import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, Optional, Tuple, Union

from lineplan.datetime_utils import parse_iso_date
from lineplan.planning.scheduling.balancer import BalanceOutcome, balance_edit, resolve_confirmation
from lineplan.planning.scheduling.calendar import WorkingCalendar
from lineplan.planning.scheduling.config import SchedulingConfig
from lineplan.planning.scheduling.distributor import Timeline
from lineplan.exceptions import (
    ProcessFrozenError,
    ProcessNotFoundError,
    SchedulingError,
)
from lineplan.planning.scheduling.models import Process, ProcessStatus, Schedule, coerce_quantity
from lineplan.planning.scheduling.offsets import derive_dependent_schedule

logger = logging.getLogger(__name__)

# A day-creation decision: already made (bool), deferred to a callback, or not yet made (None)
Confirmation = Union[None, bool, Callable[[], bool]]


@dataclass(frozen=True)
class PlanSnapshot:
    """The whole planning session at one point in time."""
    processes: Tuple[Process, ...]
    calendar: WorkingCalendar
    timeline: Timeline

    def __post_init__(self):
        primaries = [p for p in self.processes if p.is_primary]
        if len(primaries) != 1:
            raise SchedulingError(f"Exactly one primary process is required, found {len(primaries)}")
        ids = [p.id for p in self.processes]
        if len(set(ids)) != len(ids):
            raise SchedulingError("Process ids must be unique")

    @property
    def primary(self) -> Process:
        return next(p for p in self.processes if p.is_primary)

    @property
    def target_total(self) -> int:
        return self.primary.schedule.total

    def get(self, process_id: str) -> Process:
        for process in self.processes:
            if process.id == str(process_id):
                return process
        raise ProcessNotFoundError(f"Process {process_id} not found", process_id=str(process_id))

    def to_dict(self):
        timeline = self.timeline.to_dict()
        timeline['per_day'], timeline['remainder'] = self.timeline.per_day_summary(self.calendar)
        return {
            'calendar': self.calendar.to_dict(),
            'timeline': timeline,
            'target_total': self.target_total,
            'processes': [p.to_dict() for p in self.processes],
        }


def _replace_process(snapshot: PlanSnapshot, updated: Process) -> PlanSnapshot:
    processes = tuple(updated if p.id == updated.id else p for p in snapshot.processes)
    return replace(snapshot, processes=processes)


def _recompute_dependents(snapshot: PlanSnapshot, max_scan_days: Optional[int]) -> PlanSnapshot:
    primary_schedule = snapshot.primary.schedule
    processes = []
    for process in snapshot.processes:
        if process.follows_primary:
            process = replace(
                process,
                schedule=derive_dependent_schedule(
                    primary_schedule, process.offset_working_days, snapshot.calendar, max_scan_days=max_scan_days
                ),
            )
        processes.append(process)
    return replace(snapshot, processes=tuple(processes))


def _with_primary_schedule(snapshot: PlanSnapshot, schedule: Schedule, max_scan_days: Optional[int]) -> PlanSnapshot:
    snapshot = _replace_process(snapshot, replace(snapshot.primary, schedule=schedule))
    return _recompute_dependents(snapshot, max_scan_days)


def _decide(confirm: Confirmation) -> Optional[bool]:
    if confirm is None or isinstance(confirm, bool):
        return confirm
    return bool(confirm())


def create_snapshot(
    processes,
    calendar: WorkingCalendar,
    timeline: Timeline,
    primary_schedule: Optional[Schedule] = None,
    max_scan_days: Optional[int] = None,
) -> PlanSnapshot:
    """
    Build a session from its processes.

    The primary takes primary_schedule when given, otherwise the timeline's
    distribution; dependents are derived from it.
    """
    snapshot = PlanSnapshot(processes=tuple(processes), calendar=calendar, timeline=timeline)
    if primary_schedule is None:
        primary_schedule = timeline.distribute(calendar)
    return _with_primary_schedule(snapshot, primary_schedule, max_scan_days)


def default_snapshot(
    calendar: Optional[WorkingCalendar] = None,
    max_scan_days: Optional[int] = None,
) -> PlanSnapshot:
    """The seed session: cutting, sewing (primary), finishing and packing."""
    if calendar is None:
        calendar = WorkingCalendar()
    return create_snapshot(
        processes=[Process.from_config(data) for data in SchedulingConfig.DEFAULT_PROCESSES],
        calendar=calendar,
        timeline=Timeline.from_dict(SchedulingConfig.DEFAULT_TIMELINE),
        primary_schedule=Schedule.from_dicts(SchedulingConfig.DEFAULT_PRIMARY_SCHEDULE),
        max_scan_days=max_scan_days,
    )


def set_timeline(snapshot: PlanSnapshot, timeline: Timeline, max_scan_days: Optional[int] = None) -> PlanSnapshot:
    """Redistribute the primary from a new timeline and cascade to dependents."""
    snapshot = replace(snapshot, timeline=timeline)
    return _with_primary_schedule(snapshot, timeline.distribute(snapshot.calendar), max_scan_days)


def set_calendar(snapshot: PlanSnapshot, calendar: WorkingCalendar, max_scan_days: Optional[int] = None) -> PlanSnapshot:
    """Swap the working calendar and recompute the dependents that follow the primary."""
    return _recompute_dependents(replace(snapshot, calendar=calendar), max_scan_days)


def edit_quantity(
    snapshot: PlanSnapshot,
    process_id: str,
    edit_date: date,
    quantity: int,
    confirm_create_day: Confirmation = None,
    max_scan_days: Optional[int] = None,
) -> Tuple[PlanSnapshot, Optional[BalanceOutcome]]:
    """
    Apply a manual edit to one process.

    Primary edits are applied directly (the primary is the target) and cascade.
    Dependent edits are balanced against the primary total and mark the process
    as manually overridden when accepted.

    Args:
        confirm_create_day: Decision for creating a new day. None leaves a
            pending outcome and an unchanged snapshot.

    Returns:
        (new snapshot, balance outcome or None for primary edits)

    Raises:
        ProcessNotFoundError: Unknown process id
        ProcessFrozenError: The process is frozen
    """
    process = snapshot.get(process_id)
    edit_date = parse_iso_date(edit_date)
    quantity = coerce_quantity(quantity)

    if process.is_primary:
        days = process.schedule.as_dict()
        days[edit_date] = quantity
        schedule = Schedule.from_mapping(days)
        snapshot = replace(snapshot, timeline=snapshot.timeline.with_total(schedule.total))
        return _with_primary_schedule(snapshot, schedule, max_scan_days), None

    if process.is_frozen:
        raise ProcessFrozenError(f"Process {process.name} is frozen", process_id=process.id)

    outcome = balance_edit(
        process.schedule, edit_date, quantity, snapshot.target_total, snapshot.calendar, max_scan_days=max_scan_days
    )
    if outcome.needs_confirmation:
        decision = _decide(confirm_create_day)
        if decision is None:
            return snapshot, outcome
        outcome = resolve_confirmation(outcome, decision)

    if outcome.applied:
        snapshot = _replace_process(snapshot, replace(process, schedule=outcome.schedule, is_manual_override=True))
    return snapshot, outcome


def replace_schedule(
    snapshot: PlanSnapshot,
    process_id: str,
    schedule: Schedule,
    max_scan_days: Optional[int] = None,
) -> PlanSnapshot:
    """
    Save a whole schedule from the bulk editor.

    Dependents become manually overridden and keep the schedule as given;
    saving the primary cascades instead.
    """
    process = snapshot.get(process_id)
    schedule = Schedule.from_entries(schedule)

    if process.is_primary:
        snapshot = replace(snapshot, timeline=snapshot.timeline.with_total(schedule.total))
        return _with_primary_schedule(snapshot, schedule, max_scan_days)

    if process.is_frozen:
        raise ProcessFrozenError(f"Process {process.name} is frozen", process_id=process.id)

    if schedule.total != snapshot.target_total:
        logger.warning(
            "Saved schedule for %s totals %d, primary totals %d",
            process.id, schedule.total, snapshot.target_total,
        )
    return _replace_process(snapshot, replace(process, schedule=schedule, is_manual_override=True))


def toggle_freeze(snapshot: PlanSnapshot, process_id: str, max_scan_days: Optional[int] = None) -> PlanSnapshot:
    """
    Flip a process's frozen flag.

    An unfrozen process that is not overridden picks up the current derived
    schedule immediately.
    """
    process = snapshot.get(process_id)
    snapshot = _replace_process(snapshot, replace(process, is_frozen=not process.is_frozen))
    return _recompute_dependents(snapshot, max_scan_days)


def reset_to_auto(snapshot: PlanSnapshot, process_id: str, max_scan_days: Optional[int] = None) -> PlanSnapshot:
    """Drop a manual override and re-derive the schedule from the primary."""
    process = snapshot.get(process_id)
    if process.is_primary:
        return snapshot

    schedule = derive_dependent_schedule(
        snapshot.primary.schedule, process.offset_working_days, snapshot.calendar, max_scan_days=max_scan_days
    )
    return _replace_process(snapshot, replace(process, schedule=schedule, is_manual_override=False))


def change_offset(
    snapshot: PlanSnapshot,
    process_id: str,
    offset_working_days: int,
    max_scan_days: Optional[int] = None,
) -> PlanSnapshot:
    """
    Change a process's working-day offset.

    A dependent is re-derived at the new offset and leaves manual override;
    the primary only records the value.
    """
    process = snapshot.get(process_id)
    if process.is_primary:
        return _replace_process(snapshot, replace(process, offset_working_days=offset_working_days))

    schedule = derive_dependent_schedule(
        snapshot.primary.schedule, offset_working_days, snapshot.calendar, max_scan_days=max_scan_days
    )
    return _replace_process(
        snapshot,
        replace(process, offset_working_days=offset_working_days, schedule=schedule, is_manual_override=False),
    )


def update_process_details(
    snapshot: PlanSnapshot,
    process_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    status: Optional[ProcessStatus] = None,
) -> PlanSnapshot:
    process = snapshot.get(process_id)
    changes = {}
    if name is not None:
        changes['name'] = name
    if description is not None:
        changes['description'] = description
    if status is not None:
        changes['status'] = status
    if not changes:
        return snapshot
    return _replace_process(snapshot, replace(process, **changes))
