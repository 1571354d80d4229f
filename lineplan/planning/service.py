"""
Planning session service.

Owns the current PlanSnapshot for the running application and applies the
registry reducers to it one at a time. Routes call this service; they never
touch the snapshot directly.
"""
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from lineplan.datetime_utils import parse_iso_date
from lineplan.logging_config import PlanOperation, get_logger
from lineplan.planning.scheduling import registry
from lineplan.planning.scheduling.aggregator import (
    LevelEditResult,
    ScheduleGrid,
    build_schedule_grid,
    check_level_editable,
)
from lineplan.planning.scheduling.balancer import BalanceOutcome
from lineplan.planning.scheduling.calendar import WorkingCalendar
from lineplan.planning.scheduling.config import SchedulingConfig
from lineplan.planning.scheduling.distributor import Timeline, distribution_loss
from lineplan.exceptions import ParseError
from lineplan.planning.scheduling.models import ProcessStatus, Schedule, ViewLevel, coerce_quantity
from lineplan.planning.scheduling.registry import PlanSnapshot

logger = get_logger(__name__)

TIMELINE_ADJUSTMENTS = ('move', 'resize-start', 'resize-end')


@dataclass(frozen=True)
class ManualEditResult:
    """What happened to a manual edit request."""
    level: LevelEditResult
    snapshot: PlanSnapshot
    outcome: Optional[BalanceOutcome] = None

    @property
    def needs_confirmation(self) -> bool:
        return self.outcome is not None and self.outcome.needs_confirmation

    def to_dict(self):
        return {
            'editable': self.level.editable,
            'message': self.level.message,
            'needs_confirmation': self.needs_confirmation,
            'outcome': self.outcome.to_dict() if self.outcome else None,
            'state': self.snapshot.to_dict(),
        }


def calendar_from_config(config) -> WorkingCalendar:
    """Build the starting calendar from PLAN_WEEKENDS_EXCLUDED / PLAN_HOLIDAYS settings."""
    raw_holidays = config.get('PLAN_HOLIDAYS') or ''
    holidays = [h.strip() for h in raw_holidays.split(',') if h.strip()]
    return WorkingCalendar(
        weekends_excluded=bool(config.get('PLAN_WEEKENDS_EXCLUDED', True)),
        holidays=frozenset(parse_iso_date(h) for h in holidays),
    )


class PlanningSessionService:
    """Service for the planning session: serializes reducer calls and logs them."""

    def __init__(self, calendar: Optional[WorkingCalendar] = None,
                 max_scan_days: Optional[int] = SchedulingConfig.MAX_CALENDAR_SCAN_DAYS):
        self._lock = threading.RLock()
        self._initial_calendar = calendar or WorkingCalendar()
        self.max_scan_days = max_scan_days
        self._snapshot = registry.default_snapshot(self._initial_calendar, max_scan_days=max_scan_days)

    @classmethod
    def from_config(cls, config) -> 'PlanningSessionService':
        """
        Create the session service from a Flask config mapping.

        Raises:
            ParseError: If PLAN_HOLIDAYS holds a malformed date
        """
        return cls(
            calendar=calendar_from_config(config),
            max_scan_days=config.get('MAX_CALENDAR_SCAN_DAYS', SchedulingConfig.MAX_CALENDAR_SCAN_DAYS),
        )

    @property
    def snapshot(self) -> PlanSnapshot:
        with self._lock:
            return self._snapshot

    def _commit(self, operation: str, reducer: Callable[[PlanSnapshot], PlanSnapshot], **context) -> PlanSnapshot:
        with self._lock, PlanOperation(operation, **context):
            self._snapshot = reducer(self._snapshot)
            return self._snapshot

    def reset(self) -> PlanSnapshot:
        """Restore the seed session."""
        return self._commit(
            "reset_session",
            lambda _: registry.default_snapshot(self._initial_calendar, max_scan_days=self.max_scan_days),
        )

    # ------------------------------------------------------------------
    # Timeline (primary strip)
    # ------------------------------------------------------------------

    def set_timeline(self, timeline: Timeline) -> PlanSnapshot:
        snapshot = self._commit(
            "set_timeline",
            lambda s: registry.set_timeline(s, timeline, max_scan_days=self.max_scan_days),
            start_date=timeline.start_date.isoformat(),
            duration_days=timeline.duration_days,
            total_quantity=timeline.total_quantity,
        )
        dropped = distribution_loss(timeline, snapshot.calendar)
        if dropped:
            logger.warning(
                "Timeline has no working days; quantity not distributed",
                start_date=timeline.start_date.isoformat(),
                duration_days=timeline.duration_days,
                dropped_quantity=dropped,
            )
        return snapshot

    def adjust_timeline(self, mode: str, delta_days: int) -> PlanSnapshot:
        """
        Apply a drag/keyboard day delta to the timeline.

        Args:
            mode: 'move', 'resize-start' or 'resize-end'
            delta_days: Signed number of calendar days

        Raises:
            ParseError: If mode is unknown
        """
        if mode not in TIMELINE_ADJUSTMENTS:
            raise ParseError(f"mode must be one of: {', '.join(TIMELINE_ADJUSTMENTS)}", mode=str(mode))

        with self._lock:
            current = self._snapshot.timeline
            if mode == 'move':
                timeline = current.move(delta_days)
            elif mode == 'resize-start':
                timeline = current.resize_start(delta_days)
            else:
                timeline = current.resize_end(delta_days)
            return self.set_timeline(timeline)

    def dropped_quantity(self) -> int:
        snapshot = self.snapshot
        return distribution_loss(snapshot.timeline, snapshot.calendar)

    # ------------------------------------------------------------------
    # Calendar
    # ------------------------------------------------------------------

    def set_calendar(self, calendar: WorkingCalendar) -> PlanSnapshot:
        return self._commit(
            "set_calendar",
            lambda s: registry.set_calendar(s, calendar, max_scan_days=self.max_scan_days),
            weekends_excluded=calendar.weekends_excluded,
            holidays=len(calendar.holidays),
        )

    def add_holiday(self, day) -> PlanSnapshot:
        day = parse_iso_date(day)
        with self._lock:
            return self.set_calendar(self._snapshot.calendar.add_holiday(day))

    def remove_holiday(self, day) -> PlanSnapshot:
        day = parse_iso_date(day)
        with self._lock:
            return self.set_calendar(self._snapshot.calendar.remove_holiday(day))

    # ------------------------------------------------------------------
    # Process edits
    # ------------------------------------------------------------------

    def edit_quantity(self, process_id: str, edit_date, quantity, confirm_create_day=None,
                      level: ViewLevel = ViewLevel.STRIP) -> ManualEditResult:
        """
        Apply a manual quantity edit to one day of a process.

        Edits at aggregated view levels are rejected as "not editable" without
        touching the session. When a dependent edit needs a new day and no
        decision was supplied, the session is left unchanged and the result
        carries the proposal.
        """
        level_result = check_level_editable(level)
        if not level_result.editable:
            logger.info("Edit rejected at aggregated view level", process_id=process_id, level=level.value)
            return ManualEditResult(level=level_result, snapshot=self.snapshot)

        edit_date = parse_iso_date(edit_date)
        quantity = coerce_quantity(quantity)

        with self._lock, PlanOperation("edit_quantity", process_id=process_id,
                                       date=edit_date.isoformat(), quantity=quantity):
            snapshot, outcome = registry.edit_quantity(
                self._snapshot, process_id, edit_date, quantity,
                confirm_create_day=confirm_create_day, max_scan_days=self.max_scan_days,
            )
            self._snapshot = snapshot

        if outcome is not None and outcome.needs_confirmation:
            logger.info(
                "Edit needs a new day",
                process_id=process_id,
                proposed_date=outcome.proposed_date.isoformat(),
                proposed_quantity=outcome.proposed_quantity,
            )
        return ManualEditResult(level=level_result, snapshot=snapshot, outcome=outcome)

    def replace_schedule(self, process_id: str, schedule: Schedule) -> PlanSnapshot:
        return self._commit(
            "replace_schedule",
            lambda s: registry.replace_schedule(s, process_id, schedule, max_scan_days=self.max_scan_days),
            process_id=process_id,
            days=len(schedule),
        )

    def toggle_freeze(self, process_id: str) -> PlanSnapshot:
        return self._commit(
            "toggle_freeze",
            lambda s: registry.toggle_freeze(s, process_id, max_scan_days=self.max_scan_days),
            process_id=process_id,
        )

    def reset_to_auto(self, process_id: str) -> PlanSnapshot:
        return self._commit(
            "reset_to_auto",
            lambda s: registry.reset_to_auto(s, process_id, max_scan_days=self.max_scan_days),
            process_id=process_id,
        )

    def change_offset(self, process_id: str, offset_working_days: int) -> PlanSnapshot:
        return self._commit(
            "change_offset",
            lambda s: registry.change_offset(s, process_id, offset_working_days, max_scan_days=self.max_scan_days),
            process_id=process_id,
            offset_working_days=offset_working_days,
        )

    def update_details(self, process_id: str, name: Optional[str] = None,
                       description: Optional[str] = None, status: Optional[str] = None) -> PlanSnapshot:
        parsed_status = ProcessStatus.parse(status) if status is not None else None
        return self._commit(
            "update_details",
            lambda s: registry.update_process_details(
                s, process_id, name=name, description=description, status=parsed_status
            ),
            process_id=process_id,
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def grid(self, level: ViewLevel = ViewLevel.STRIP) -> ScheduleGrid:
        return build_schedule_grid(self.snapshot.processes, level)
