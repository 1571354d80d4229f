"""
Scheduling engine for dependent daily production schedules.

This package holds the pure planning logic: working-day arithmetic, strip
distribution, offset derivation, edit balancing and view aggregation. It has no
Flask dependencies and works with immutable value objects.
"""

from lineplan.planning.scheduling.config import SchedulingConfig
from lineplan.exceptions import (
    SchedulingError,
    ParseError,
    InvalidDurationError,
    CalendarExhaustedError,
    ProcessNotFoundError,
    ProcessFrozenError,
)
from lineplan.planning.scheduling.models import (
    DailyQuantity,
    Schedule,
    Process,
    ProcessStatus,
    ProcessIcon,
    ViewLevel,
    coerce_quantity,
)
from lineplan.planning.scheduling.calendar import WorkingCalendar
from lineplan.planning.scheduling.distributor import Timeline, distribute_quantity, distribution_loss
from lineplan.planning.scheduling.offsets import derive_dependent_schedule
from lineplan.planning.scheduling.balancer import (
    BalanceOutcome,
    BalanceStatus,
    apply_manual_edit,
    balance_edit,
    resolve_confirmation,
)
from lineplan.planning.scheduling.aggregator import (
    LevelEditResult,
    ScheduleGrid,
    build_schedule_grid,
    check_level_editable,
    project_for_view,
    to_base_quantity,
)

__all__ = [
    'SchedulingConfig',
    'SchedulingError',
    'ParseError',
    'InvalidDurationError',
    'CalendarExhaustedError',
    'ProcessNotFoundError',
    'ProcessFrozenError',
    'DailyQuantity',
    'Schedule',
    'Process',
    'ProcessStatus',
    'ProcessIcon',
    'ViewLevel',
    'coerce_quantity',
    'WorkingCalendar',
    'Timeline',
    'distribute_quantity',
    'distribution_loss',
    'derive_dependent_schedule',
    'BalanceOutcome',
    'BalanceStatus',
    'apply_manual_edit',
    'balance_edit',
    'resolve_confirmation',
    'LevelEditResult',
    'ScheduleGrid',
    'build_schedule_grid',
    'check_level_editable',
    'project_for_view',
    'to_base_quantity',
]
