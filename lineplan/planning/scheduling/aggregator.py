"""
View aggregator: read-only projections of base-unit schedules.

Nothing produced here is stored; the grid is rebuilt on every read.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from fractions import Fraction
from typing import Dict, Iterable, List, Optional, Tuple

from lineplan.datetime_utils import format_iso_date
from lineplan.planning.scheduling.models import Process, Schedule, ViewLevel


def round_half_away_from_zero(value: Fraction) -> int:
    """Round to the nearest integer; exact halves move away from zero."""
    magnitude = abs(value)
    rounded = int(magnitude + Fraction(1, 2))  # int() truncates toward zero
    return rounded if value >= 0 else -rounded


def project_quantity(quantity: int, level: ViewLevel) -> int:
    return round_half_away_from_zero(Fraction(quantity) * level.multiplier)


def to_base_quantity(quantity: int, level: ViewLevel) -> int:
    """Undo a view multiplier so a quantity can be handed to the Balancer."""
    return round_half_away_from_zero(Fraction(quantity) / level.multiplier)


def project_for_view(schedule: Schedule, level: ViewLevel) -> Schedule:
    """
    Scale every day of a schedule by the view level's multiplier.

    Days that round to zero are omitted, as in any Schedule.
    """
    if level.multiplier == 1:
        return schedule
    return Schedule.from_mapping({day.date: project_quantity(day.quantity, level) for day in schedule})


@dataclass(frozen=True)
class LevelEditResult:
    """Answer to an edit attempted at some view level."""
    editable: bool
    level: ViewLevel
    message: Optional[str] = None


def check_level_editable(level: ViewLevel) -> LevelEditResult:
    """Edits at aggregated levels are a no-op reported as "not editable", never an error."""
    if level.editable:
        return LevelEditResult(editable=True, level=level)
    return LevelEditResult(
        editable=False,
        level=level,
        message=f"View level '{level.value}' is not editable; switch to '{ViewLevel.base().value}' to edit",
    )


class RowHighlight(Enum):
    """Row state for the grid, in precedence order."""
    PRIMARY = 'primary'
    FROZEN = 'frozen'
    MANUAL_OVERRIDE = 'manual_override'
    AUTOMATIC = 'automatic'

    @classmethod
    def for_process(cls, process: Process) -> 'RowHighlight':
        if process.is_primary:
            return cls.PRIMARY
        if process.is_frozen:
            return cls.FROZEN
        if process.is_manual_override:
            return cls.MANUAL_OVERRIDE
        return cls.AUTOMATIC


@dataclass(frozen=True)
class GridRow:
    process: Process
    quantities: Dict[date, int]
    total: int

    @property
    def highlight(self) -> RowHighlight:
        return RowHighlight.for_process(self.process)

    def quantity_on(self, day: date) -> int:
        return self.quantities.get(day, 0)


@dataclass(frozen=True)
class ScheduleGrid:
    level: ViewLevel
    dates: Tuple[date, ...]
    rows: Tuple[GridRow, ...]
    daily_totals: Dict[date, int] = field(default_factory=dict)
    grand_total: int = 0

    def to_dict(self):
        return {
            'level': self.level.value,
            'multiplier': str(self.level.multiplier),
            'editable': self.level.editable,
            'dates': [format_iso_date(d) for d in self.dates],
            'rows': [
                {
                    'process_id': row.process.id,
                    'name': row.process.name,
                    'icon': row.process.icon.value,
                    'offset_working_days': row.process.offset_working_days,
                    'highlight': row.highlight.value,
                    'quantities': [row.quantity_on(d) for d in self.dates],
                    'total': row.total,
                }
                for row in self.rows
            ],
            'daily_totals': [self.daily_totals.get(d, 0) for d in self.dates],
            'grand_total': self.grand_total,
        }


def build_schedule_grid(processes: Iterable[Process], level: ViewLevel) -> ScheduleGrid:
    """
    Build the summary grid: one row per process over the union of scheduled dates,
    plus per-date and overall totals, all at the requested view level.
    """
    rows: List[GridRow] = []
    all_dates = set()
    for process in processes:
        projected = project_for_view(process.schedule, level)
        quantities = projected.as_dict()
        all_dates.update(quantities)
        rows.append(GridRow(process=process, quantities=dict(quantities), total=projected.total))

    dates = tuple(sorted(all_dates))
    daily_totals = {day: sum(row.quantity_on(day) for row in rows) for day in dates}
    return ScheduleGrid(
        level=level,
        dates=dates,
        rows=tuple(rows),
        daily_totals=daily_totals,
        grand_total=sum(row.total for row in rows),
    )
