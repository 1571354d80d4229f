"""
Value objects for the planning engine.

Everything here is immutable. Reducers build new values with
dataclasses.replace instead of mutating shared state.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from fractions import Fraction
from typing import Dict, Iterable, Iterator, Mapping, Tuple

from lineplan.datetime_utils import format_iso_date, parse_iso_date
from lineplan.planning.scheduling.config import SchedulingConfig
from lineplan.exceptions import ParseError


def coerce_quantity(value) -> int:
    """
    Normalize a caller-supplied quantity.

    Negative quantities are clamped to zero. Non-integral values are rejected.

    Args:
        value: int, integral float, or digit string

    Returns:
        int: Non-negative quantity

    Raises:
        ParseError: If the value is not an integer quantity
    """
    if isinstance(value, bool) or value is None:
        raise ParseError(f"Invalid quantity {value!r}: expected an integer")
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ParseError(f"Invalid quantity {value!r}: expected an integer")
        return max(0, int(value))
    if isinstance(value, str):
        try:
            return max(0, int(value.strip()))
        except ValueError:
            raise ParseError(f"Invalid quantity {value!r}: expected an integer")
    raise ParseError(f"Invalid quantity {value!r}: expected an integer")


@dataclass(frozen=True)
class DailyQuantity:
    """Output planned for a single calendar day."""
    date: date
    quantity: int

    def to_dict(self) -> Dict[str, object]:
        return {'date': format_iso_date(self.date), 'quantity': self.quantity}


@dataclass(frozen=True)
class Schedule:
    """
    Ascending, unique-date sequence of daily quantities.

    Zero-quantity days are never stored; build schedules through the
    classmethods so that invariant holds.
    """
    days: Tuple[DailyQuantity, ...] = ()

    @classmethod
    def from_mapping(cls, quantities: Mapping[date, int]) -> 'Schedule':
        return cls(tuple(
            DailyQuantity(day, quantity)
            for day, quantity in sorted(quantities.items())
            if quantity > 0
        ))

    @classmethod
    def from_entries(cls, entries: Iterable[DailyQuantity]) -> 'Schedule':
        """Normalize arbitrary entries: clamp negatives, merge duplicate dates, drop zeros, sort."""
        totals: Dict[date, int] = {}
        for entry in entries:
            totals[entry.date] = totals.get(entry.date, 0) + coerce_quantity(entry.quantity)
        return cls.from_mapping(totals)

    @classmethod
    def from_dicts(cls, items) -> 'Schedule':
        """
        Build a schedule from its exchange representation.

        Args:
            items: List of {"date": "YYYY-MM-DD", "quantity": int} dicts

        Raises:
            ParseError: If the payload is not a list or an entry is malformed
        """
        if items is None:
            return cls()
        if not isinstance(items, (list, tuple)):
            raise ParseError("schedule must be a list of {date, quantity} objects")

        entries = []
        for item in items:
            if not isinstance(item, Mapping) or 'date' not in item or 'quantity' not in item:
                raise ParseError("schedule entries must have 'date' and 'quantity'", entry=str(item))
            entries.append(DailyQuantity(parse_iso_date(item['date']), coerce_quantity(item['quantity'])))
        return cls.from_entries(entries)

    def to_dicts(self):
        return [day.to_dict() for day in self.days]

    def as_dict(self) -> 'OrderedDict[date, int]':
        return OrderedDict((day.date, day.quantity) for day in self.days)

    @property
    def total(self) -> int:
        return sum(day.quantity for day in self.days)

    def quantity_on(self, day: date) -> int:
        for entry in self.days:
            if entry.date == day:
                return entry.quantity
        return 0

    def __iter__(self) -> Iterator[DailyQuantity]:
        return iter(self.days)

    def __len__(self) -> int:
        return len(self.days)


class ProcessStatus(Enum):
    PENDING = 'pending'
    IN_PROGRESS = 'in-progress'
    COMPLETED = 'completed'

    @classmethod
    def parse(cls, value) -> 'ProcessStatus':
        try:
            return cls(value)
        except ValueError:
            valid = ', '.join(s.value for s in cls)
            raise ParseError(f"status must be one of: {valid}", value=str(value))


class ProcessIcon(Enum):
    """Closed set of stage icons; the presentation layer maps them to artwork."""
    SCISSORS = 'scissors'
    SHIRT = 'shirt'
    SPARKLES = 'sparkles'
    PACKAGE = 'package'

    @classmethod
    def parse(cls, value) -> 'ProcessIcon':
        # Unknown icons fall back to the package icon
        try:
            return cls(value)
        except ValueError:
            return cls.PACKAGE


class ViewLevel(Enum):
    """Display-only aggregation levels over base (strip) quantities."""
    STRIP = 'strip'
    BATCH = 'batch'
    LOT = 'lot'

    @property
    def multiplier(self) -> Fraction:
        return SchedulingConfig.get_view_level_multiplier(self.value)

    @property
    def editable(self) -> bool:
        return self.value == SchedulingConfig.BASE_VIEW_LEVEL

    @classmethod
    def base(cls) -> 'ViewLevel':
        return cls(SchedulingConfig.BASE_VIEW_LEVEL)

    @classmethod
    def parse(cls, value) -> 'ViewLevel':
        if value is None or value == '':
            return cls.base()
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ', '.join(level.value for level in cls)
            raise ParseError(f"level must be one of: {valid}", value=str(value))


@dataclass(frozen=True)
class Process:
    """A production stage and its daily schedule."""
    id: str
    name: str
    offset_working_days: int = 0
    is_primary: bool = False
    is_manual_override: bool = False
    is_frozen: bool = False
    schedule: Schedule = field(default_factory=Schedule)
    description: str = ''
    status: ProcessStatus = ProcessStatus.PENDING
    icon: ProcessIcon = ProcessIcon.PACKAGE

    @property
    def follows_primary(self) -> bool:
        """True when the schedule is recomputed automatically from the primary."""
        return not (self.is_primary or self.is_frozen or self.is_manual_override)

    @classmethod
    def from_config(cls, data: Mapping[str, object]) -> 'Process':
        return cls(
            id=str(data['id']),
            name=str(data['name']),
            offset_working_days=int(data.get('offset_working_days', 0)),
            is_primary=bool(data.get('is_primary', False)),
            description=str(data.get('description', '')),
            status=ProcessStatus.parse(data.get('status', 'pending')),
            icon=ProcessIcon.parse(data.get('icon')),
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'icon': self.icon.value,
            'status': self.status.value,
            'offset_working_days': self.offset_working_days,
            'is_primary': self.is_primary,
            'is_manual_override': self.is_manual_override,
            'is_frozen': self.is_frozen,
            'schedule': self.schedule.to_dicts(),
            'total_quantity': self.schedule.total,
        }
