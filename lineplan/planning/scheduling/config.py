"""
Scheduling configuration module.

This module defines the fixed parameters of the planning engine: the view-level
aggregation multipliers and the seed session the planning screen opens with.
"""

from fractions import Fraction
from typing import Any, Dict, List


class SchedulingConfig:
    """
    Configuration for scheduling calculations.

    View-level multipliers are applied to base-unit (strip) quantities for
    read-only summaries. Only the base level accepts edits.
    """

    # View level → multiplier applied to base quantities
    VIEW_LEVEL_MULTIPLIERS: Dict[str, Fraction] = {
        'strip': Fraction(1),
        'batch': Fraction(1, 10),
        'lot': Fraction(1, 100),
    }

    # The single editable level; everything else is a projection of it
    BASE_VIEW_LEVEL: str = 'strip'

    # Upper bound on calendar days scanned while stepping working days.
    # Roughly ten years; guards against calendars with no working days left.
    MAX_CALENDAR_SCAN_DAYS: int = 3660

    # Seed session: one primary stage and its dependents
    DEFAULT_PROCESSES: List[Dict[str, Any]] = [
        {
            'id': '1',
            'name': 'Cutting',
            'offset_working_days': -3,
            'is_primary': False,
            'icon': 'scissors',
            'description': 'Fabric cutting and pattern preparation',
            'status': 'completed',
        },
        {
            'id': '2',
            'name': 'Sewing',
            'offset_working_days': 0,
            'is_primary': True,
            'icon': 'shirt',
            'description': 'Primary sewing operations and assembly',
            'status': 'in-progress',
        },
        {
            'id': '3',
            'name': 'Finishing',
            'offset_working_days': 2,
            'is_primary': False,
            'icon': 'sparkles',
            'description': 'Quality control, pressing, and final touches',
            'status': 'pending',
        },
        {
            'id': '4',
            'name': 'Packing',
            'offset_working_days': 5,
            'is_primary': False,
            'icon': 'package',
            'description': 'Final packaging and shipping preparation',
            'status': 'pending',
        },
    ]

    DEFAULT_PRIMARY_SCHEDULE: List[Dict[str, Any]] = [
        {'date': '2024-02-15', 'quantity': 500},
        {'date': '2024-02-16', 'quantity': 500},
        {'date': '2024-02-17', 'quantity': 500},
        {'date': '2024-02-18', 'quantity': 300},
    ]

    DEFAULT_TIMELINE: Dict[str, Any] = {
        'start_date': '2024-02-15',
        'duration_days': 4,
        'total_quantity': 1800,
    }

    @classmethod
    def get_view_level_multiplier(cls, level: str) -> Fraction:
        """
        Get the aggregation multiplier for a view level.

        Args:
            level: View level name (e.g., 'strip', 'batch', 'lot')

        Returns:
            Fraction: Multiplier applied to base quantities

        Raises:
            KeyError: If the level is not configured
        """
        return cls.VIEW_LEVEL_MULTIPLIERS[level]
