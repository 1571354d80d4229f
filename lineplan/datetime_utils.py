"""
Date utility functions for the application.

Schedules exchange calendar days as ISO ``YYYY-MM-DD`` strings. Parsing is
strict: anything else raises ParseError instead of being coerced.
"""
import re
from datetime import date, datetime

from lineplan.exceptions import ParseError

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(value):
    """
    Parse a calendar day.

    Args:
        value: date object or "YYYY-MM-DD" string

    Returns:
        date: The parsed calendar day

    Raises:
        ParseError: If the value is not a date or a well-formed ISO date string
    """
    # datetime is a date subclass, but a time component is not a calendar day
    if isinstance(value, datetime):
        raise ParseError(f"Expected a calendar day, got datetime {value.isoformat()}")
    if isinstance(value, date):
        return value

    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value.strip()):
        raise ParseError(f"Invalid date {value!r}: expected YYYY-MM-DD", value=str(value))

    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ParseError(f"Invalid date {value!r}: no such calendar day", value=value)


def format_iso_date(value):
    """Format a calendar day as YYYY-MM-DD, or None if value is None."""
    if value is None:
        return None
    return value.isoformat()
