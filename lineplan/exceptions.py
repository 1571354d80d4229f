"""
Exceptions raised by the scheduling engine.

Each exception carries the HTTP status code the planning routes answer with,
so the blueprint error handler can translate them without a lookup table.
"""


class SchedulingError(Exception):
    """Base class for all scheduling engine errors."""

    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        payload.update(self.details)
        return payload


class ParseError(SchedulingError):
    """Malformed date, quantity or schedule input."""


class InvalidDurationError(SchedulingError):
    """A strip duration below one calendar day."""


class CalendarExhaustedError(SchedulingError):
    """Working-day stepping scanned past its bound without finding enough working days."""

    status_code = 422


class ProcessNotFoundError(SchedulingError):
    status_code = 404


class ProcessFrozenError(SchedulingError):
    status_code = 409
