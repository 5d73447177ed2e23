"""
Error taxonomy raised by the booking services.

Routers never build these; they are translated to HTTP responses by the
exception handlers registered in main.py.
"""


class BookingError(Exception):
    """Base class for all domain errors."""

    code = "booking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BookingError):
    """Referenced resource / event type / booking / schedule does not exist."""

    code = "not_found"


class ConflictError(BookingError):
    """Interval or quantity is no longer available at commit time."""

    code = "conflict"

    def __init__(self, message: str, resource_ids: list[str] | None = None):
        super().__init__(message)
        self.resource_ids = resource_ids or []


class InvalidStateError(BookingError):
    """Operation not allowed in the current lifecycle state."""

    code = "invalid_state"


class ValidationError(BookingError, ValueError):
    """Malformed input, rejected before any read or write."""

    code = "validation_error"
