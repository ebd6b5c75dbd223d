"""
Error kinds raised inside the scheduling engine.

These never cross the public boundary: the lifecycle and tool layers
catch ``SchedulingError`` and translate it into a structured result with
``error``, ``error_kind`` and, where useful, a list of alternative times.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Discriminator carried in every rejected result."""

    VALIDATION = "validation"
    OUT_OF_HOURS = "out_of_hours"
    OVERFLOW = "overflow"
    CAPACITY = "capacity"
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    EXPIRED_HOLD = "expired_hold"


class SchedulingError(Exception):
    """Base class for recoverable scheduling failures."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed or out-of-range input (duration, date window)."""

    kind = ErrorKind.VALIDATION


class OutOfHoursError(SchedulingError):
    """Requested start falls on a closed day or outside every shift."""

    kind = ErrorKind.OUT_OF_HOURS


class ShiftOverflowError(SchedulingError):
    """Start is inside a shift but the service would run past its close."""

    kind = ErrorKind.OVERFLOW


class CapacityError(SchedulingError):
    """No contiguous free window of the required size exists that day."""

    kind = ErrorKind.CAPACITY


class SlotUnavailableError(SchedulingError):
    """The requested window overlaps occupied time."""

    kind = ErrorKind.UNAVAILABLE


class NotFoundError(SchedulingError):
    """Referenced appointment does not exist."""

    kind = ErrorKind.NOT_FOUND


class InvalidTransitionError(SchedulingError):
    """Status change not allowed from the appointment's current status."""

    kind = ErrorKind.INVALID_TRANSITION


class ExpiredHoldError(SchedulingError):
    """Internal signal: a hold is past its expiry and must be ignored."""

    kind = ErrorKind.EXPIRED_HOLD
