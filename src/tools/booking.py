"""
Booking tools exposed to the chat orchestration and dashboard layers.

Thin wrappers over ``AppointmentLifecycle`` that accept loosely typed
input (ISO strings, service ids), never raise, and return plain dicts:
``{"success": True, "appointment": {...}}`` or
``{"success": False, "error": ..., "error_kind": ..., "suggestions": [...]}``.
"""

import logging
from contextlib import AbstractContextManager, nullcontext
from datetime import datetime
from typing import Any, Callable, Optional, TypedDict, Union

from src.logging_context import booking_session
from src.schemas.scheduling_schema import Appointment, AppointmentStatus
from src.scheduling.errors import SchedulingError, ValidationError
from src.scheduling.lifecycle import AppointmentLifecycle, LifecycleResult
from src.scheduling.occupancy import appointment_end
from src.scheduling.store import SchedulingStore
from src.utils import format_hhmm

logger = logging.getLogger(__name__)


class AppointmentView(TypedDict):
    """Serializable appointment record returned to callers."""

    id: str
    contact: str
    date: str
    start: str
    end: str
    duration_minutes: Optional[int]
    status: str
    service: Optional[str]
    description: Optional[str]


class BookingResult(TypedDict, total=False):
    """Result from create/confirm/reschedule/cancel."""

    success: bool
    appointment: AppointmentView
    error: str
    error_kind: str
    suggestions: list[str]


def _view(appointment: Appointment) -> AppointmentView:
    return {
        "id": appointment.id,
        "contact": appointment.contact,
        "date": appointment.start.date().isoformat(),
        "start": format_hhmm(appointment.start),
        "end": format_hhmm(appointment_end(appointment)),
        "duration_minutes": appointment.duration_minutes,
        "status": appointment.status.value,
        "service": appointment.service,
        "description": appointment.description,
    }


def _to_result(outcome: LifecycleResult) -> BookingResult:
    result: dict[str, Any] = outcome.to_dict()
    if outcome.appointment is not None:
        result["appointment"] = _view(outcome.appointment)
    return result  # type: ignore[return-value]


def _failure(exc: SchedulingError) -> BookingResult:
    return {"success": False, "error": exc.message, "error_kind": exc.kind.value}


def _parse_start(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(
            f"Invalid start {value!r}; expected YYYY-MM-DDTHH:MM."
        ) from None


def _lifecycle(store: SchedulingStore, now: Optional[datetime]) -> AppointmentLifecycle:
    clock: Callable[[], datetime] = (lambda: now) if now is not None else datetime.now
    return AppointmentLifecycle(store, clock=clock)


def _appointment_session(store: SchedulingStore, appointment_id: str) -> AbstractContextManager:
    """Session of the contact who owns ``appointment_id``; untagged when it is unknown."""
    appointment = store.get_appointment(appointment_id)
    if appointment is None:
        return nullcontext()
    return booking_session(appointment.business_id, appointment.contact)


def create_appointment(
    store: SchedulingStore,
    business_id: str,
    contact: str,
    start: Union[str, datetime],
    duration_minutes: Optional[int] = None,
    service_id: Optional[str] = None,
    description: Optional[str] = None,
    confirmed: bool = False,
    now: Optional[datetime] = None,
) -> BookingResult:
    """Create an appointment.

    The duration comes from ``duration_minutes`` or, failing that, from the
    catalog entry of ``service_id``. Chat bookings are created ``pending``;
    pass ``confirmed=True`` for agent/dashboard bookings.
    """
    with booking_session(business_id, contact):
        try:
            parsed = _parse_start(start)
            if duration_minutes is None and service_id:
                duration_minutes = store.get_service_duration(service_id)
                if duration_minutes is None:
                    raise ValidationError(
                        f"Service '{service_id}' has no configured duration."
                    )
        except SchedulingError as exc:
            logger.info("create_appointment rejected: %s", exc.message)
            return _failure(exc)

        status = AppointmentStatus.CONFIRMED if confirmed else AppointmentStatus.PENDING
        outcome = _lifecycle(store, now).create(
            business_id, contact, parsed, duration_minutes,
            service=service_id, description=description, status=status,
        )
        return _to_result(outcome)


def confirm_appointment(
    store: SchedulingStore, appointment_id: str, now: Optional[datetime] = None
) -> BookingResult:
    """Confirm a pending appointment."""
    with _appointment_session(store, appointment_id):
        return _to_result(_lifecycle(store, now).confirm(appointment_id))


def reschedule_appointment(
    store: SchedulingStore,
    appointment_id: str,
    new_start: Union[str, datetime],
    now: Optional[datetime] = None,
) -> BookingResult:
    """Move an appointment to a new start, keeping its duration and status."""
    with _appointment_session(store, appointment_id):
        try:
            parsed = _parse_start(new_start)
        except SchedulingError as exc:
            logger.info("reschedule_appointment rejected: %s", exc.message)
            return _failure(exc)
        return _to_result(_lifecycle(store, now).reschedule(appointment_id, parsed))


def cancel_appointment(
    store: SchedulingStore, appointment_id: str, now: Optional[datetime] = None
) -> BookingResult:
    """Cancel an appointment. Cancelling twice is not an error."""
    with _appointment_session(store, appointment_id):
        return _to_result(_lifecycle(store, now).cancel(appointment_id))


def get_appointment(store: SchedulingStore, appointment_id: str) -> Optional[AppointmentView]:
    """Retrieve an appointment by id."""
    appointment = store.get_appointment(appointment_id)
    return _view(appointment) if appointment is not None else None


def list_contact_appointments(
    store: SchedulingStore,
    business_id: str,
    contact: str,
    include_past: bool = False,
    now: Optional[datetime] = None,
) -> list[AppointmentView]:
    """A contact's appointments in chronological order, upcoming only by default."""
    now = now or datetime.now()
    return [
        _view(a)
        for a in store.list_contact_appointments(business_id, contact, now, include_past)
    ]
