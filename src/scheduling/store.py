"""
Persistence contract for the scheduling engine, plus an in-memory store.

The engine never persists anything itself. It reads working hours, grid
configuration, appointments and holds through ``SchedulingStore`` and
writes back through it. Implementations must provide:

- ``transaction()``: read-check-write serialized against other writers,
  so the occupancy re-check at commit time cannot race another booking.
- ``replace_live_hold()``: atomic "one live hold per (business, contact)".

``InMemorySchedulingStore`` honors both with a re-entrant lock and is used
by the tests and the CLI. In production this would be backed by the
application database (unique index on business + contact for holds).
"""

import abc
import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Optional, Union

from src.schemas.scheduling_schema import (
    Appointment,
    AppointmentStatus,
    GridConfig,
    Hold,
    WeekSchedule,
)
from src.scheduling.working_hours import load_week_schedule
from src.utils import normalize_phone

logger = logging.getLogger(__name__)


class SchedulingStore(abc.ABC):
    """Collaborator interface the engine reads from and commits through."""

    @abc.abstractmethod
    def transaction(self) -> Any:  # pragma: no cover - interface
        """Context manager serializing a read-check-write sequence."""
        raise NotImplementedError

    @abc.abstractmethod
    def get_working_hours(self, business_id: str) -> Optional[WeekSchedule]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def get_grid_config(self, business_id: str) -> GridConfig:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def get_service_duration(self, service_id: str) -> Optional[int]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def list_appointments(
        self, business_id: str, day: date, statuses: Iterable[AppointmentStatus]
    ) -> list[Appointment]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def list_contact_appointments(
        self, business_id: str, contact: str, now: datetime, include_past: bool = False
    ) -> list[Appointment]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def add_appointment(self, appointment: Appointment) -> None:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def update_appointment(self, appointment: Appointment) -> None:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def list_live_holds(
        self, business_id: str, day: date, now: datetime, contact: Optional[str] = None
    ) -> list[Hold]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def get_live_hold(
        self, business_id: str, contact: str, now: datetime
    ) -> Optional[Hold]:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def replace_live_hold(self, hold: Hold) -> Optional[Hold]:  # pragma: no cover
        """Store ``hold`` as the contact's only hold; return the one it replaced."""
        raise NotImplementedError

    @abc.abstractmethod
    def clear_live_hold(self, business_id: str, contact: str) -> bool:  # pragma: no cover
        raise NotImplementedError


class InMemorySchedulingStore(SchedulingStore):
    """Thread-safe process-local store."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._working_hours: dict[str, Optional[WeekSchedule]] = {}
        self._grid_configs: dict[str, GridConfig] = {}
        self._service_durations: dict[str, int] = {}
        self._appointments: dict[str, Appointment] = {}
        self._holds: dict[tuple[str, str], Hold] = {}

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    def set_working_hours(
        self, business_id: str, raw: Union[str, dict, WeekSchedule, None]
    ) -> Optional[WeekSchedule]:
        """Normalize and store a business's working hours."""
        week = load_week_schedule(raw)
        with self._lock:
            self._working_hours[business_id] = week
        return week

    def set_grid_config(self, business_id: str, config: GridConfig) -> None:
        with self._lock:
            self._grid_configs[business_id] = config

    def set_service_duration(self, service_id: str, minutes: int) -> None:
        with self._lock:
            self._service_durations[service_id] = minutes

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def get_working_hours(self, business_id: str) -> Optional[WeekSchedule]:
        return self._working_hours.get(business_id)

    def get_grid_config(self, business_id: str) -> GridConfig:
        return self._grid_configs.get(business_id) or GridConfig()

    def get_service_duration(self, service_id: str) -> Optional[int]:
        return self._service_durations.get(service_id)

    # ------------------------------------------------------------------ #
    # Appointments
    # ------------------------------------------------------------------ #

    def list_appointments(
        self, business_id: str, day: date, statuses: Iterable[AppointmentStatus]
    ) -> list[Appointment]:
        wanted = set(statuses)
        with self._lock:
            found = [
                appt.model_copy(deep=True)
                for appt in self._appointments.values()
                if appt.business_id == business_id
                and appt.start.date() == day
                and appt.status in wanted
            ]
        return sorted(found, key=lambda a: a.start)

    def list_contact_appointments(
        self, business_id: str, contact: str, now: datetime, include_past: bool = False
    ) -> list[Appointment]:
        contact = normalize_phone(contact)
        with self._lock:
            found = [
                appt.model_copy(deep=True)
                for appt in self._appointments.values()
                if appt.business_id == business_id
                and appt.contact == contact
                and (include_past or appt.start >= now)
            ]
        return sorted(found, key=lambda a: a.start)

    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        with self._lock:
            appt = self._appointments.get(appointment_id)
            return appt.model_copy(deep=True) if appt is not None else None

    def add_appointment(self, appointment: Appointment) -> None:
        with self._lock:
            if appointment.id in self._appointments:
                raise KeyError(f"Appointment {appointment.id} already exists")
            self._appointments[appointment.id] = appointment.model_copy(deep=True)

    def update_appointment(self, appointment: Appointment) -> None:
        with self._lock:
            if appointment.id not in self._appointments:
                raise KeyError(f"Appointment {appointment.id} not found")
            self._appointments[appointment.id] = appointment.model_copy(deep=True)

    # ------------------------------------------------------------------ #
    # Holds
    # ------------------------------------------------------------------ #

    def list_live_holds(
        self, business_id: str, day: date, now: datetime, contact: Optional[str] = None
    ) -> list[Hold]:
        if contact is not None:
            contact = normalize_phone(contact)
        with self._lock:
            return [
                hold
                for (biz, holder), hold in self._holds.items()
                if biz == business_id
                and hold.start.date() == day
                and hold.is_live(now)
                and (contact is None or holder == contact)
            ]

    def get_live_hold(self, business_id: str, contact: str, now: datetime) -> Optional[Hold]:
        with self._lock:
            hold = self._holds.get((business_id, normalize_phone(contact)))
        if hold is None or not hold.is_live(now):
            return None
        return hold

    def replace_live_hold(self, hold: Hold) -> Optional[Hold]:
        key = (hold.business_id, normalize_phone(hold.contact))
        with self._lock:
            previous = self._holds.get(key)
            self._holds[key] = hold
        if previous is not None:
            logger.info(
                "Hold for %s superseded: %s -> %s",
                key[1], previous.start.isoformat(), hold.start.isoformat(),
            )
        return previous

    def clear_live_hold(self, business_id: str, contact: str) -> bool:
        with self._lock:
            return self._holds.pop((business_id, normalize_phone(contact)), None) is not None

    def purge_expired_holds(self, now: datetime) -> int:
        """Drop holds past expiry. Housekeeping only; occupancy never relies on it."""
        with self._lock:
            expired = [key for key, hold in self._holds.items() if not hold.is_live(now)]
            for key in expired:
                del self._holds[key]
        if expired:
            logger.info("Purged %d expired holds", len(expired))
        return len(expired)
