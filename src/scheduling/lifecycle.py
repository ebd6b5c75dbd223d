"""
Appointment lifecycle policy: create, confirm, reschedule, cancel.

Status flow:

    pending ──confirm──> confirmed
       │                    │
       └──cancel──> cancelled <──cancel──┘

Reschedule moves ``start``/``end`` in place and keeps the status. Chat
bookings start as ``pending`` and put a live hold on the slot until the
customer confirms; agent/dashboard bookings may start as ``confirmed``.
A contact has at most one live hold per business: a new booking request
supersedes the previous hold, and the pending appointment that hold was
guarding is cancelled with it.

Every operation returns a ``LifecycleResult``; scheduling errors are
caught here and turned into a rejection with alternative start times.

Usage:
    lifecycle = AppointmentLifecycle(store)
    result = lifecycle.create("biz-1", "+55 11 99999-0000", start, 30)
    if result.success:
        lifecycle.confirm(result.appointment.id)
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional

from src.config import BookingRules, DisplayConfig, settings
from src.schemas.scheduling_schema import (
    OCCUPYING_STATUSES,
    Appointment,
    AppointmentStatus,
    Hold,
)
from src.scheduling.availability import (
    AvailabilitySnapshot,
    ensure_fits,
    find_available_slots,
)
from src.scheduling.errors import (
    CapacityError,
    ErrorKind,
    InvalidTransitionError,
    NotFoundError,
    SchedulingError,
    SlotUnavailableError,
    ValidationError,
)
from src.scheduling.resolver import nearest_starts, round_request
from src.scheduling.store import SchedulingStore
from src.utils import format_hhmm, normalize_phone, to_local_naive

logger = logging.getLogger(__name__)


class LifecycleAction(str, Enum):
    """Operations that move an appointment through its lifecycle."""
    CONFIRM = "confirm"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"


@dataclass(frozen=True)
class StatusTransition:
    """A single allowed status change."""
    from_status: AppointmentStatus
    to_status: AppointmentStatus
    action: LifecycleAction


STATUS_TRANSITIONS: list[StatusTransition] = [
    StatusTransition(AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED,
                     LifecycleAction.CONFIRM),
    StatusTransition(AppointmentStatus.PENDING, AppointmentStatus.CANCELLED,
                     LifecycleAction.CANCEL),
    StatusTransition(AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED,
                     LifecycleAction.CANCEL),
    StatusTransition(AppointmentStatus.PENDING, AppointmentStatus.PENDING,
                     LifecycleAction.RESCHEDULE),
    StatusTransition(AppointmentStatus.CONFIRMED, AppointmentStatus.CONFIRMED,
                     LifecycleAction.RESCHEDULE),
]


def next_status(current: AppointmentStatus, action: LifecycleAction) -> AppointmentStatus:
    """Status reached by applying ``action`` to ``current``.

    Raises:
        InvalidTransitionError: If the action is not allowed from ``current``.
    """
    for t in STATUS_TRANSITIONS:
        if t.from_status == current and t.action == action:
            return t.to_status
    valid = [t.action.value for t in STATUS_TRANSITIONS if t.from_status == current]
    raise InvalidTransitionError(
        f"Cannot {action.value} an appointment that is '{current.value}'. "
        f"Allowed: {valid or 'none'}"
    )


@dataclass
class LifecycleResult:
    """Structured outcome of a lifecycle operation."""
    success: bool
    appointment: Optional[Appointment] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    suggestions: list[datetime] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "appointment": self.appointment}
        result: dict[str, Any] = {
            "success": False,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }
        if self.suggestions:
            result["suggestions"] = [format_hhmm(s) for s in self.suggestions]
        return result


def validate_duration(duration_minutes: Any, rules: BookingRules = settings.booking) -> int:
    """Duration must be given, an integer, and within the configured bounds."""
    if duration_minutes is None:
        raise ValidationError("Service duration is required to book an appointment.")
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValidationError(
            f"Service duration must be a whole number of minutes, got {duration_minutes!r}."
        )
    low, high = rules.min_duration_minutes, rules.max_duration_minutes
    if not low <= duration_minutes <= high:
        raise ValidationError(
            f"Service duration must be between {low} and {high} minutes, got {duration_minutes}."
        )
    return duration_minutes


def validate_start(start: Any, now: datetime, rules: BookingRules = settings.booking) -> datetime:
    """Start must be a datetime no further than the configured window from ``now``.

    Offset-aware values are converted to naive local time, the same wall
    clock the working hours and stored appointments use.
    """
    if not isinstance(start, datetime):
        raise ValidationError(f"Invalid appointment start: {start!r}.")
    start = to_local_naive(start)
    now = to_local_naive(now)
    if start < now - timedelta(days=rules.max_past_days):
        raise ValidationError(
            f"{start.date()} is more than {rules.max_past_days} days in the past."
        )
    if start > now + timedelta(days=rules.max_future_days):
        raise ValidationError(
            f"{start.date()} is more than {rules.max_future_days} days ahead."
        )
    return start


def _new_appointment_id() -> str:
    return f"AP-{uuid.uuid4().hex[:8].upper()}"


class AppointmentLifecycle:
    """Validates and commits appointment changes through a ``SchedulingStore``."""

    def __init__(
        self,
        store: SchedulingStore,
        clock: Callable[[], datetime] = datetime.now,
        rules: BookingRules = settings.booking,
        display: DisplayConfig = settings.display,
    ) -> None:
        self._store = store
        self._clock = clock
        self._rules = rules
        self._display = display

    def validate_duration(self, duration_minutes: Any) -> int:
        return validate_duration(duration_minutes, self._rules)

    def validate_start(self, start: Any, now: datetime) -> datetime:
        return validate_start(start, now, self._rules)

    # ------------------------------------------------------------------ #
    # Shared fit check
    # ------------------------------------------------------------------ #

    def _snapshot(
        self,
        business_id: str,
        start: datetime,
        duration: int,
        now: datetime,
        ignore_appointment_ids: frozenset[str] = frozenset(),
        ignore_contact: Optional[str] = None,
    ) -> AvailabilitySnapshot:
        day = start.date()
        appointments = [
            a for a in self._store.list_appointments(business_id, day, OCCUPYING_STATUSES)
            if a.id not in ignore_appointment_ids
        ]
        holds = [
            h for h in self._store.list_live_holds(business_id, day, now)
            if normalize_phone(h.contact) != ignore_contact
            and (h.appointment_id is None or h.appointment_id not in ignore_appointment_ids)
        ]
        return find_available_slots(
            day,
            duration,
            self._store.get_working_hours(business_id),
            appointments,
            holds,
            self._store.get_grid_config(business_id),
            now,
        )

    def _fit(
        self, business_id: str, requested: datetime, duration: int, snapshot: AvailabilitySnapshot
    ) -> datetime:
        """Round ``requested`` onto the grid and confirm the whole window is free."""
        week = self._store.get_working_hours(business_id)
        slot = self._store.get_grid_config(business_id).slot_size_minutes
        target = round_request(requested, slot, week)
        try:
            ensure_fits(target, duration, week, snapshot.occupied, slot)
            if target not in snapshot.available_times:
                raise SlotUnavailableError(f"{format_hhmm(target)} is not available.")
        except SlotUnavailableError:
            if not snapshot.available_times:
                raise CapacityError(
                    f"No free {duration} minute window on {target.date()}."
                ) from None
            raise
        return target

    def _alternatives(self, business_id: str, requested: datetime,
                      snapshot: Optional[AvailabilitySnapshot],
                      slot_size_minutes: int) -> list[datetime]:
        if snapshot is None or not snapshot.available_times:
            return []
        week = self._store.get_working_hours(business_id)
        anchor = round_request(requested, slot_size_minutes, week)
        picks = nearest_starts(anchor, snapshot.available_times, self._display.max_alternatives)
        return sorted(picks)

    def _reject(self, exc: SchedulingError, suggestions: Optional[list[datetime]] = None,
                ) -> LifecycleResult:
        logger.info("Rejected (%s): %s", exc.kind.value, exc.message)
        return LifecycleResult(
            success=False,
            error=exc.message,
            error_kind=exc.kind,
            suggestions=suggestions or [],
        )

    def _load(self, appointment_id: str) -> Appointment:
        appointment = self._store.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found.")
        return appointment

    def _release_hold(self, appointment: Appointment, now: datetime) -> None:
        hold = self._store.get_live_hold(appointment.business_id, appointment.contact, now)
        if hold is not None and hold.appointment_id == appointment.id:
            self._store.clear_live_hold(appointment.business_id, appointment.contact)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def create(
        self,
        business_id: str,
        contact: str,
        start: datetime,
        duration_minutes: Any,
        *,
        service: Optional[str] = None,
        description: Optional[str] = None,
        status: AppointmentStatus = AppointmentStatus.PENDING,
    ) -> LifecycleResult:
        """Book ``start`` (rounded onto the grid) for ``duration_minutes``."""
        snapshot: Optional[AvailabilitySnapshot] = None
        slot = self._store.get_grid_config(business_id).slot_size_minutes
        try:
            contact = normalize_phone(contact or "")
            if not contact:
                raise ValidationError("Contact number is required.")
            if status == AppointmentStatus.CANCELLED:
                raise ValidationError("Appointments cannot be created as cancelled.")
            duration = self.validate_duration(duration_minutes)
            now = self._clock()
            start = self.validate_start(start, now)

            with self._store.transaction():
                chat_booking = status == AppointmentStatus.PENDING
                prior = self._store.get_live_hold(business_id, contact, now) if chat_booking else None
                superseded = frozenset(
                    [prior.appointment_id] if prior and prior.appointment_id else []
                )
                snapshot = self._snapshot(
                    business_id, start, duration, now,
                    ignore_appointment_ids=superseded,
                    ignore_contact=contact if chat_booking else None,
                )
                target = self._fit(business_id, start, duration, snapshot)

                appointment = Appointment(
                    id=_new_appointment_id(),
                    business_id=business_id,
                    contact=contact,
                    start=target,
                    end=target + timedelta(minutes=duration),
                    duration_minutes=duration,
                    status=status,
                    service=service,
                    description=description,
                    created_at=now,
                )
                self._store.add_appointment(appointment)

                if chat_booking:
                    self._store.replace_live_hold(Hold(
                        business_id=business_id,
                        contact=contact,
                        start=target,
                        duration_minutes=duration,
                        expires_at=now + timedelta(minutes=self._rules.hold_ttl_minutes),
                        appointment_id=appointment.id,
                        service=service,
                        created_at=now,
                    ))
                    for old_id in superseded:
                        self._cancel_superseded(old_id)
        except SchedulingError as exc:
            alternatives = []
            if isinstance(start, datetime):
                alternatives = self._alternatives(business_id, start, snapshot, slot)
            return self._reject(exc, alternatives)

        if target != start:
            logger.info("Requested %s rounded to %s", start.isoformat(), target.isoformat())
        logger.info(
            "Appointment %s created (%s) for %s at %s, %d min",
            appointment.id, appointment.status.value, contact, target.isoformat(), duration,
        )
        return LifecycleResult(success=True, appointment=appointment)

    def _cancel_superseded(self, appointment_id: str) -> None:
        old = self._store.get_appointment(appointment_id)
        if old is not None and old.status == AppointmentStatus.PENDING:
            old.status = next_status(old.status, LifecycleAction.CANCEL)
            self._store.update_appointment(old)
            logger.info("Pending appointment %s superseded by a newer request", old.id)

    def hold(
        self,
        business_id: str,
        contact: str,
        start: datetime,
        duration_minutes: Any,
        *,
        service: Optional[str] = None,
    ) -> LifecycleResult:
        """Reserve a slot while the customer decides, without creating an appointment.

        The contact's previous hold (and any pending appointment it guarded)
        is superseded.
        """
        snapshot: Optional[AvailabilitySnapshot] = None
        slot = self._store.get_grid_config(business_id).slot_size_minutes
        try:
            contact = normalize_phone(contact or "")
            if not contact:
                raise ValidationError("Contact number is required.")
            duration = self.validate_duration(duration_minutes)
            now = self._clock()
            start = self.validate_start(start, now)

            with self._store.transaction():
                prior = self._store.get_live_hold(business_id, contact, now)
                superseded = frozenset(
                    [prior.appointment_id] if prior and prior.appointment_id else []
                )
                snapshot = self._snapshot(
                    business_id, start, duration, now,
                    ignore_appointment_ids=superseded, ignore_contact=contact,
                )
                target = self._fit(business_id, start, duration, snapshot)
                self._store.replace_live_hold(Hold(
                    business_id=business_id,
                    contact=contact,
                    start=target,
                    duration_minutes=duration,
                    expires_at=now + timedelta(minutes=self._rules.hold_ttl_minutes),
                    service=service,
                    created_at=now,
                ))
                for old_id in superseded:
                    self._cancel_superseded(old_id)
        except SchedulingError as exc:
            alternatives = []
            if isinstance(start, datetime):
                alternatives = self._alternatives(business_id, start, snapshot, slot)
            return self._reject(exc, alternatives)

        logger.info("Hold placed for %s at %s", contact, target.isoformat())
        return LifecycleResult(success=True)

    def confirm(self, appointment_id: str) -> LifecycleResult:
        """pending -> confirmed."""
        try:
            with self._store.transaction():
                appointment = self._load(appointment_id)
                appointment.status = next_status(appointment.status, LifecycleAction.CONFIRM)
                self._store.update_appointment(appointment)
                self._release_hold(appointment, self._clock())
        except SchedulingError as exc:
            return self._reject(exc)
        logger.info("Appointment %s confirmed", appointment_id)
        return LifecycleResult(success=True, appointment=appointment)

    def reschedule(self, appointment_id: str, new_start: datetime) -> LifecycleResult:
        """Move an appointment, re-validating the fit with its existing duration."""
        snapshot: Optional[AvailabilitySnapshot] = None
        try:
            now = self._clock()
            new_start = self.validate_start(new_start, now)
            with self._store.transaction():
                appointment = self._load(appointment_id)
                next_status(appointment.status, LifecycleAction.RESCHEDULE)
                slot = self._store.get_grid_config(appointment.business_id).slot_size_minutes
                duration = appointment.duration_minutes
                if not duration and appointment.end is not None:
                    duration = int((appointment.end - appointment.start).total_seconds() // 60)
                duration = self.validate_duration(duration)

                snapshot = self._snapshot(
                    appointment.business_id, new_start, duration, now,
                    ignore_appointment_ids=frozenset([appointment.id]),
                )
                target = self._fit(appointment.business_id, new_start, duration, snapshot)

                appointment.start = target
                appointment.end = target + timedelta(minutes=duration)
                appointment.duration_minutes = duration
                self._store.update_appointment(appointment)

                hold = self._store.get_live_hold(appointment.business_id, appointment.contact, now)
                if hold is not None and hold.appointment_id == appointment.id:
                    self._store.replace_live_hold(
                        hold.model_copy(update={"start": target, "duration_minutes": duration})
                    )
        except SchedulingError as exc:
            alternatives = []
            if snapshot is not None:
                alternatives = self._alternatives(
                    appointment.business_id, new_start, snapshot, slot
                )
            return self._reject(exc, alternatives)

        logger.info("Appointment %s rescheduled to %s", appointment_id, target.isoformat())
        return LifecycleResult(success=True, appointment=appointment)

    def cancel(self, appointment_id: str) -> LifecycleResult:
        """Cancel; a second cancel of the same appointment is a no-op success."""
        try:
            with self._store.transaction():
                appointment = self._load(appointment_id)
                if appointment.status == AppointmentStatus.CANCELLED:
                    return LifecycleResult(success=True, appointment=appointment)
                appointment.status = next_status(appointment.status, LifecycleAction.CANCEL)
                self._store.update_appointment(appointment)
                self._release_hold(appointment, self._clock())
        except SchedulingError as exc:
            return self._reject(exc)
        logger.info("Appointment %s cancelled", appointment_id)
        return LifecycleResult(success=True, appointment=appointment)
