"""
Occupancy resolution: which slot starts are taken on a given day.

Pending appointments, confirmed appointments and live holds all occupy
time. Holds past ``expires_at`` are ignored, checked lazily here rather
than by any background sweep. Each occupying interval is extended by the
configured buffer after its end.

Usage:
    occupied = resolve_occupancy(day, appointments, holds, grid_config, now)
    if slot_start in occupied:
        ...
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Optional

from src.config import settings
from src.schemas.scheduling_schema import (
    OCCUPYING_STATUSES,
    Appointment,
    GridConfig,
    Hold,
)
from src.scheduling.errors import ExpiredHoldError
from src.utils import MINUTES_PER_DAY, at_minutes

logger = logging.getLogger(__name__)

Interval = tuple[datetime, datetime]


def appointment_end(appointment: Appointment, fallback_minutes: Optional[int] = None) -> datetime:
    """End of an appointment, derived from its duration when ``end`` is missing."""
    if appointment.end is not None:
        return appointment.end
    duration = appointment.duration_minutes
    if not duration or duration <= 0:
        duration = fallback_minutes or settings.booking.fallback_duration_minutes
        logger.debug(
            "Appointment %s has no end or duration; assuming %d minutes",
            appointment.id, duration,
        )
    return appointment.start + timedelta(minutes=duration)


def appointment_interval(
    appointment: Appointment, buffer_minutes: int = 0, fallback_minutes: Optional[int] = None
) -> Interval:
    """``[start, end + buffer)`` for a stored appointment."""
    end = appointment_end(appointment, fallback_minutes)
    return appointment.start, end + timedelta(minutes=buffer_minutes)


def hold_interval(hold: Hold, now: datetime, buffer_minutes: int = 0) -> Interval:
    """``[start, end + buffer)`` for a live hold.

    Raises:
        ExpiredHoldError: If the hold is no longer live at ``now``.
    """
    if not hold.is_live(now):
        raise ExpiredHoldError(
            f"Hold for {hold.contact} expired at {hold.expires_at.isoformat()}"
        )
    return hold.start, hold.end + timedelta(minutes=buffer_minutes)


def _overlaps(slot_start: datetime, slot_size: timedelta, interval: Interval) -> bool:
    start, end = interval
    return slot_start < end and slot_start + slot_size > start


def mark_occupied(
    day: date,
    intervals: Iterable[Interval],
    slot_size_minutes: int,
    grid: Optional[list[datetime]] = None,
) -> frozenset[datetime]:
    """Slot starts on ``day`` whose slot overlaps any of the intervals.

    Candidate slot starts are the grid entries when a grid is given,
    otherwise the slot-size ticks counted from midnight.
    """
    if grid is None:
        candidates = [at_minutes(day, m) for m in range(0, MINUTES_PER_DAY, slot_size_minutes)]
    else:
        candidates = grid

    slot_size = timedelta(minutes=slot_size_minutes)
    occupied: set[datetime] = set()
    for interval in intervals:
        occupied.update(c for c in candidates if _overlaps(c, slot_size, interval))
    return frozenset(occupied)


def collect_intervals(
    appointments: Iterable[Appointment],
    holds: Iterable[Hold],
    now: datetime,
    buffer_minutes: int = 0,
) -> list[Interval]:
    """Occupying intervals from appointments and holds, dropping expired holds."""
    intervals = [
        appointment_interval(appt, buffer_minutes)
        for appt in appointments
        if appt.status in OCCUPYING_STATUSES
    ]
    for hold in holds:
        try:
            intervals.append(hold_interval(hold, now, buffer_minutes))
        except ExpiredHoldError as exc:
            logger.debug("Ignoring hold: %s", exc.message)
    return intervals


def resolve_occupancy(
    day: date,
    appointments: Iterable[Appointment],
    holds: Iterable[Hold],
    grid_config: GridConfig,
    now: datetime,
    grid: Optional[list[datetime]] = None,
) -> frozenset[datetime]:
    """Occupied slot starts for ``day``."""
    intervals = collect_intervals(appointments, holds, now, grid_config.buffer_minutes)
    occupied = mark_occupied(day, intervals, grid_config.slot_size_minutes, grid)
    logger.debug(
        "Occupancy for %s: %d intervals -> %d slots", day, len(intervals), len(occupied)
    )
    return occupied
