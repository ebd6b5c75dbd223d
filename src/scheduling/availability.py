"""
Availability search over a day's slot grid.

A start time is valid when the service's required number of slots are
all present in the grid, consecutive (no gap between shifts inside the
window) and unoccupied. Partial fits are never offered: a window whose
last slot falls past closing or onto occupied time is rejected.

Usage:
    snapshot = find_available_slots(day, 30, week, appointments, holds, grid_config, now)
    snapshot.available_times  # [09:00, 09:15, ...]
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from src.schemas.scheduling_schema import Appointment, GridConfig, Hold, WeekSchedule
from src.scheduling.errors import (
    OutOfHoursError,
    ShiftOverflowError,
    SlotUnavailableError,
)
from src.scheduling.grid import SlotGrid, generate_day_grid, required_slots
from src.scheduling.occupancy import resolve_occupancy
from src.scheduling.working_hours import day_schedule, is_restricted, shift_containing
from src.utils import format_hhmm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilitySnapshot:
    """Everything computed for one availability query."""

    day: date
    grid: SlotGrid
    occupied: frozenset[datetime]
    required_slots: int
    available_times: list[datetime]


def find_valid_start_times(
    grid: SlotGrid,
    occupied: frozenset[datetime],
    slots_needed: int,
    slot_size_minutes: int,
) -> list[datetime]:
    """Grid entries that can open a free run of ``slots_needed`` consecutive slots."""
    if slots_needed < 1:
        raise ValueError(f"slots_needed must be >= 1, got {slots_needed}")

    step = timedelta(minutes=slot_size_minutes)
    valid = []
    for i in range(len(grid) - slots_needed + 1):
        window = grid[i:i + slots_needed]
        if any(slot in occupied for slot in window):
            continue
        if any(b - a != step for a, b in zip(window, window[1:])):
            continue
        valid.append(grid[i])
    return valid


def ensure_fits(
    start: datetime,
    duration_minutes: int,
    week: Optional[WeekSchedule],
    occupied: frozenset[datetime],
    slot_size_minutes: int,
) -> None:
    """Check that a specific start can host the whole service.

    Raises:
        OutOfHoursError: Closed day, or start outside every shift.
        ShiftOverflowError: Service would end after its shift closes.
        SlotUnavailableError: Any slot of the window is occupied.
    """
    day = start.date()
    end = start + timedelta(minutes=duration_minutes)

    if is_restricted(week, day):
        schedule = day_schedule(week, day)
        if schedule is not None and not schedule.is_open:
            raise OutOfHoursError(f"Closed on {day.strftime('%A')}s.")
        shift = shift_containing(week, start)
        if shift is None:
            raise OutOfHoursError(f"{format_hhmm(start)} is outside working hours.")
        close_at = datetime.combine(day, shift.close_time)
        if end > close_at:
            raise ShiftOverflowError(
                f"A {duration_minutes} minute service at {format_hhmm(start)} would end "
                f"at {format_hhmm(end)}, after closing at {format_hhmm(close_at)}."
            )
    elif end > datetime.combine(day, datetime.min.time()) + timedelta(days=1):
        raise ShiftOverflowError(
            f"A {duration_minutes} minute service at {format_hhmm(start)} runs past midnight."
        )

    step = timedelta(minutes=slot_size_minutes)
    for k in range(required_slots(duration_minutes, slot_size_minutes)):
        if start + k * step in occupied:
            raise SlotUnavailableError(f"{format_hhmm(start)} is already taken.")


def find_available_slots(
    day: date,
    duration_minutes: int,
    week: Optional[WeekSchedule],
    appointments: Iterable[Appointment],
    holds: Iterable[Hold],
    grid_config: GridConfig,
    now: datetime,
) -> AvailabilitySnapshot:
    """Generate the grid, resolve occupancy and list valid starts for ``day``."""
    slot = grid_config.slot_size_minutes
    grid = generate_day_grid(day, week, slot)
    needed = required_slots(duration_minutes, slot)

    if not grid:
        return AvailabilitySnapshot(day, [], frozenset(), needed, [])

    occupied = resolve_occupancy(day, appointments, holds, grid_config, now, grid)
    available = find_valid_start_times(grid, occupied, needed, slot)
    logger.debug(
        "%s: %d grid slots, %d occupied, %d valid starts for %d minutes",
        day, len(grid), len(occupied), len(available), duration_minutes,
    )
    return AvailabilitySnapshot(day, grid, occupied, needed, available)
