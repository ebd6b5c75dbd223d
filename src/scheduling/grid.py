"""
Slot grid generation and rounding helpers.

A grid is the ordered list of start-of-slot datetimes for one calendar
day. With a 15 minute slot and a 07:00-12:00 shift the grid is
07:00, 07:15, ..., 11:45. A start is only emitted when its whole slot
fits before the shift closes, so 09:00-09:50 with 20 minute slots
gives 09:00 and 09:20.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional

from src.config import GridDefaults, settings
from src.schemas.scheduling_schema import GridConfig, Shift, WeekSchedule
from src.scheduling.errors import ValidationError
from src.scheduling.working_hours import is_restricted, shifts_for
from src.utils import MINUTES_PER_DAY, at_minutes, minutes_of_day

logger = logging.getLogger(__name__)

SlotGrid = list[datetime]


def required_slots(duration_minutes: int, slot_size_minutes: int) -> int:
    """Number of consecutive slots a service needs: ceil(duration / slot)."""
    return -(-duration_minutes // slot_size_minutes)


def generate_shift_slots(day: date, shift: Shift, slot_size_minutes: int) -> SlotGrid:
    """Slot starts from the shift's opening whose full slot ends by closing."""
    open_minutes = minutes_of_day(shift.open_time)
    close_minutes = minutes_of_day(shift.close_time)
    return [
        at_minutes(day, m)
        for m in range(open_minutes, close_minutes - slot_size_minutes + 1, slot_size_minutes)
    ]


def generate_day_grid(
    day: date, week: Optional[WeekSchedule], slot_size_minutes: int
) -> SlotGrid:
    """Build the grid for ``day``.

    Closed days and open days without shifts yield an empty grid. A week
    (or weekday) with no configuration at all is treated as open around
    the clock.
    """
    if slot_size_minutes <= 0:
        raise ValueError(f"slot_size_minutes must be > 0, got {slot_size_minutes}")

    if not is_restricted(week, day):
        last = MINUTES_PER_DAY - slot_size_minutes
        return [at_minutes(day, m) for m in range(0, last + 1, slot_size_minutes)]

    slots: set[datetime] = set()
    for shift in shifts_for(week, day):
        slots.update(generate_shift_slots(day, shift, slot_size_minutes))

    grid = sorted(slots)
    logger.debug("Generated %d slots for %s (slot=%dmin)", len(grid), day, slot_size_minutes)
    return grid


def round_up_to_slot(
    moment: datetime, slot_size_minutes: int, anchor_minutes: int = 0
) -> datetime:
    """Smallest ``anchor + k * slot`` that is not earlier than ``moment``.

    The anchor is counted in minutes from midnight; the default of 0
    rounds to multiples of the slot size from midnight, so 17:40 with a
    15 minute slot becomes 17:45.
    """
    midnight = datetime.combine(moment.date(), datetime.min.time())
    step = slot_size_minutes * 60
    offset = int((moment - midnight).total_seconds()) - anchor_minutes * 60
    steps = -(-offset // step)
    return midnight + timedelta(seconds=anchor_minutes * 60 + steps * step)


def round_to_nearest_slot(moment: datetime, slot_size_minutes: int) -> datetime:
    """Round to the closest multiple of the slot size from midnight (halves go up)."""
    minutes = minutes_of_day(moment)
    rounded = (2 * minutes + slot_size_minutes) // (2 * slot_size_minutes) * slot_size_minutes
    return at_minutes(moment.date(), rounded)


def validate_grid_config(
    slot_size_minutes: Any, buffer_minutes: Any = 0, defaults: GridDefaults = settings.grid
) -> GridConfig:
    """Check a business's grid settings before they are saved.

    Raises:
        ValidationError: Slot size or buffer is not an integer or is out of bounds.
    """
    for name, value in (("slot_size_minutes", slot_size_minutes),
                        ("buffer_minutes", buffer_minutes)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be a whole number of minutes, got {value!r}.")

    low, high = defaults.min_slot_size_minutes, defaults.max_slot_size_minutes
    if not low <= slot_size_minutes <= high:
        raise ValidationError(
            f"Slot size must be between {low} and {high} minutes, got {slot_size_minutes}."
        )
    if not 0 <= buffer_minutes <= defaults.max_buffer_minutes:
        raise ValidationError(
            f"Buffer must be between 0 and {defaults.max_buffer_minutes} minutes, "
            f"got {buffer_minutes}."
        )
    return GridConfig(slot_size_minutes=slot_size_minutes, buffer_minutes=buffer_minutes)
