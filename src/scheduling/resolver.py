"""
Maps a requested time onto the slot grid.

17:40 with a 15 minute slot becomes 17:45. If 17:45 is not a valid
start, the three valid starts closest to 17:45 are suggested instead,
ties going to the earlier time.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from src.config import settings
from src.schemas.scheduling_schema import WeekSchedule
from src.scheduling.grid import round_up_to_slot
from src.scheduling.working_hours import shift_containing, shifts_for
from src.utils import minutes_of_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotResolution:
    """Outcome of resolving one requested time."""

    requested: datetime
    rounded: datetime
    converted: Optional[datetime] = None
    suggestions: list[datetime] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.converted is not None


def grid_anchor(week: Optional[WeekSchedule], moment: datetime) -> int:
    """Minute-of-day the grid around ``moment`` is aligned to.

    Inside a shift that is the shift's opening time; otherwise midnight.
    """
    shift = shift_containing(week, moment)
    return minutes_of_day(shift.open_time) if shift is not None else 0


def next_opening(week: Optional[WeekSchedule], moment: datetime) -> Optional[datetime]:
    """Opening of the first shift that starts after ``moment`` on the same day."""
    for shift in shifts_for(week, moment.date()):
        if shift.open_time > moment.time():
            return datetime.combine(moment.date(), shift.open_time)
    return None


def round_request(
    requested: datetime, slot_size_minutes: int, week: Optional[WeekSchedule] = None
) -> datetime:
    """Round a requested time up onto the grid.

    A request at most one slot before a shift opens snaps to that opening,
    so 08:55 becomes 09:10 for a shift starting at 09:10.
    """
    if shift_containing(week, requested) is None:
        opening = next_opening(week, requested)
        if opening is not None and opening - requested <= timedelta(minutes=slot_size_minutes):
            return opening
    return round_up_to_slot(requested, slot_size_minutes, grid_anchor(week, requested))


def nearest_starts(
    target: datetime, valid_starts: list[datetime], limit: int
) -> list[datetime]:
    """Valid starts ordered by absolute minute distance to ``target``, earliest first on ties."""
    ranked = sorted(
        valid_starts,
        key=lambda s: (abs((s - target).total_seconds()) // 60, s),
    )
    return ranked[:limit]


def resolve_requested_time(
    requested: datetime,
    valid_starts: list[datetime],
    slot_size_minutes: int,
    week: Optional[WeekSchedule] = None,
    max_suggestions: Optional[int] = None,
) -> SlotResolution:
    """Resolve ``requested`` to a valid start or to the nearest alternatives."""
    limit = settings.display.max_suggestions if max_suggestions is None else max_suggestions
    rounded = round_request(requested, slot_size_minutes, week)

    if rounded in valid_starts:
        return SlotResolution(requested=requested, rounded=rounded, converted=rounded)

    suggestions = nearest_starts(rounded, valid_starts, limit)
    logger.debug(
        "Requested %s (rounded %s) unavailable; %d suggestions",
        requested.isoformat(), rounded.isoformat(), len(suggestions),
    )
    return SlotResolution(requested=requested, rounded=rounded, suggestions=suggestions)
