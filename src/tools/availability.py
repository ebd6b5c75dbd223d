"""
Availability tools exposed to the chat orchestration and dashboard layers.

Each function takes the ``SchedulingStore`` to read from, never raises,
and returns a plain dict ready to hand back to the calling agent.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional, TypedDict, Union

from src.config import settings
from src.schemas.scheduling_schema import OCCUPYING_STATUSES
from src.scheduling.availability import find_available_slots
from src.scheduling.errors import SchedulingError, ValidationError
from src.scheduling.lifecycle import validate_duration
from src.scheduling.occupancy import appointment_end
from src.scheduling.store import SchedulingStore
from src.utils import format_hhmm

logger = logging.getLogger(__name__)

RANGE_TEMPLATE = "das {start} às {end}"


class BusyInterval(TypedDict):
    """One occupied stretch of the day."""

    start: str
    end: str
    description: str


class BusyResult(TypedDict, total=False):
    """Result from check_availability."""

    success: bool
    date: str
    busy: list[BusyInterval]
    error: str
    error_kind: str


class AvailableTimesResult(TypedDict, total=False):
    """Result from get_available_times."""

    success: bool
    date: str
    times: list[str]
    display: list[str]
    slot_size_minutes: int
    error: str
    error_kind: str


class DateAvailability(TypedDict):
    """Summary of availability for a single date."""

    date: str
    day_name: str
    slot_count: int


def _parse_day(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date {value!r}; expected YYYY-MM-DD.") from None


def _failure(exc: SchedulingError) -> dict[str, Any]:
    logger.info("Availability query rejected (%s): %s", exc.kind.value, exc.message)
    return {"success": False, "error": exc.message, "error_kind": exc.kind.value}


def compact_times(
    times: list[datetime], slot_size_minutes: int, threshold: Optional[int] = None
) -> list[str]:
    """Display form of a list of start times.

    Up to ``threshold`` times are listed individually. Longer lists collapse
    each run of times exactly one slot apart into "das HH:MM às HH:MM".
    """
    threshold = settings.display.compact_threshold if threshold is None else threshold
    if len(times) <= threshold:
        return [format_hhmm(t) for t in times]

    step = timedelta(minutes=slot_size_minutes)
    runs: list[list[datetime]] = []
    for t in times:
        if runs and t - runs[-1][-1] == step:
            runs[-1].append(t)
        else:
            runs.append([t])

    return [
        format_hhmm(run[0]) if len(run) == 1
        else RANGE_TEMPLATE.format(start=format_hhmm(run[0]), end=format_hhmm(run[-1]))
        for run in runs
    ]


def check_availability(
    store: SchedulingStore,
    business_id: str,
    day: Union[str, date],
    now: Optional[datetime] = None,
) -> BusyResult:
    """List the busy intervals of a day (appointments and live holds)."""
    now = now or datetime.now()
    try:
        target = _parse_day(day)
    except SchedulingError as exc:
        return _failure(exc)

    busy: list[tuple[datetime, datetime, str]] = []
    for appt in store.list_appointments(business_id, target, OCCUPYING_STATUSES):
        busy.append((appt.start, appointment_end(appt), appt.description or appt.service or ""))
    for hold in store.list_live_holds(business_id, target, now):
        busy.append((hold.start, hold.end, "reserved"))
    busy.sort(key=lambda item: item[0])

    logger.debug("check_availability %s %s: %d busy intervals", business_id, target, len(busy))
    return {
        "success": True,
        "date": target.isoformat(),
        "busy": [
            {"start": format_hhmm(start), "end": format_hhmm(end), "description": desc}
            for start, end, desc in busy
        ],
    }


def get_available_times(
    store: SchedulingStore,
    business_id: str,
    day: Union[str, date],
    duration_minutes: Any,
    compact: bool = True,
    now: Optional[datetime] = None,
) -> AvailableTimesResult:
    """Valid start times for a service of ``duration_minutes`` on ``day``."""
    now = now or datetime.now()
    try:
        target = _parse_day(day)
        duration = validate_duration(duration_minutes)
    except SchedulingError as exc:
        return _failure(exc)

    grid_config = store.get_grid_config(business_id)
    snapshot = find_available_slots(
        target,
        duration,
        store.get_working_hours(business_id),
        store.list_appointments(business_id, target, OCCUPYING_STATUSES),
        store.list_live_holds(business_id, target, now),
        grid_config,
        now,
    )
    times = snapshot.available_times
    display = (
        compact_times(times, grid_config.slot_size_minutes)
        if compact else [format_hhmm(t) for t in times]
    )
    return {
        "success": True,
        "date": target.isoformat(),
        "times": [format_hhmm(t) for t in times],
        "display": display,
        "slot_size_minutes": grid_config.slot_size_minutes,
    }


def get_available_dates(
    store: SchedulingStore,
    business_id: str,
    start_day: Union[str, date],
    duration_minutes: Any,
    days: Optional[int] = None,
    limit: int = 5,
    now: Optional[datetime] = None,
) -> list[DateAvailability]:
    """The next ``limit`` dates (from ``start_day``) with at least one valid start."""
    days = settings.display.lookahead_days if days is None else days
    try:
        first = _parse_day(start_day)
        validate_duration(duration_minutes)
    except SchedulingError as exc:
        logger.info("get_available_dates rejected: %s", exc.message)
        return []

    results: list[DateAvailability] = []
    for offset in range(days):
        current = first + timedelta(days=offset)
        outcome = get_available_times(
            store, business_id, current, duration_minutes, compact=False, now=now
        )
        if outcome.get("times"):
            results.append({
                "date": current.isoformat(),
                "day_name": current.strftime("%A"),
                "slot_count": len(outcome["times"]),
            })
        if len(results) >= limit:
            break
    return results
