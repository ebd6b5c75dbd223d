"""
Working-hours model: loading, normalization and accessors.

Stored configurations come in two shapes per day:

    {"isOpen": true, "openTime": "09:00", "closeTime": "18:00"}          # legacy
    {"isOpen": true, "slots": [{"openTime": "09:00", "closeTime": "12:00"},
                               {"openTime": "13:00", "closeTime": "18:00"}]}

``load_week_schedule`` folds both into ``DaySchedule.shifts`` once, at the
boundary. Everything downstream only ever sees the shift list.

Usage:
    week = load_week_schedule(raw_json)
    for shift in shifts_for(week, date(2026, 10, 19)):
        ...
"""

import json
import logging
from datetime import date, datetime
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from src.schemas.scheduling_schema import (
    WEEKDAY_KEYS,
    DaySchedule,
    Shift,
    WeekSchedule,
)
from src.utils import format_hhmm, parse_hhmm

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "Horários não configurados"
CLOSED_LABEL = "Fechado"

DAY_LABELS: dict[str, str] = {
    "monday": "Segunda-feira",
    "tuesday": "Terça-feira",
    "wednesday": "Quarta-feira",
    "thursday": "Quinta-feira",
    "friday": "Sexta-feira",
    "saturday": "Sábado",
    "sunday": "Domingo",
}


def _first(raw: dict, *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _load_shift(raw: Any, day_key: str) -> Optional[Shift]:
    if not isinstance(raw, dict):
        logger.warning("Skipping malformed shift on %s: %r", day_key, raw)
        return None
    open_raw = _first(raw, "openTime", "open_time")
    close_raw = _first(raw, "closeTime", "close_time")
    try:
        return Shift(open_time=parse_hhmm(open_raw), close_time=parse_hhmm(close_raw))
    except (AttributeError, TypeError, ValueError):
        logger.warning(
            "Skipping unparseable shift on %s: %r-%r", day_key, open_raw, close_raw
        )
        return None


def _load_day(raw: Any, day_key: str) -> Optional[DaySchedule]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        logger.warning("Ignoring malformed day config for %s: %r", day_key, raw)
        return None

    is_open = bool(_first(raw, "isOpen", "is_open"))
    if not is_open:
        return DaySchedule(is_open=False)

    shift_list = _first(raw, "slots", "shifts")
    if shift_list:
        raw_shifts = list(shift_list)
    elif _first(raw, "openTime", "open_time") and _first(raw, "closeTime", "close_time"):
        raw_shifts = [raw]
    else:
        raw_shifts = []

    shifts = [s for s in (_load_shift(r, day_key) for r in raw_shifts) if s is not None]
    return DaySchedule(is_open=True, shifts=shifts)


def load_week_schedule(raw: Union[str, dict, WeekSchedule, None]) -> Optional[WeekSchedule]:
    """Normalize a stored working-hours configuration.

    Returns None when nothing is configured (or the stored text cannot be
    parsed), which callers treat as "always open".
    """
    if raw is None or isinstance(raw, WeekSchedule):
        return raw
    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Working hours configuration is not valid JSON; ignoring it")
            return None
    if not isinstance(raw, dict) or not raw:
        return None

    days = {key: _load_day(raw.get(key), key) for key in WEEKDAY_KEYS}
    try:
        return WeekSchedule(**days)
    except PydanticValidationError as exc:
        logger.warning("Working hours configuration rejected: %s", exc)
        return None


def day_schedule(week: Optional[WeekSchedule], day: date) -> Optional[DaySchedule]:
    """DaySchedule for ``day``, or None when unconfigured."""
    if week is None:
        return None
    return week.for_date(day)


def is_restricted(week: Optional[WeekSchedule], day: date) -> bool:
    """Whether working hours constrain ``day`` at all."""
    return day_schedule(week, day) is not None


def shifts_for(week: Optional[WeekSchedule], day: date) -> list[Shift]:
    """Valid shifts for ``day`` in chronological order (empty when closed).

    Shifts with ``open_time >= close_time`` are dropped with a warning so a
    single bad entry never takes down the whole day.
    """
    schedule = day_schedule(week, day)
    if schedule is None:
        return []
    shifts = []
    for shift in schedule.active_shifts:
        if not shift.is_valid:
            logger.warning(
                "Skipping shift %s-%s on %s: opening must precede closing",
                format_hhmm(shift.open_time), format_hhmm(shift.close_time), day,
            )
            continue
        shifts.append(shift)
    return shifts


def shift_containing(week: Optional[WeekSchedule], moment: datetime) -> Optional[Shift]:
    """The shift whose ``[open, close)`` holds ``moment``, if any."""
    for shift in shifts_for(week, moment.date()):
        if shift.contains(moment.time()):
            return shift
    return None


def is_within_working_hours(week: Optional[WeekSchedule], moment: datetime) -> bool:
    """True when ``moment`` may host an appointment start.

    Unconfigured weeks and unconfigured days place no restriction.
    """
    if not is_restricted(week, moment.date()):
        return True
    return shift_containing(week, moment) is not None


def format_working_hours(week: Optional[WeekSchedule]) -> str:
    """Human-readable week summary, Monday first."""
    if week is None:
        return NOT_CONFIGURED

    lines = []
    for key in WEEKDAY_KEYS:
        schedule: Optional[DaySchedule] = getattr(week, key)
        if schedule is None:
            continue
        ranges = [
            f"{format_hhmm(s.open_time)} às {format_hhmm(s.close_time)}"
            for s in schedule.active_shifts
            if s.is_valid
        ]
        label = " e ".join(ranges) if ranges else CLOSED_LABEL
        lines.append(f"{DAY_LABELS[key]}: {label}")

    return "\n".join(lines) if lines else NOT_CONFIGURED
