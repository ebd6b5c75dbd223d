"""Shared utilities used across the scheduling engine."""

import re
from datetime import date, datetime, time, timedelta
from typing import Union

MINUTES_PER_DAY = 24 * 60


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Contact numbers key holds and appointments, so every entry point runs
    them through here first.

    Examples:
        >>> normalize_phone("+55 (11) 99999-0000")
        '+5511999990000'
        >>> normalize_phone("11 99999 0000")
        '11999990000'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def parse_hhmm(value: Union[str, time]) -> time:
    """Parse an ``HH:MM`` string (single-digit hours allowed) into a time."""
    if isinstance(value, time):
        return value
    return datetime.strptime(value.strip(), "%H:%M").time()


def format_hhmm(value: Union[datetime, time]) -> str:
    """Format a wall-clock value as zero-padded ``HH:MM``."""
    return f"{value.hour:02d}:{value.minute:02d}"


def minutes_of_day(value: Union[datetime, time]) -> int:
    """Minutes elapsed since midnight, ignoring seconds."""
    return value.hour * 60 + value.minute


def at_minutes(day: date, minutes: int) -> datetime:
    """Build the datetime that lies ``minutes`` after midnight of ``day``."""
    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def to_local_naive(moment: datetime) -> datetime:
    """Local wall-clock time without tzinfo; naive values are taken as local already."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)
