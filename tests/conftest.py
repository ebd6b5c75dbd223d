"""Shared test fixtures and helpers."""

from datetime import date, datetime, time, timedelta
from typing import Optional

import pytest

from src.schemas.scheduling_schema import (
    Appointment,
    AppointmentStatus,
    DaySchedule,
    GridConfig,
    Hold,
    Shift,
    WeekSchedule,
)
from src.scheduling.lifecycle import AppointmentLifecycle
from src.scheduling.store import InMemorySchedulingStore
from src.tools.services import register_catalog

# 2026-10-18 is a Sunday; the Monday after is the usual test day.
NOW = datetime(2026, 10, 18, 12, 0)
MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 25)
BUSINESS = "biz-1"


def at(day: date, hhmm: str) -> datetime:
    """datetime on ``day`` at ``HH:MM``."""
    hours, minutes = (int(p) for p in hhmm.split(":"))
    return datetime.combine(day, time(hours, minutes))


def hhmm_list(values: list[datetime]) -> list[str]:
    return [v.strftime("%H:%M") for v in values]


def make_shift(open_hhmm: str, close_hhmm: str) -> Shift:
    return Shift(
        open_time=datetime.strptime(open_hhmm, "%H:%M").time(),
        close_time=datetime.strptime(close_hhmm, "%H:%M").time(),
    )


def make_week(
    monday: Optional[list[tuple[str, str]]] = None, sunday_closed: bool = True
) -> WeekSchedule:
    """Week with Monday shifts as given, Sunday closed, other days unconfigured."""
    shifts = [make_shift(o, c) for o, c in (monday or [])]
    return WeekSchedule(
        monday=DaySchedule(is_open=True, shifts=shifts),
        sunday=DaySchedule(is_open=False) if sunday_closed else None,
    )


def make_appointment(
    start: datetime,
    minutes: Optional[int] = 30,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    with_end: bool = True,
    appointment_id: str = "AP-TEST0001",
    contact: str = "5511900000000",
) -> Appointment:
    return Appointment(
        id=appointment_id,
        business_id=BUSINESS,
        contact=contact,
        start=start,
        end=start + timedelta(minutes=minutes) if (with_end and minutes) else None,
        duration_minutes=minutes,
        status=status,
    )


def make_hold(
    start: datetime,
    minutes: int = 30,
    expires_at: Optional[datetime] = None,
    contact: str = "5511911111111",
) -> Hold:
    return Hold(
        business_id=BUSINESS,
        contact=contact,
        start=start,
        duration_minutes=minutes,
        expires_at=expires_at or NOW + timedelta(hours=1),
    )


@pytest.fixture
def single_shift_week() -> WeekSchedule:
    return make_week(monday=[("09:00", "12:00")])


@pytest.fixture
def two_shift_week() -> WeekSchedule:
    return make_week(monday=[("09:00", "12:00"), ("13:00", "18:00")])


@pytest.fixture
def grid_config() -> GridConfig:
    return GridConfig(slot_size_minutes=15, buffer_minutes=0)


@pytest.fixture
def store(two_shift_week, grid_config) -> InMemorySchedulingStore:
    store = InMemorySchedulingStore()
    store.set_working_hours(BUSINESS, two_shift_week)
    store.set_grid_config(BUSINESS, grid_config)
    register_catalog(store)
    return store


@pytest.fixture
def lifecycle(store) -> AppointmentLifecycle:
    return AppointmentLifecycle(store, clock=lambda: NOW)
