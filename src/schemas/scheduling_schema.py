"""Working hours, grid configuration, appointment and hold data models."""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.config import settings

WEEKDAY_KEYS: tuple[str, ...] = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


class Shift(BaseModel):
    """One open/close interval within a single day."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    open_time: time = Field(alias="openTime")
    close_time: time = Field(alias="closeTime")

    @property
    def is_valid(self) -> bool:
        return self.open_time < self.close_time

    def contains(self, moment: time) -> bool:
        """True when ``moment`` lies in ``[open_time, close_time)``."""
        return self.open_time <= moment < self.close_time


class DaySchedule(BaseModel):
    """Open/closed flag plus the chronologically ordered shifts of one weekday."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    is_open: bool = Field(default=True, alias="isOpen")
    shifts: tuple[Shift, ...] = ()

    @field_validator("shifts")
    @classmethod
    def _sort_shifts(cls, value: tuple[Shift, ...]) -> tuple[Shift, ...]:
        return tuple(sorted(value, key=lambda s: (s.open_time, s.close_time)))

    @property
    def active_shifts(self) -> tuple[Shift, ...]:
        """Shifts that count for scheduling; empty when the day is closed."""
        return self.shifts if self.is_open else ()


class WeekSchedule(BaseModel):
    """One DaySchedule per weekday. A missing day places no restriction on it."""

    model_config = ConfigDict(frozen=True)

    monday: Optional[DaySchedule] = None
    tuesday: Optional[DaySchedule] = None
    wednesday: Optional[DaySchedule] = None
    thursday: Optional[DaySchedule] = None
    friday: Optional[DaySchedule] = None
    saturday: Optional[DaySchedule] = None
    sunday: Optional[DaySchedule] = None

    def for_date(self, day: date) -> Optional[DaySchedule]:
        return getattr(self, WEEKDAY_KEYS[day.weekday()])


class GridConfig(BaseModel):
    """Slot granularity and the buffer appended after each occupying appointment."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    slot_size_minutes: int = Field(
        default=settings.grid.slot_size_minutes, gt=0, alias="slotSizeMinutes"
    )
    buffer_minutes: int = Field(
        default=settings.grid.buffer_minutes, ge=0, alias="bufferMinutes"
    )


class AppointmentStatus(str, Enum):
    """Lifecycle status of an appointment."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


OCCUPYING_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}
)


class Appointment(BaseModel):
    """A stored booking. ``end`` may be missing on legacy rows."""

    id: str
    business_id: str
    contact: str
    start: datetime
    end: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    status: AppointmentStatus = AppointmentStatus.PENDING
    service: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)


class Hold(BaseModel):
    """Temporary reservation made while a customer is still negotiating."""

    model_config = ConfigDict(frozen=True)

    business_id: str
    contact: str
    start: datetime
    duration_minutes: int = Field(gt=0)
    expires_at: datetime
    appointment_id: Optional[str] = None
    service: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    def is_live(self, now: datetime) -> bool:
        return now < self.expires_at
