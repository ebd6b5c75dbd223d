from src.scheduling.availability import (
    AvailabilitySnapshot,
    ensure_fits,
    find_available_slots,
    find_valid_start_times,
)
from src.scheduling.errors import ErrorKind, SchedulingError
from src.scheduling.grid import (
    generate_day_grid,
    required_slots,
    round_up_to_slot,
    validate_grid_config,
)
from src.scheduling.lifecycle import AppointmentLifecycle, LifecycleResult
from src.scheduling.occupancy import resolve_occupancy
from src.scheduling.resolver import SlotResolution, resolve_requested_time
from src.scheduling.store import InMemorySchedulingStore, SchedulingStore
from src.scheduling.working_hours import load_week_schedule

__all__ = [
    "AvailabilitySnapshot", "ensure_fits", "find_available_slots", "find_valid_start_times",
    "ErrorKind", "SchedulingError",
    "generate_day_grid", "required_slots", "round_up_to_slot", "validate_grid_config",
    "AppointmentLifecycle", "LifecycleResult",
    "resolve_occupancy",
    "SlotResolution", "resolve_requested_time",
    "InMemorySchedulingStore", "SchedulingStore",
    "load_week_schedule",
]
