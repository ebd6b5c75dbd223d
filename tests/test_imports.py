"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_scheduling_schema(self):
        from src.schemas.scheduling_schema import (
            WEEKDAY_KEYS, AppointmentStatus, GridConfig, Hold, WeekSchedule,
        )
        assert WEEKDAY_KEYS[0] == "monday"
        assert AppointmentStatus.PENDING == "pending"
        assert GridConfig().slot_size_minutes > 0
        assert "sunday" in WeekSchedule.model_fields
        assert "expires_at" in Hold.model_fields


class TestSchedulingImports:
    def test_import_engine_modules(self):
        from src.scheduling import availability, grid, occupancy, resolver, working_hours
        assert callable(working_hours.load_week_schedule)
        assert callable(grid.generate_day_grid)
        assert callable(occupancy.resolve_occupancy)
        assert callable(availability.find_available_slots)
        assert callable(resolver.resolve_requested_time)

    def test_package_reexports(self):
        import src.scheduling as scheduling

        for name in scheduling.__all__:
            assert hasattr(scheduling, name), name

    def test_error_kinds(self):
        from src.scheduling.errors import ErrorKind, SchedulingError, ShiftOverflowError
        assert issubclass(ShiftOverflowError, SchedulingError)
        assert ShiftOverflowError("x").kind == ErrorKind.OVERFLOW


class TestToolImports:
    def test_import_services(self):
        from src.tools.services import SERVICE_CATALOG
        assert "haircut" in SERVICE_CATALOG

    def test_import_availability(self):
        from src.tools.availability import check_availability, get_available_times
        assert callable(check_availability)
        assert callable(get_available_times)

    def test_import_booking(self):
        from src.tools.booking import create_appointment, reschedule_appointment
        assert callable(create_appointment)
        assert callable(reschedule_appointment)


class TestConfigImport:
    def test_import_config(self):
        from src.config import settings
        assert settings.business_name
        assert settings.log_level


class TestEntryPoint:
    def test_main_imports(self):
        import main
        assert callable(main.main)
        assert callable(main.run)
