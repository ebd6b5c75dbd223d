"""Integration tests: booking tools over the lifecycle and in-memory store."""

import logging

from src.logging_context import NO_SESSION, current_session
from src.schemas.scheduling_schema import GridConfig
from src.scheduling.store import InMemorySchedulingStore
from src.tools.availability import get_available_times
from src.tools.booking import (
    cancel_appointment,
    confirm_appointment,
    create_appointment,
    get_appointment,
    list_contact_appointments,
    reschedule_appointment,
)
from tests.conftest import BUSINESS, MONDAY, NOW, make_week

CUSTOMER = "+55 11 91234-5678"


class TestFullBookingFlow:
    """Look up times, book, confirm, move and cancel one appointment."""

    def test_happy_path(self, store):
        times = get_available_times(store, BUSINESS, MONDAY, 30, now=NOW)
        assert "17:30" in times["times"]

        created = create_appointment(
            store, BUSINESS, CUSTOMER, "2026-10-19T17:20", service_id="haircut", now=NOW
        )
        assert created["success"] is True
        view = created["appointment"]
        assert view["date"] == "2026-10-19"
        assert view["start"] == "17:30"
        assert view["end"] == "18:00"
        assert view["duration_minutes"] == 30
        assert view["status"] == "pending"
        assert view["service"] == "haircut"

        after = get_available_times(store, BUSINESS, MONDAY, 30, now=NOW)
        assert "17:30" not in after["times"]

        confirmed = confirm_appointment(store, view["id"], now=NOW)
        assert confirmed["appointment"]["status"] == "confirmed"

        moved = reschedule_appointment(store, view["id"], "2026-10-19T09:00", now=NOW)
        assert moved["success"] is True
        assert moved["appointment"]["start"] == "09:00"
        assert moved["appointment"]["status"] == "confirmed"

        cancelled = cancel_appointment(store, view["id"], now=NOW)
        assert cancelled["appointment"]["status"] == "cancelled"
        assert cancel_appointment(store, view["id"], now=NOW)["success"] is True

        final = get_available_times(store, BUSINESS, MONDAY, 30, now=NOW)
        assert final["times"] == times["times"]


class TestCreateAppointmentTool:
    def test_explicit_duration_wins_over_service(self, store):
        result = create_appointment(
            store, BUSINESS, CUSTOMER, "2026-10-19T10:00",
            duration_minutes=60, service_id="haircut", now=NOW,
        )
        assert result["appointment"]["end"] == "11:00"

    def test_unknown_service_without_duration(self, store):
        result = create_appointment(
            store, BUSINESS, CUSTOMER, "2026-10-19T10:00", service_id="tattoo", now=NOW
        )
        assert result["success"] is False
        assert result["error_kind"] == "validation"

    def test_missing_duration_and_service(self, store):
        result = create_appointment(store, BUSINESS, CUSTOMER, "2026-10-19T10:00", now=NOW)
        assert result["error_kind"] == "validation"

    def test_invalid_start(self, store):
        result = create_appointment(store, BUSINESS, CUSTOMER, "next monday", 30, now=NOW)
        assert result["success"] is False
        assert result["error_kind"] == "validation"

    def test_confirmed_booking(self, store):
        result = create_appointment(
            store, BUSINESS, CUSTOMER, "2026-10-19T10:00", 30, confirmed=True, now=NOW
        )
        assert result["appointment"]["status"] == "confirmed"

    def test_rejection_carries_suggestions(self, store):
        create_appointment(store, BUSINESS, "5511955554444", "2026-10-19T10:00", 30, now=NOW)
        result = create_appointment(store, BUSINESS, CUSTOMER, "2026-10-19T10:00", 30, now=NOW)
        assert result["success"] is False
        assert result["error_kind"] == "unavailable"
        assert result["suggestions"] == ["09:00", "09:15", "09:30", "10:30", "10:45"]

    def test_overflow_reported(self, store):
        result = create_appointment(store, BUSINESS, CUSTOMER, "2026-10-19T17:40", 30, now=NOW)
        assert result["error_kind"] == "overflow"


class TestLookups:
    def test_get_appointment(self, store):
        created = create_appointment(store, BUSINESS, CUSTOMER, "2026-10-19T10:00", 30, now=NOW)
        view = get_appointment(store, created["appointment"]["id"])
        assert view["start"] == "10:00"

    def test_get_unknown_appointment(self, store):
        assert get_appointment(store, "AP-MISSING") is None

    def test_list_contact_appointments(self, store):
        create_appointment(
            store, BUSINESS, CUSTOMER, "2026-10-19T14:00", 30, confirmed=True, now=NOW
        )
        create_appointment(
            store, BUSINESS, CUSTOMER, "2026-10-19T09:00", 30, confirmed=True, now=NOW
        )
        views = list_contact_appointments(store, BUSINESS, "+55 (11) 91234-5678", now=NOW)
        assert [v["start"] for v in views] == ["09:00", "14:00"]

    def test_past_appointments_hidden_by_default(self, store):
        create_appointment(
            store, BUSINESS, CUSTOMER, "2026-10-12T10:00", 30, confirmed=True, now=NOW
        )
        assert list_contact_appointments(store, BUSINESS, CUSTOMER, now=NOW) == []
        past = list_contact_appointments(store, BUSINESS, CUSTOMER, include_past=True, now=NOW)
        assert len(past) == 1

    def test_unknown_ids_are_not_found(self, store):
        assert confirm_appointment(store, "AP-MISSING", now=NOW)["error_kind"] == "not_found"
        assert cancel_appointment(store, "AP-MISSING", now=NOW)["error_kind"] == "not_found"
        result = reschedule_appointment(store, "AP-MISSING", "2026-10-19T10:00", now=NOW)
        assert result["error_kind"] == "not_found"

    def test_reschedule_invalid_start(self, store):
        result = reschedule_appointment(store, "AP-MISSING", "soon", now=NOW)
        assert result["error_kind"] == "validation"


class TestUnevenSlotGrid:
    """40 minute slots do not divide a 09:00-12:00 shift evenly."""

    def setup_method(self):
        self.store = InMemorySchedulingStore()
        self.store.set_working_hours(BUSINESS, make_week(monday=[("09:00", "12:00")]))
        self.store.set_grid_config(BUSINESS, GridConfig(slot_size_minutes=40, buffer_minutes=0))

    def test_no_offered_start_runs_past_closing(self):
        offered = get_available_times(self.store, BUSINESS, MONDAY, 30, compact=False, now=NOW)
        assert offered["times"] == ["09:00", "09:40", "10:20", "11:00"]

    def test_every_offered_start_is_bookable(self):
        offered = get_available_times(self.store, BUSINESS, MONDAY, 30, compact=False, now=NOW)
        for i, hhmm in enumerate(offered["times"]):
            result = create_appointment(
                self.store, BUSINESS, f"+5511900000{i:03d}", f"2026-10-19T{hhmm}", 30, now=NOW
            )
            assert result["success"] is True, result
            assert result["appointment"]["start"] == hhmm


class TestSessionTagging:
    """Lifecycle log records carry the ``business:contact`` of the appointment owner."""

    def _lifecycle_records(self, caplog):
        return [r for r in caplog.records if r.name == "src.scheduling.lifecycle"]

    def test_every_operation_tagged_with_owner(self, store, caplog):
        expected = f"{BUSINESS}:+5511912345678"
        with caplog.at_level(logging.INFO, logger="src"):
            created = create_appointment(store, BUSINESS, CUSTOMER, "2026-10-19T10:00", 30, now=NOW)
            appointment_id = created["appointment"]["id"]
            confirm_appointment(store, appointment_id, now=NOW)
            reschedule_appointment(store, appointment_id, "2026-10-19T11:00", now=NOW)
            cancel_appointment(store, appointment_id, now=NOW)

        records = self._lifecycle_records(caplog)
        messages = " ".join(r.getMessage() for r in records)
        assert "confirmed" in messages
        assert "rescheduled" in messages
        assert "cancelled" in messages
        assert {r.session_id for r in records} == {expected}

    def test_session_does_not_leak_between_calls(self, store, caplog):
        created = create_appointment(store, BUSINESS, CUSTOMER, "2026-10-19T10:00", 30, now=NOW)
        create_appointment(store, BUSINESS, "+5511900000001", "2026-10-19T14:00", 30, now=NOW)
        assert current_session() == NO_SESSION

        with caplog.at_level(logging.INFO, logger="src"):
            confirm_appointment(store, created["appointment"]["id"], now=NOW)
        assert [r.session_id for r in self._lifecycle_records(caplog)] == [
            f"{BUSINESS}:+5511912345678"
        ]

    def test_unknown_appointment_is_untagged(self, store, caplog):
        with caplog.at_level(logging.INFO, logger="src"):
            result = cancel_appointment(store, "AP-MISSING", now=NOW)
        assert result["success"] is False
        assert all(r.session_id == NO_SESSION for r in caplog.records)
