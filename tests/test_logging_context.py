"""Tests for the booking session log tag."""

import logging

from src.logging_context import (
    NO_SESSION,
    booking_session,
    current_session,
    install_session_records,
    session_key,
)


class TestSessionKey:
    def test_contact_normalized(self):
        assert session_key("biz-1", "+55 (11) 99999-0000") == "biz-1:+5511999990000"

    def test_missing_contact(self):
        assert session_key("biz-1", None) == "biz-1:"


class TestBookingSession:
    def test_default_is_untagged(self):
        assert current_session() == NO_SESSION

    def test_tag_set_inside_block_and_restored_after(self):
        with booking_session("biz-1", "11 99999 0000") as key:
            assert key == "biz-1:11999990000"
            assert current_session() == key
        assert current_session() == NO_SESSION

    def test_nested_sessions_restore_outer(self):
        with booking_session("biz-1", "111"):
            with booking_session("biz-2", "222"):
                assert current_session() == "biz-2:222"
            assert current_session() == "biz-1:111"

    def test_restored_after_exception(self):
        try:
            with booking_session("biz-1", "111"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert current_session() == NO_SESSION


class TestSessionRecords:
    def setup_method(self):
        install_session_records()

    def test_records_from_any_logger_tagged(self, caplog):
        logger = logging.getLogger("tests.session")
        with caplog.at_level(logging.INFO, logger="tests.session"):
            with booking_session("biz-1", "5511988887777"):
                logger.info("Hold replaced")
            logger.info("Outside any session")
        assert caplog.records[0].session_id == "biz-1:5511988887777"
        assert caplog.records[1].session_id == NO_SESSION

    def test_install_is_idempotent(self):
        install_session_records()
        factory = logging.getLogRecordFactory()
        install_session_records()
        assert logging.getLogRecordFactory() is factory

    def test_format_string_renders_session(self):
        formatter = logging.Formatter("[%(session_id)s] %(message)s")
        with booking_session("biz-1", "111"):
            record = logging.getLogger("tests.session").makeRecord(
                "tests.session", logging.INFO, __file__, 1, "hello", None, None
            )
        assert formatter.format(record) == "[biz-1:111] hello"
