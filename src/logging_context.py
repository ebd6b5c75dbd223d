"""Booking session tag for log records.

Every booking tool call acts for one contact at one business. The tag
``business_id:contact`` lives in a context variable for the duration of
the call and is stamped onto every log record as ``session_id``, so one
customer's negotiation can be followed across holds, confirmations and
reschedules in the log output.

Usage:
    from src.logging_context import booking_session

    with booking_session("biz-1", "+55 11 99999-0000"):
        logger.info("Hold replaced")  # record.session_id == "biz-1:+5511999990000"
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from src.utils import normalize_phone

NO_SESSION = "-"

_current_session: ContextVar[str] = ContextVar("booking_session", default=NO_SESSION)


def session_key(business_id: str, contact: str) -> str:
    return f"{business_id}:{normalize_phone(contact or '')}"


def current_session() -> str:
    return _current_session.get()


@contextmanager
def booking_session(business_id: str, contact: str) -> Iterator[str]:
    """Tag log records emitted inside the block with this contact's session."""
    token = _current_session.set(session_key(business_id, contact))
    try:
        yield _current_session.get()
    finally:
        _current_session.reset(token)


def install_session_records() -> None:
    """Give every ``LogRecord`` a ``session_id`` attribute.

    Installed through the record factory rather than a logger filter so
    records from any logger can be formatted with ``%(session_id)s``.
    Calling it again is a no-op.
    """
    base_factory = logging.getLogRecordFactory()
    if getattr(base_factory, "adds_session_id", False):
        return

    def factory(*args, **kwargs) -> logging.LogRecord:
        record = base_factory(*args, **kwargs)
        record.session_id = _current_session.get()
        return record

    factory.adds_session_id = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(factory)
