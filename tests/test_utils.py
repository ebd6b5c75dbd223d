"""Tests for shared utility functions."""

from datetime import date, datetime, time

import pytest

from src.utils import at_minutes, format_hhmm, minutes_of_day, normalize_phone, parse_hhmm


class TestNormalizePhone:
    def test_strips_spaces(self):
        assert normalize_phone("11 99999 0000") == "11999990000"

    def test_strips_dashes(self):
        assert normalize_phone("11-99999-0000") == "11999990000"

    def test_strips_parentheses(self):
        assert normalize_phone("(11) 99999 0000") == "11999990000"

    def test_preserves_leading_plus(self):
        assert normalize_phone("+55 11 99999 0000") == "+5511999990000"

    def test_clean_number_unchanged(self):
        assert normalize_phone("5511999990000") == "5511999990000"

    def test_strips_whitespace(self):
        assert normalize_phone("  5511999990000  ") == "5511999990000"

    def test_mixed_separators(self):
        assert normalize_phone("+55 (11) 99999-0000") == "+5511999990000"


class TestTimeHelpers:
    def test_parse_hhmm(self):
        assert parse_hhmm("09:30") == time(9, 30)
        assert parse_hhmm(" 8:05 ") == time(8, 5)
        assert parse_hhmm(time(7, 0)) == time(7, 0)

    def test_parse_hhmm_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_hhmm("25:00")

    def test_format_hhmm(self):
        assert format_hhmm(datetime(2026, 10, 19, 7, 5)) == "07:05"
        assert format_hhmm(time(17, 45)) == "17:45"

    def test_minutes_of_day(self):
        assert minutes_of_day(time(13, 30)) == 810
        assert minutes_of_day(datetime(2026, 10, 19, 0, 0, 59)) == 0

    def test_at_minutes(self):
        day = date(2026, 10, 19)
        assert at_minutes(day, 555) == datetime(2026, 10, 19, 9, 15)
        assert at_minutes(day, 1440) == datetime(2026, 10, 20, 0, 0)
