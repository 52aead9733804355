"""Tests for cell sanitizers."""

from datetime import date, datetime

import pytest

from adops.core.sanitize import clean_text, format_date, is_present, parse_date, parse_number


class TestParseNumber:
    """parse_number coercion rules."""

    def test_currency_string(self):
        assert parse_number("$1,234.56") == 1234.56

    @pytest.mark.parametrize("value", ["$", "abc", "--", "N/A", "  ", ""])
    def test_symbol_only_strings_are_absent(self, value):
        assert parse_number(value) is None

    def test_numbers_pass_through(self):
        assert parse_number(42) == 42.0
        assert parse_number(-3.5) == -3.5

    def test_non_finite_rejected(self):
        assert parse_number(float("inf")) is None
        assert parse_number(float("nan")) is None

    def test_signs_kept(self):
        assert parse_number("-1,000") == -1000.0

    def test_non_numeric_types(self):
        assert parse_number(None) is None
        assert parse_number(True) is None
        assert parse_number(date(2025, 1, 1)) is None

    def test_malformed_number(self):
        assert parse_number("1.2.3") is None


class TestIsPresent:
    """is_present treats blanks and N/A as absent."""

    @pytest.mark.parametrize("value", ["", "   ", "n/a", "N/A", " N/a ", None])
    def test_absent(self, value):
        assert is_present(value) is False

    @pytest.mark.parametrize("value", ["0", 0, 0.0, "Acme", False])
    def test_present(self, value):
        assert is_present(value) is True


class TestParseDate:
    """parse_date accepts dates, serials and strings."""

    def test_date_objects(self):
        assert parse_date(date(2025, 8, 1)) == date(2025, 8, 1)
        assert parse_date(datetime(2025, 8, 1, 13, 30)) == date(2025, 8, 1)

    def test_iso_string(self):
        assert parse_date("2025-08-01") == date(2025, 8, 1)
        assert parse_date("2025-08-01T10:00:00Z") == date(2025, 8, 1)

    def test_free_form_string(self):
        assert parse_date("August 3, 2025") == date(2025, 8, 3)
        assert parse_date("8/3/2025") == date(2025, 8, 3)

    def test_spreadsheet_serial(self):
        # 45870 is 2025-08-01 in spreadsheet serial days
        assert parse_date(45870) == date(2025, 8, 1)

    def test_epoch_milliseconds(self):
        assert parse_date(1754006400000) == date(2025, 8, 1)

    @pytest.mark.parametrize("value", ["", "   ", "not a date", "2025-13-45", None, True, float("nan")])
    def test_invalid(self, value):
        assert parse_date(value) is None


class TestTextHelpers:
    def test_clean_text(self):
        assert clean_text("  Acme ") == "Acme"
        assert clean_text("N/A") is None
        assert clean_text(2025.0) == "2025"

    def test_format_date(self):
        assert format_date(date(2025, 8, 1)) == "2025-08-01"
        assert format_date(None) == ""
