"""
Unit tests for value utilities.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest

from dexpi_bridge.utils.type_utils import (
    as_text,
    coerce_numeric,
    format_number,
    format_quantity,
    parse_number,
    parse_quantity,
)


class TestParseNumber:
    """Tests for parse_number function."""

    def test_plain_numbers(self):
        assert parse_number("42") == 42.0
        assert parse_number(" -3.5 ") == -3.5
        assert parse_number("1e3") == 1000.0
        assert parse_number(".5") == 0.5

    def test_non_numeric(self):
        assert parse_number("abc") is None
        assert parse_number("nan") is None
        assert parse_number("inf") is None
        assert parse_number("") is None
        assert parse_number(None) is None

    def test_booleans_are_not_numbers(self):
        assert parse_number(True) is None

    def test_numbers_pass_through(self):
        assert parse_number(7) == 7.0

    def test_coerce_numeric_keeps_raw_string(self):
        assert coerce_numeric("12.5") == 12.5
        assert coerce_numeric("DN50") == "DN50"


class TestFormatting:
    """Tests for number and quantity formatting."""

    def test_format_number(self):
        assert format_number(100.0) == "100"
        assert format_number(2.5) == "2.5"
        assert format_number(3) == "3"

    def test_as_text(self):
        assert as_text(None) is None
        assert as_text(True) == "true"
        assert as_text(False) == "false"
        assert as_text(4.0) == "4"
        assert as_text("x") == "x"

    def test_format_quantity(self):
        assert format_quantity(100.0, "kg/h") == "100 kg/h"
        assert format_quantity(2.5) == "2.5"
        assert format_quantity("DN50", None) == "DN50"


class TestParseQuantity:
    """Tests for parse_quantity function."""

    def test_value_and_unit(self):
        assert parse_quantity("100 kg/h") == (100.0, "kg/h")
        assert parse_quantity("25.5°C") == (25.5, "°C")

    def test_value_only(self):
        assert parse_quantity("7") == (7.0, "")

    def test_signed_values(self):
        assert parse_quantity("-10 C") == (-10.0, "C")
        assert parse_quantity("+2.5 bar") == (2.5, "bar")
        assert parse_quantity("-.5 K") == (-0.5, "K")

    def test_exponent_values(self):
        assert parse_quantity("1e5 Pa") == (100000.0, "Pa")
        assert parse_quantity("2.5E-3 m3/s") == (0.0025, "m3/s")

    def test_exponent_round_trip_text(self):
        value, unit = parse_quantity("1e5 Pa")
        assert format_quantity(value, unit) == "100000 Pa"

    def test_invalid(self):
        assert parse_quantity("hot") is None
        assert parse_quantity("") is None
        assert parse_quantity(None) is None
        assert parse_quantity("1.2.3 bar") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
