"""Tests for fixed-point amount conversion."""

from decimal import Decimal

import pytest

from blockfund.shared.units import format_units, parse_units


class TestParseUnits:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1", 10**18),
            ("1.5", 15 * 10**17),
            ("0.000000000000000001", 1),
            (" 10 ", 10 * 10**18),
            (Decimal("2.25"), 225 * 10**16),
            (3, 3 * 10**18),
        ],
    )
    def test_parses(self, value: object, expected: int) -> None:
        assert parse_units(value) == expected  # type: ignore[arg-type]

    def test_custom_decimals(self) -> None:
        assert parse_units("12.34", decimals=2) == 1234
        assert parse_units("7", decimals=0) == 7

    def test_too_many_decimal_places(self) -> None:
        with pytest.raises(ValueError, match="decimal places"):
            parse_units("0.123", decimals=2)

    @pytest.mark.parametrize("value", ["", "abc", "1,5", "NaN", "Infinity"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_units(value)

    def test_float_refused(self) -> None:
        with pytest.raises(TypeError):
            parse_units(0.1)  # type: ignore[arg-type]


class TestFormatUnits:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, "0.0"),
            (10**18, "1.0"),
            (15 * 10**17, "1.5"),
            (1, "0.000000000000000001"),
            (-25 * 10**16, "-0.25"),
        ],
    )
    def test_formats(self, value: int, expected: str) -> None:
        assert format_units(value) == expected

    def test_zero_decimals(self) -> None:
        assert format_units(42, decimals=0) == "42"
        assert parse_units(format_units(123456789, decimals=6), decimals=6) == 123456789
