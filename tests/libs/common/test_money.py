"""Tests for minor-unit money parsing and formatting."""

from decimal import Decimal

import pytest

from tipjar_common.utils.money import InvalidAmountError, format_minor, major_to_minor, parse_major_amount


class TestParseMajorAmount:
    """Major-unit input from forms is converted to grosz."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("10", 1000),
            ("10.01", 1001),
            ("10,01", 1001),
            (" 1 000,50 ", 100050),
            (10, 1000),
            (Decimal("0.99"), 99),
        ],
    )
    def test_parses_to_minor_units(self, raw: object, expected: int) -> None:
        assert parse_major_amount(raw) == expected

    def test_sub_grosz_fractions_are_floored(self) -> None:
        assert parse_major_amount("10.019") == 1001

    def test_float_input_does_not_lose_a_grosz(self) -> None:
        # 10.01 has no exact binary representation
        assert parse_major_amount(10.01) == 1001

    @pytest.mark.parametrize("raw", ["", "   ", "abc", "10.0.1", "NaN", "inf"])
    def test_rejects_invalid_input(self, raw: str) -> None:
        with pytest.raises(InvalidAmountError):
            parse_major_amount(raw)

    def test_invalid_amount_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_major_amount("ten")


def test_major_to_minor() -> None:
    assert major_to_minor(50) == 5000


def test_format_minor() -> None:
    assert format_minor(1000) == "10.00 PLN"
    assert format_minor(1001, "EUR") == "10.01 EUR"
