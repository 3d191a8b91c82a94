"""Tests for src/tools/calculator.py"""

import pytest

from src.tools.calculator import add, format_number, multiply


class TestArithmetic:
    def test_add(self):
        assert add(3, 4) == 7
        assert add(1.5, 2) == 3.5

    def test_multiply(self):
        assert multiply(123, 456) == 56088
        assert multiply(2.5, 4) == 10.0


class TestFormatNumber:
    @pytest.mark.parametrize(
        "value, expected",
        [(96, "96"), (10.0, "10"), (2.5, "2.5"), (0, "0"), (-3.0, "-3")],
    )
    def test_integral_values_drop_decimal(self, value, expected):
        assert format_number(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [(0.1 + 0.2, "0.3"), (1.1 * 3, "3.3"), (0.1 * 3 * 10, "3")],
    )
    def test_float_noise_is_rounded_away(self, value, expected):
        assert format_number(value) == expected
