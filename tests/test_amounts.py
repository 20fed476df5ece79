"""
Test suite for amounts module

Tests Decimal coercion, cent rounding, and rejection of non-finite input.
"""

from decimal import Decimal

from bank_ledger.amounts import (
    ZERO, quantize, to_amount, to_positive_amount, format_amount
)


class TestAmounts:
    """Test amount coercion helpers"""

    def test_quantize_half_up(self):
        """Test that derived figures are rounded to two places, half up"""
        assert quantize(Decimal("10.005")) == Decimal("10.01")
        assert quantize(Decimal("3.3333")) == Decimal("3.33")

    def test_rejects_sub_cent_input(self):
        """Test that caller amounts finer than a cent are refused, not rounded"""
        assert to_amount("10.005") is None
        assert to_amount(Decimal("100.004")) is None
        assert to_amount(0.001) is None
        # Trailing zeros are still whole cents
        assert to_amount("10.500") == Decimal("10.50")

    def test_rejects_out_of_range(self):
        assert to_amount(Decimal("1E+40")) is None

    def test_float_goes_through_str(self):
        """Test that floats don't leak their binary expansion"""
        assert to_amount(0.1) == Decimal("0.10")
        assert str(to_amount(0.1)) == "0.10"

    def test_int_and_decimal_input(self):
        assert to_amount(5) == Decimal("5.00")
        assert to_amount(Decimal("7.5")) == Decimal("7.50")

    def test_rejects_non_numbers(self):
        """Test that malformed and non-finite values become None"""
        assert to_amount("abc") is None
        assert to_amount(None) is None
        assert to_amount(True) is None
        assert to_amount(Decimal("NaN")) is None
        assert to_amount("inf") is None

    def test_positive_amount(self):
        assert to_positive_amount("0.01") == Decimal("0.01")
        assert to_positive_amount("0") is None
        assert to_positive_amount("-5") is None
        assert to_positive_amount("0.004") is None
        assert to_positive_amount("0.005") is None

    def test_zero_constant(self):
        assert ZERO == Decimal("0")
        assert str(ZERO) == "0.00"

    def test_format_amount(self):
        assert format_amount(Decimal("1234.5")) == "1,234.50"
        assert format_amount(Decimal("0")) == "0.00"
