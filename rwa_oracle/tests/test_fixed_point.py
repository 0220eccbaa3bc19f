"""Unit tests for fixed_point."""

from decimal import Decimal

import pytest

from rwa_oracle.src.errors import ArithmeticOverflow
from rwa_oracle.src.fixed_point import (
    I128_MAX,
    I128_MIN,
    checked,
    div_trunc,
    from_fixed,
    mul,
    mul_div,
    rescale,
    to_fixed,
)


class TestChecked:
    """Test the 128-bit range check."""

    def test_bounds_accepted(self) -> None:
        """Values at the range limits should pass."""
        assert checked(I128_MAX) == I128_MAX
        assert checked(I128_MIN) == I128_MIN

    def test_out_of_range(self) -> None:
        """Values past the limits should raise."""
        with pytest.raises(ArithmeticOverflow, match="128-bit"):
            checked(I128_MAX + 1)
        with pytest.raises(ArithmeticOverflow, match="128-bit"):
            checked(I128_MIN - 1)

    def test_mul_overflow(self) -> None:
        """Overflowing products should raise."""
        with pytest.raises(ArithmeticOverflow):
            mul(I128_MAX, 2)


class TestDivTrunc:
    """Test truncating division."""

    def test_truncates_toward_zero(self) -> None:
        """Negative quotients should round toward zero, not down."""
        assert div_trunc(7, 2) == 3
        assert div_trunc(-7, 2) == -3
        assert div_trunc(7, -2) == -3
        assert div_trunc(-7, -2) == 3

    def test_division_by_zero(self) -> None:
        """Division by zero should raise ArithmeticOverflow."""
        with pytest.raises(ArithmeticOverflow, match="Division by zero"):
            div_trunc(1, 0)

    def test_mul_div(self) -> None:
        """mul_div should multiply before dividing."""
        assert mul_div(3, 10, 4) == 7

    def test_mul_div_wide_intermediate(self) -> None:
        """Only the quotient has to fit into 128 bits."""
        assert mul_div(I128_MAX, 10, 10) == I128_MAX
        with pytest.raises(ArithmeticOverflow):
            mul_div(I128_MAX, 2, 1)


class TestRescale:
    """Test moving values between scales."""

    def test_scale_up(self) -> None:
        assert rescale(1_005, 3, 14) == 100_500_000_000_000

    def test_scale_down_truncates(self) -> None:
        """Scaling down should drop digits toward zero."""
        assert rescale(1_999, 3, 0) == 1
        assert rescale(-1_999, 3, 0) == -1

    def test_same_scale(self) -> None:
        assert rescale(42, 8, 8) == 42

    def test_overflow(self) -> None:
        """Scaling past the range should raise."""
        with pytest.raises(ArithmeticOverflow):
            rescale(10**30, 0, 18)


class TestDecimalConversion:
    """Test conversion between Decimal and fixed point."""

    def test_to_fixed(self) -> None:
        assert to_fixed(Decimal("0.5"), 14) == 50_000_000_000_000
        assert to_fixed("1", 2) == 100
        assert to_fixed(3, 0) == 3

    def test_to_fixed_truncates(self) -> None:
        """Digits beyond the scale should be dropped."""
        assert to_fixed(Decimal("1.239"), 2) == 123
        assert to_fixed(Decimal("-1.239"), 2) == -123

    def test_to_fixed_not_finite(self) -> None:
        """Infinity and NaN should raise."""
        with pytest.raises(ArithmeticOverflow, match="not a finite number"):
            to_fixed(Decimal("Infinity"), 2)

    def test_from_fixed(self) -> None:
        assert from_fixed(50_000_000_000_000, 14) == Decimal("0.5")
        assert from_fixed(-123, 2) == Decimal("-1.23")
