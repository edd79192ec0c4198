"""
Test suite for the accrual engine

Tests growth factor, truncating balance computation, checked arithmetic and
the time-based invariants every balance must satisfy.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from accrual_ledger.accrual import (
    MAX_AMOUNT, PRECISION, UINT256_MAX, accrued_interest, checked_add,
    checked_mul, checked_sub, compute_balance, elapsed_time, growth_factor,
    validate_amount
)
from accrual_ledger.errors import ArithmeticOverflow, InvalidAmount


principals = st.integers(min_value=0, max_value=10 ** 30)
rates = st.integers(min_value=0, max_value=10 ** 12)
durations = st.integers(min_value=0, max_value=10 ** 9)


class TestGrowthFactor:
    """Test linear growth factor"""

    def test_no_elapsed_time_is_identity(self):
        assert growth_factor(5 * 10 ** 10, 0) == PRECISION

    def test_linear_in_time(self):
        rate = 5 * 10 ** 10
        assert growth_factor(rate, 3600) == PRECISION + rate * 3600
        assert growth_factor(rate, 7200) - PRECISION == 2 * (growth_factor(rate, 3600) - PRECISION)

    def test_zero_rate(self):
        assert growth_factor(0, 10 ** 9) == PRECISION


class TestComputeBalance:
    """Test balance computation and rounding"""

    def test_one_hour_at_default_rate(self):
        principal = 1000 * 10 ** 18
        balance = compute_balance(principal, 5 * 10 ** 10, 3600)
        assert balance == principal + 18 * 10 ** 16

    def test_truncates_toward_zero(self):
        # 1 * (1e18 + 1) / 1e18 = 1.000000000000000001 -> 1
        assert compute_balance(1, 1, 1) == 1
        assert accrued_interest(1, 1, 1) == 0

    def test_zero_principal(self):
        assert compute_balance(0, 10 ** 12, 10 ** 6) == 0

    @given(principals, rates, durations)
    def test_never_below_principal(self, principal, rate, elapsed):
        assert compute_balance(principal, rate, elapsed) >= principal

    @given(principals, rates, durations, durations)
    def test_monotonic_in_time(self, principal, rate, t1, extra):
        assert compute_balance(principal, rate, t1 + extra) >= compute_balance(principal, rate, t1)

    @settings(max_examples=200)
    @given(principals, rates, st.integers(min_value=1, max_value=10 ** 8))
    def test_equal_intervals_grow_equally(self, principal, rate, dt):
        first = compute_balance(principal, rate, dt) - compute_balance(principal, rate, 0)
        second = compute_balance(principal, rate, 2 * dt) - compute_balance(principal, rate, dt)
        assert abs(second - first) <= 1


class TestElapsedTime:
    """Test elapsed time policy"""

    def test_never_accrued_counts_as_zero(self):
        assert elapsed_time(None, 1_700_000_000) == 0

    def test_normal_interval(self):
        assert elapsed_time(100, 160) == 60

    def test_clock_before_last_accrual_counts_as_zero(self):
        assert elapsed_time(200, 100) == 0


class TestCheckedArithmetic:
    """Test unsigned 256-bit checked arithmetic"""

    def test_add_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_add(UINT256_MAX, 1)

    def test_sub_underflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_sub(1, 2)

    def test_mul_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_mul(2 ** 200, 2 ** 100)

    def test_compute_balance_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            compute_balance(UINT256_MAX, 1, 1)

    def test_in_range(self):
        assert checked_add(1, 2) == 3
        assert checked_sub(3, 3) == 0
        assert checked_mul(2, 3) == 6


class TestValidateAmount:
    """Test amount validation"""

    def test_valid(self):
        assert validate_amount(0) == 0
        assert validate_amount(MAX_AMOUNT) == MAX_AMOUNT

    @pytest.mark.parametrize("value", [-1, 1.5, "10", True, None, UINT256_MAX + 1])
    def test_invalid(self, value):
        with pytest.raises(InvalidAmount):
            validate_amount(value)
