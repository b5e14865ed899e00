"""
Tests for zero_il/math/liquidity.py

Covers:
- to_wei
- mul_div helpers
- get_amount0_delta / get_amount1_delta (+ signed variants)
- get_liquidity_for_amounts / get_liquidity_for_single_amount
- get_amounts_for_liquidity
"""

import pytest

from zero_il.math.ticks import Q96, get_sqrt_ratio_at_tick
from zero_il.math.liquidity import (
    to_wei,
    mul_div,
    mul_div_rounding_up,
    div_rounding_up,
    get_amount0_delta,
    get_amount1_delta,
    get_amount0_delta_signed,
    get_amount1_delta_signed,
    get_liquidity_for_amounts,
    get_liquidity_for_single_amount,
    get_amounts_for_liquidity,
)

SQRT_LOWER = get_sqrt_ratio_at_tick(-100)
SQRT_UPPER = get_sqrt_ratio_at_tick(100)


class TestToWei:

    def test_integer(self):
        assert to_wei(1000) == 1000 * 10 ** 18

    def test_fraction_is_exact(self):
        assert to_wei("0.1") == 10 ** 17
        assert to_wei(1.5, decimals=6) == 1_500_000


class TestMulDiv:

    def test_rounding(self):
        assert mul_div(7, 3, 2) == 10
        assert mul_div_rounding_up(7, 3, 2) == 11
        assert mul_div_rounding_up(6, 3, 2) == 9
        assert div_rounding_up(7, 2) == 4

    def test_zero_denominator(self):
        with pytest.raises(ZeroDivisionError):
            mul_div(1, 1, 0)


class TestAmountDeltas:
    """Token amounts for 200,000e18 liquidity at [-100, 100] from 1:1 price."""

    def test_reference_amount0_rounded_up(self):
        amount = get_amount0_delta(Q96, SQRT_UPPER, 200_000 * 10 ** 18, True)
        assert amount == 997454414149819226701

    def test_reference_amount1_rounded_up(self):
        amount = get_amount1_delta(SQRT_LOWER, Q96, 200_000 * 10 ** 18, True)
        assert amount == 997454414149819226701

    def test_round_down_is_one_less(self):
        up = get_amount0_delta(Q96, SQRT_UPPER, 200_000 * 10 ** 18, True)
        down = get_amount0_delta(Q96, SQRT_UPPER, 200_000 * 10 ** 18, False)
        assert up - down == 1

    def test_argument_order_does_not_matter(self):
        assert get_amount1_delta(Q96, SQRT_LOWER, 10 ** 20, False) == \
            get_amount1_delta(SQRT_LOWER, Q96, 10 ** 20, False)

    def test_signed_variants(self):
        owed = get_amount0_delta_signed(Q96, SQRT_UPPER, 10 ** 20)
        returned = get_amount0_delta_signed(Q96, SQRT_UPPER, -10 ** 20)
        assert owed > 0 > returned
        assert owed + returned in (0, 1)
        assert get_amount1_delta_signed(SQRT_LOWER, Q96, 0) == 0


class TestGetLiquidityForAmounts:

    def test_symmetric_range_equal_amounts(self):
        liquidity = get_liquidity_for_amounts(Q96, SQRT_LOWER, SQRT_UPPER, 10 ** 21, 10 ** 21)
        amounts = get_amounts_for_liquidity(Q96, SQRT_LOWER, SQRT_UPPER, liquidity)

        assert amounts.amount0 <= 10 ** 21
        assert amounts.amount1 <= 10 ** 21
        # ~200,510e18 liquidity per 1,000 tokens on each side
        assert liquidity == pytest.approx(200_510 * 10 ** 18, rel=1e-4)

    def test_limited_by_scarcer_token(self):
        both = get_liquidity_for_amounts(Q96, SQRT_LOWER, SQRT_UPPER, 10 ** 21, 10 ** 21)
        scarce = get_liquidity_for_amounts(Q96, SQRT_LOWER, SQRT_UPPER, 10 ** 21, 10 ** 20)
        assert scarce < both

    def test_below_range_uses_token0_only(self):
        below = get_sqrt_ratio_at_tick(-200)
        liquidity = get_liquidity_for_amounts(below, SQRT_LOWER, SQRT_UPPER, 10 ** 21, 0)
        assert liquidity > 0
        assert get_liquidity_for_amounts(below, SQRT_LOWER, SQRT_UPPER, 0, 10 ** 21) == 0

    def test_above_range_uses_token1_only(self):
        above = get_sqrt_ratio_at_tick(200)
        assert get_liquidity_for_amounts(above, SQRT_LOWER, SQRT_UPPER, 10 ** 21, 0) == 0
        assert get_liquidity_for_amounts(above, SQRT_LOWER, SQRT_UPPER, 0, 10 ** 21) > 0


class TestSingleAmountLiquidity:

    def test_zero_amount(self):
        assert get_liquidity_for_single_amount(Q96, SQRT_LOWER, SQRT_UPPER, 0, True) == 0

    def test_in_range_token1_matches_lower_leg(self):
        liquidity = get_liquidity_for_single_amount(Q96, SQRT_LOWER, SQRT_UPPER, 10 ** 20, False)
        amounts = get_amounts_for_liquidity(Q96, SQRT_LOWER, SQRT_UPPER, liquidity)
        assert amounts.amount1 <= 10 ** 20
        assert 10 ** 20 - amounts.amount1 < 10 ** 6

    def test_token0_above_range_uses_whole_range(self):
        above = get_sqrt_ratio_at_tick(200)
        liquidity = get_liquidity_for_single_amount(above, SQRT_LOWER, SQRT_UPPER, 10 ** 20, True)
        full = get_liquidity_for_single_amount(SQRT_LOWER, SQRT_LOWER, SQRT_UPPER, 10 ** 20, True)
        assert liquidity == full > 0


class TestGetAmountsForLiquidity:

    def test_reference_amounts_round_down(self):
        amounts = get_amounts_for_liquidity(Q96, SQRT_LOWER, SQRT_UPPER, 200_000 * 10 ** 18)
        assert amounts.amount0 == 997454414149819226700
        assert amounts.amount1 == 997454414149819226700
        assert amounts.liquidity == 200_000 * 10 ** 18

    def test_at_lower_bound_all_token0(self):
        amounts = get_amounts_for_liquidity(SQRT_LOWER, SQRT_LOWER, SQRT_UPPER, 10 ** 20)
        assert amounts.amount1 == 0
        assert amounts.amount0 > 0

    def test_at_upper_bound_all_token1(self):
        amounts = get_amounts_for_liquidity(SQRT_UPPER, SQRT_LOWER, SQRT_UPPER, 10 ** 20)
        assert amounts.amount0 == 0
        assert amounts.amount1 > 0
