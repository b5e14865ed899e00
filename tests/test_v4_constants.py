"""
Tests for V4 constants and fee/tick utility functions.
"""

import pytest

from zero_il.math.ticks import MIN_SQRT_RATIO, MAX_SQRT_RATIO
from zero_il.contracts.v4.constants import (
    ZERO_ADDRESS,
    NATIVE_CURRENCY,
    MIN_SQRT_PRICE_LIMIT,
    MAX_SQRT_PRICE_LIMIT,
    MAX_V4_FEE,
    MIN_V4_FEE,
    v4_fee_to_percent,
    suggest_tick_spacing,
)


class TestFeeConversion:

    def test_v4_to_percent(self):
        assert v4_fee_to_percent(3000) == pytest.approx(0.3)

    def test_fee_bounds(self):
        assert MIN_V4_FEE == 0
        assert MAX_V4_FEE == 1_000_000


class TestSuggestTickSpacing:

    @pytest.mark.parametrize("fee_percent,expected", [
        (0.3, 60),
        (1.0, 200),
        (0.05, 10),
    ])
    def test_formula(self, fee_percent, expected):
        assert suggest_tick_spacing(fee_percent) == expected

    def test_zero_fee_minimum_one(self):
        assert suggest_tick_spacing(0) == 1


class TestLimits:

    def test_native_is_zero_address(self):
        assert NATIVE_CURRENCY == ZERO_ADDRESS

    def test_price_limits_inside_ratio_bounds(self):
        assert MIN_SQRT_PRICE_LIMIT == MIN_SQRT_RATIO + 1
        assert MAX_SQRT_PRICE_LIMIT == MAX_SQRT_RATIO - 1
