"""
Tests for zero_il.math.ticks.

Covers:
    - get_sqrt_ratio_at_tick / get_tick_at_sqrt_ratio (exact TickMath port)
    - tick_to_price
    - align_tick_to_spacing
"""

import pytest

from zero_il.math.ticks import (
    Q96,
    MIN_TICK,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MAX_SQRT_RATIO,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    tick_to_price,
    align_tick_to_spacing,
)


class TestGetSqrtRatioAtTick:
    """Exact integer sqrt prices."""

    def test_tick_zero_is_q96(self):
        assert get_sqrt_ratio_at_tick(0) == Q96

    def test_min_tick_is_min_sqrt_ratio(self):
        assert get_sqrt_ratio_at_tick(MIN_TICK) == MIN_SQRT_RATIO

    def test_max_tick_is_max_sqrt_ratio(self):
        assert get_sqrt_ratio_at_tick(MAX_TICK) == MAX_SQRT_RATIO

    def test_out_of_range_raises(self):
        with pytest.raises(ValueError):
            get_sqrt_ratio_at_tick(MAX_TICK + 1)
        with pytest.raises(ValueError):
            get_sqrt_ratio_at_tick(MIN_TICK - 1)

    def test_strictly_increasing(self):
        ticks = [-1000, -100, -10, -1, 0, 1, 10, 100, 1000]
        ratios = [get_sqrt_ratio_at_tick(t) for t in ticks]
        assert ratios == sorted(ratios)
        assert len(set(ratios)) == len(ratios)

    @pytest.mark.parametrize("tick", [-100, 100, 887])
    def test_close_to_float_value(self, tick):
        expected = (1.0001 ** tick) ** 0.5 * Q96
        assert get_sqrt_ratio_at_tick(tick) == pytest.approx(expected, rel=1e-12)


class TestGetTickAtSqrtRatio:
    """Inverse of get_sqrt_ratio_at_tick."""

    @pytest.mark.parametrize("tick", [MIN_TICK, -887, -150, -1, 0, 1, 99, 150, 50000])
    def test_exact_sqrt_maps_back_to_tick(self, tick):
        assert get_tick_at_sqrt_ratio(get_sqrt_ratio_at_tick(tick)) == tick

    def test_between_ticks_rounds_down(self):
        sqrt = get_sqrt_ratio_at_tick(-3) + 1
        assert get_tick_at_sqrt_ratio(sqrt) == -3

    def test_just_below_tick_is_previous_tick(self):
        assert get_tick_at_sqrt_ratio(Q96 - 1) == -1

    def test_max_sqrt_ratio_rejected(self):
        with pytest.raises(ValueError):
            get_tick_at_sqrt_ratio(MAX_SQRT_RATIO)

    def test_below_min_rejected(self):
        with pytest.raises(ValueError):
            get_tick_at_sqrt_ratio(MIN_SQRT_RATIO - 1)


class TestTickToPrice:

    def test_powers_of_base(self):
        assert tick_to_price(0) == 1.0
        assert tick_to_price(100) == pytest.approx(1.0001 ** 100)
        assert tick_to_price(100, invert=True) == pytest.approx(1 / 1.0001 ** 100)


class TestAlignTickToSpacing:

    @pytest.mark.parametrize("tick,spacing,expected", [
        (7, 10, 0),
        (-7, 10, -10),
        (-298, 10, -300),
        (150, 10, 150),
        (-150, 60, -180),
    ])
    def test_round_down(self, tick, spacing, expected):
        assert align_tick_to_spacing(tick, spacing) == expected

    def test_round_up(self):
        assert align_tick_to_spacing(7, 10, round_down=False) == 10
        assert align_tick_to_spacing(-7, 10, round_down=False) == 0
