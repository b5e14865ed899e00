"""
Tests for ILAccountant: IL amounts, fractions and compensation triggers.
"""

import pytest

from zero_il.math.ticks import Q96
from zero_il.strategy import ILAccountant, ILResult, Position, get_q96_percentage

from conftest import make_config

LIQUIDITY = 200_000 * 10 ** 18
BOUNDS = Position(-100, 100)


@pytest.fixture
def accountant():
    return ILAccountant()


class TestComputeIL:

    def test_zero_when_tick_unchanged(self, accountant):
        result = accountant.compute_il(0, 0, LIQUIDITY, BOUNDS, BOUNDS)
        assert result == ILResult(0, 0, 0, 0)
        assert result.is_zero

    def test_price_down_loses_token1(self, accountant):
        result = accountant.compute_il(0, -10, LIQUIDITY, BOUNDS, BOUNDS)

        assert result.il0 == 0
        assert result.il1 > 0
        assert result.il0_fraction == 0
        assert 0 < result.il1_fraction < Q96

    def test_price_up_loses_token0(self, accountant):
        result = accountant.compute_il(0, 10, LIQUIDITY, BOUNDS, BOUNDS)

        assert result.il0 > 0
        assert result.il1 == 0

    def test_il1_monotone_in_distance(self, accountant):
        losses = [accountant.compute_il(0, -t, LIQUIDITY, BOUNDS, BOUNDS).il1 for t in (0, 5, 20, 60, 100)]
        assert losses == sorted(losses)

    def test_il0_monotone_in_distance(self, accountant):
        losses = [accountant.compute_il(0, t, LIQUIDITY, BOUNDS, BOUNDS).il0 for t in (0, 5, 20, 60, 100)]
        assert losses == sorted(losses)

    def test_fully_out_of_range_loses_everything(self, accountant):
        result = accountant.compute_il(0, -100, LIQUIDITY, BOUNDS, BOUNDS)
        assert result.il1_fraction == Q96

    def test_fraction_is_q96_scaled(self, accountant):
        result = accountant.compute_il(0, -10, LIQUIDITY, BOUNDS, BOUNDS)
        # 10 ticks out of a 100 tick half-range: ~10% of token1 gone
        assert result.il1_fraction / Q96 == pytest.approx(0.1, rel=0.05)

    def test_zero_liquidity(self, accountant):
        assert accountant.compute_il(0, -50, 0, BOUNDS, BOUNDS).is_zero

    def test_recentred_bounds_use_current_position(self, accountant):
        shifted = Position(-400, -200)
        result = accountant.compute_il(-298, -298, LIQUIDITY, shifted, shifted)
        assert result.is_zero


class TestCompensations:

    def test_token1_trigger(self, accountant):
        result = accountant.compute_il(0, -10, LIQUIDITY, BOUNDS, BOUNDS)
        trades = accountant.compensations(result, make_config())

        assert len(trades) == 1
        assert trades[0].buy_token0 is False
        assert trades[0].amount == result.il1

    def test_below_trigger(self, accountant):
        result = accountant.compute_il(0, -10, LIQUIDITY, BOUNDS, BOUNDS)
        assert accountant.compensations(result, make_config(trigger=get_q96_percentage(50))) == []

    def test_trigger_is_inclusive(self, accountant):
        result = ILResult(il0=5, il1=0, il0_fraction=get_q96_percentage(1), il1_fraction=0)
        trades = accountant.compensations(result, make_config())
        assert [t.buy_token0 for t in trades] == [True]

    def test_zero_il_never_triggers(self, accountant):
        assert accountant.compensations(ILResult(0, 0, 0, 0), make_config(trigger=0)) == []

    def test_both_sides_token0_first(self, accountant):
        result = ILResult(il0=10, il1=20, il0_fraction=Q96 // 10, il1_fraction=Q96 // 10)
        trades = accountant.compensations(result, make_config())
        assert [(t.buy_token0, t.amount) for t in trades] == [(True, 10), (False, 20)]
