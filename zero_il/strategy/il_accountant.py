"""
IL Accountant

Impermanent loss of the managed liquidity against the baseline:
the same liquidity is valued at the baseline (tick, bounds) and at the
current (tick, bounds); a token whose amount dropped carries a loss.
"""

import logging
from dataclasses import dataclass
from typing import List

from ..math.ticks import Q96, get_sqrt_ratio_at_tick
from ..math.liquidity import LiquidityAmounts, get_amounts_for_liquidity
from .registry import PoolConfig, Position

logger = logging.getLogger(__name__)


@dataclass
class ILResult:
    """IL amounts (token units) and their Q96 fractions of the baseline amounts."""
    il0: int
    il1: int
    il0_fraction: int
    il1_fraction: int

    @property
    def is_zero(self) -> bool:
        return self.il0 == 0 and self.il1 == 0


@dataclass
class Compensation:
    """Buy `amount` of token0 (buy_token0=True) or token1 to offset IL."""
    buy_token0: bool
    amount: int


def amounts_at_tick(tick: int, position: Position, liquidity: int) -> LiquidityAmounts:
    return get_amounts_for_liquidity(
        get_sqrt_ratio_at_tick(tick),
        get_sqrt_ratio_at_tick(position.lower),
        get_sqrt_ratio_at_tick(position.upper),
        liquidity
    )


class ILAccountant:
    """IL computation and compensation triggers."""

    def compute_il(
        self,
        baseline_tick: int,
        current_tick: int,
        liquidity: int,
        baseline_bounds: Position,
        current_bounds: Position
    ) -> ILResult:
        """
        Compute IL of `liquidity` between baseline and now.

        Args:
            baseline_tick: Тик последнего обнуления IL
            current_tick: Текущий тик пула
            liquidity: Liquidity основной позиции
            baseline_bounds: Границы позиции на момент baseline
            current_bounds: Текущие границы позиции

        Returns:
            ILResult; losses only, gains are clamped to zero
        """
        start = amounts_at_tick(baseline_tick, baseline_bounds, liquidity)
        now = amounts_at_tick(current_tick, current_bounds, liquidity)

        il0 = max(start.amount0 - now.amount0, 0)
        il1 = max(start.amount1 - now.amount1, 0)

        il0_fraction = il0 * Q96 // start.amount0 if il0 else 0
        il1_fraction = il1 * Q96 // start.amount1 if il1 else 0

        logger.debug(
            f"[IL] baseline tick={baseline_tick} now tick={current_tick} L={liquidity}: "
            f"il0={il0} il1={il1}"
        )
        return ILResult(il0=il0, il1=il1, il0_fraction=il0_fraction, il1_fraction=il1_fraction)

    def compensations(self, result: ILResult, config: PoolConfig) -> List[Compensation]:
        """Triggered compensation trades, token0 side first."""
        trades = []
        if result.il0 > 0 and result.il0_fraction >= config.il0_trigger_fraction:
            trades.append(Compensation(buy_token0=True, amount=result.il0))
        if result.il1 > 0 and result.il1_fraction >= config.il1_trigger_fraction:
            trades.append(Compensation(buy_token0=False, amount=result.il1))

        for trade in trades:
            logger.info(
                f"[IL] Compensation triggered: buy token{0 if trade.buy_token0 else 1} "
                f"amount={trade.amount}"
            )
        return trades
