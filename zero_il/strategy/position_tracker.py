"""
Position Tracker

Decides when the managed position must be re-centred and where to, and
how much liquidity a re-centre can actually fund.
"""

import logging

from ..math.ticks import get_sqrt_ratio_at_tick
from ..math.liquidity import (
    get_amount0_delta,
    get_amount1_delta,
    get_liquidity_for_amounts,
)
from .registry import PoolConfig, PoolState, Position

logger = logging.getLogger(__name__)


class PositionTracker:
    """Shift decisions for the managed position."""

    def should_shift(self, state: PoolState, config: PoolConfig, current_tick: int) -> bool:
        """
        True when the tick reached either shift boundary.

        Boundaries: current.lower + shift_lower_distance and
        current.upper + shift_upper_distance (inclusive).
        """
        position = state.current_position
        lower_trigger = position.lower + config.shift_lower_distance
        upper_trigger = position.upper + config.shift_upper_distance
        shift = current_tick <= lower_trigger or current_tick >= upper_trigger
        if shift:
            logger.info(
                f"[Tracker] Tick {current_tick} crossed shift boundary "
                f"[{lower_trigger}, {upper_trigger}]"
            )
        return shift

    def compute_new_bounds(self, center: int, config: PoolConfig, tick_spacing: int) -> Position:
        return Position.centered(center, config, tick_spacing)

    def fundable_liquidity(
        self,
        sqrt_price_x96: int,
        position: Position,
        liquidity: int,
        available0: int,
        available1: int
    ) -> int:
        """
        Largest liquidity <= `liquidity` that the available amounts can pay for
        at `position` (amounts rounded up, as the pool manager charges them).
        """
        sqrt_lower = get_sqrt_ratio_at_tick(position.lower)
        sqrt_upper = get_sqrt_ratio_at_tick(position.upper)

        candidate = min(
            liquidity,
            get_liquidity_for_amounts(sqrt_price_x96, sqrt_lower, sqrt_upper, available0, available1)
        )
        while candidate > 0:
            cost0, cost1 = self._cost(sqrt_price_x96, sqrt_lower, sqrt_upper, candidate)
            if cost0 <= available0 and cost1 <= available1:
                break
            candidate -= 1

        if candidate < liquidity:
            logger.info(f"[Tracker] Re-deposit limited to {candidate} of {liquidity} liquidity")
        return candidate

    @staticmethod
    def _cost(sqrt_price_x96: int, sqrt_lower: int, sqrt_upper: int, liquidity: int) -> tuple:
        if sqrt_price_x96 <= sqrt_lower:
            return get_amount0_delta(sqrt_lower, sqrt_upper, liquidity, True), 0
        if sqrt_price_x96 < sqrt_upper:
            return (
                get_amount0_delta(sqrt_price_x96, sqrt_upper, liquidity, True),
                get_amount1_delta(sqrt_lower, sqrt_price_x96, liquidity, True),
            )
        return 0, get_amount1_delta(sqrt_lower, sqrt_upper, liquidity, True)
