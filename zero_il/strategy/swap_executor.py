"""
Swap Executors

Compensation trades run inside the strategy's unlock window. The executor
interface is a single `sell` so other venues can be plugged in without
touching the dispatcher.
"""

import logging
from abc import ABC, abstractmethod
from math import isqrt

from ..contracts.v4.pool_manager import V4PoolManager, PoolKey, BalanceDelta, SwapParams
from .errors import InsufficientLiquidity

logger = logging.getLogger(__name__)

# Hundredths of a bip: 1000 = 0.1%
DEFAULT_MAX_SLIPPAGE_PIPS = 1000
PIPS = 1_000_000


class SwapExecutor(ABC):
    """Executes a compensation trade inside an open unlock window."""

    @abstractmethod
    def sell(self, pool_key: PoolKey, sell_token0: bool, amount: int, exact_input: bool = True) -> BalanceDelta:
        """
        Sell token0 (sell_token0=True) or token1.

        Args:
            amount: Amount sold when exact_input, amount bought otherwise

        Returns:
            BalanceDelta of the trade (strategy perspective)
        """
        raise NotImplementedError


class SamePoolSwapExecutor(SwapExecutor):
    """Trades against the same pool the strategy manages."""

    def __init__(self, pool_manager: V4PoolManager, max_slippage_pips: int = DEFAULT_MAX_SLIPPAGE_PIPS):
        if not 0 < max_slippage_pips < PIPS:
            raise ValueError(f"max_slippage_pips must be in (0, {PIPS}), got {max_slippage_pips}")
        self.pool_manager = pool_manager
        self.max_slippage_pips = max_slippage_pips

    def price_limit(self, sqrt_price_x96: int, zero_for_one: bool) -> int:
        """sqrt price limit that caps the move at max_slippage_pips of the price."""
        price = sqrt_price_x96 * sqrt_price_x96
        if zero_for_one:
            return isqrt(price * (PIPS - self.max_slippage_pips) // PIPS)
        return isqrt(price * (PIPS + self.max_slippage_pips) // PIPS)

    def sell(self, pool_key: PoolKey, sell_token0: bool, amount: int, exact_input: bool = True) -> BalanceDelta:
        if amount <= 0:
            raise ValueError("Swap amount must be positive")

        state = self.pool_manager.get_pool_state(pool_key)
        zero_for_one = sell_token0
        params = SwapParams(
            zero_for_one=zero_for_one,
            amount_specified=-amount if exact_input else amount,
            sqrt_price_limit_x96=self.price_limit(state.sqrt_price_x96, zero_for_one)
        )
        delta = self.pool_manager.swap(pool_key, params)

        if exact_input:
            filled = -(delta.amount0 if sell_token0 else delta.amount1)
        else:
            filled = delta.amount1 if sell_token0 else delta.amount0

        if filled != amount:
            raise InsufficientLiquidity(
                f"Swap filled {filled} of {amount} within {self.max_slippage_pips} pips slippage"
            )

        logger.info(
            f"[Executor] Sold token{0 if sell_token0 else 1} "
            f"({'exact in' if exact_input else 'exact out'} {amount}): "
            f"delta=({delta.amount0}, {delta.amount1})"
        )
        return delta
