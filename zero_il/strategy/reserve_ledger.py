"""
Reserve Ledger

The reserve is a one-sided buffer held as pool manager claims of the
strategy. Deposits and withdrawals are split between the main position and
the reserve in the reserve-to-position liquidity ratio.
"""

import logging
from dataclasses import dataclass

from ..math.ticks import get_sqrt_ratio_at_tick
from ..math.liquidity import get_liquidity_for_single_amount
from .errors import InsufficientLiquidity
from .registry import PoolState

logger = logging.getLogger(__name__)


@dataclass
class DepositAllocation:
    """Split of deposited liquidity."""
    to_position: int
    to_reserve: int
    reserve_token_amount: int


@dataclass
class WithdrawalAllocation:
    """Split of withdrawn liquidity."""
    from_position: int
    from_reserve: int
    reserve_token_amount: int


class ReserveLedger:
    """Splits deposits and withdrawals between the main position and the reserve."""

    def liquidity_in_reserve(self, state: PoolState, sqrt_price_x96: int) -> int:
        """Single-sided liquidity equivalent of the reserve over the current bounds."""
        return get_liquidity_for_single_amount(
            sqrt_price_x96,
            get_sqrt_ratio_at_tick(state.current_position.lower),
            get_sqrt_ratio_at_tick(state.current_position.upper),
            state.reserve_amount,
            state.reserve_token0
        )

    def allocate_deposit(
        self,
        liquidity_provided: int,
        position_liquidity: int,
        reserve_liquidity: int,
        reserve_side_amount: int
    ) -> DepositAllocation:
        """
        Split a deposit between position and reserve.

        Args:
            liquidity_provided: Liquidity equivalent of the deposited amounts
            position_liquidity: Liquidity of the main position
            reserve_liquidity: Liquidity equivalent of the reserve
            reserve_side_amount: Deposited amount of the reserve token

        Returns:
            DepositAllocation
        """
        if position_liquidity == 0 and reserve_liquidity == 0:
            return DepositAllocation(to_position=liquidity_provided, to_reserve=0, reserve_token_amount=0)

        if position_liquidity == 0:
            to_reserve = liquidity_provided
        else:
            to_reserve = min(liquidity_provided * reserve_liquidity // position_liquidity, liquidity_provided)

        reserve_token_amount = reserve_side_amount * to_reserve // liquidity_provided if liquidity_provided else 0
        allocation = DepositAllocation(
            to_position=liquidity_provided - to_reserve,
            to_reserve=to_reserve,
            reserve_token_amount=reserve_token_amount
        )
        logger.debug(f"[Reserve] Deposit split: {allocation}")
        return allocation

    def allocate_withdrawal(
        self,
        liquidity: int,
        position_liquidity: int,
        reserve_liquidity: int,
        reserve_amount: int
    ) -> WithdrawalAllocation:
        """
        Split a withdrawal between position and reserve.

        Raises:
            InsufficientLiquidity: position cannot cover its part
        """
        if reserve_liquidity == 0:
            from_reserve = 0
        elif position_liquidity == 0:
            from_reserve = min(liquidity, reserve_liquidity)
        else:
            from_reserve = min(liquidity * reserve_liquidity // position_liquidity, reserve_liquidity)

        from_position = liquidity - from_reserve
        if from_position > position_liquidity:
            raise InsufficientLiquidity(
                f"Withdrawal needs {from_position} position liquidity, only {position_liquidity} held"
            )

        reserve_token_amount = reserve_amount * from_reserve // reserve_liquidity if reserve_liquidity else 0
        allocation = WithdrawalAllocation(
            from_position=from_position,
            from_reserve=from_reserve,
            reserve_token_amount=reserve_token_amount
        )
        logger.debug(f"[Reserve] Withdrawal split: {allocation}")
        return allocation

    def sync_reserve(self, state: PoolState, pool_manager, owner: str) -> int:
        """Re-read reserve_amount from the owner's claim balance."""
        state.reserve_amount = pool_manager.balance_of(owner, state.reserve_currency)
        return state.reserve_amount
