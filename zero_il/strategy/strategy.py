"""
Zero-IL Strategy

Composition root: one registry, tracker, accountant, reserve ledger,
share ledger, executor and dispatcher per strategy instance.

Public surface:     set_config, add_liquidity, withdraw_liquidity, views
Callback surface:   after_initialize, after_swap (pool manager only)
"""

import logging
from typing import Optional, Tuple

from ..contracts.tokens import ShareLedger, normalize_address
from ..contracts.v4.constants import NATIVE_CURRENCY
from ..contracts.v4.pool_manager import V4PoolManager, PoolKey, BalanceDelta, SwapParams
from .dispatcher import Action, AtomicDispatcher
from .errors import NativeValueMismatch, NotOwner, NotPoolManager
from .il_accountant import ILAccountant, ILResult
from .position_tracker import PositionTracker
from .registry import PoolConfig, PoolRegistry, PoolState
from .reserve_ledger import ReserveLedger
from .swap_executor import SamePoolSwapExecutor, SwapExecutor, DEFAULT_MAX_SLIPPAGE_PIPS

logger = logging.getLogger(__name__)


class ZeroILStrategy:
    """
    Hooks contract managing one position plus a reserve per pool.

    Example:
        strategy = ZeroILStrategy(address, owner, pool_manager)
        pool_manager.register_hooks(strategy)
        strategy.set_config(key, config, sender=owner)
        pool_manager.initialize(key, sqrt_price_x96)
        shares = strategy.add_liquidity(pool_id, amount0, amount1, sender=user)
    """

    def __init__(
        self,
        address: str,
        owner: str,
        pool_manager: V4PoolManager,
        executor: Optional[SwapExecutor] = None,
        max_slippage_pips: int = DEFAULT_MAX_SLIPPAGE_PIPS
    ):
        self.address = normalize_address(address)
        self.owner = normalize_address(owner)
        self.pool_manager = pool_manager

        self.registry = PoolRegistry()
        self.shares = ShareLedger()
        self.tracker = PositionTracker()
        self.accountant = ILAccountant()
        self.reserve = ReserveLedger()
        self.executor = executor or SamePoolSwapExecutor(pool_manager, max_slippage_pips)
        self.dispatcher = AtomicDispatcher(
            self.address,
            pool_manager,
            self.registry,
            self.shares,
            self.reserve,
            self.tracker,
            self.executor
        )

    # ------------------------------------------------------------------
    # Owner
    # ------------------------------------------------------------------

    def set_config(self, pool_key: PoolKey, config: PoolConfig, sender: str) -> bytes:
        if normalize_address(sender) != self.owner:
            raise NotOwner(f"{sender} is not the owner")
        return self.registry.set_config(pool_key, config)

    # ------------------------------------------------------------------
    # LP surface
    # ------------------------------------------------------------------

    def add_liquidity(self, pool_id: bytes, amount0: int, amount1: int, sender: str, value: int = 0) -> int:
        """
        Deposit tokens and mint shares 1:1 with the liquidity provided.

        Only the position cost and the reserve share are taken from sender.

        Args:
            pool_id: Pool id
            amount0: Token0 amount offered by sender
            amount1: Token1 amount offered by sender
            sender: Depositor
            value: Native value attached (must equal amount0 for native pools)

        Returns:
            Minted share units
        """
        self.registry.require_config(pool_id)
        state = self.registry.require_state(pool_id)

        expected_value = amount0 if normalize_address(state.currency0) == NATIVE_CURRENCY else 0
        if value != expected_value:
            raise NativeValueMismatch(expected_value, value)

        with self.dispatcher.transaction():
            result = self.dispatcher.dispatch(Action.ADD_LIQUIDITY, pool_id, sender, amount0, amount1)
            self.shares.mint(pool_id, sender, result.liquidity)

        logger.info(
            f"[Strategy] {sender[:10]}... deposited {result.amount0}/{result.amount1}, shares={result.liquidity}"
        )
        return result.liquidity

    def withdraw_liquidity(self, pool_id: bytes, share_amount: int, sender: str) -> Tuple[int, int]:
        """
        Burn shares and return the proportional part of position + reserve.

        Returns:
            (amount0, amount1) sent to sender
        """
        state = self.registry.require_state(pool_id)
        if share_amount <= 0:
            raise ValueError("Share amount must be positive")

        with self.dispatcher.transaction():
            total = self.shares.total_supply(pool_id)
            self.shares.burn(pool_id, sender, share_amount)

            sqrt_price = self.pool_manager.get_pool_state(state.pool_key()).sqrt_price_x96
            managed = self.position_liquidity(pool_id) + self.reserve.liquidity_in_reserve(state, sqrt_price)
            liquidity = share_amount * managed // total

            result = self.dispatcher.dispatch(Action.WITHDRAW_LIQUIDITY, pool_id, sender, liquidity)

        logger.info(
            f"[Strategy] {sender[:10]}... withdrew {share_amount} shares -> "
            f"{result.amount0}/{result.amount1}"
        )
        return result.amount0, result.amount1

    # ------------------------------------------------------------------
    # Pool manager callbacks
    # ------------------------------------------------------------------

    def _only_pool_manager(self, caller: str):
        if normalize_address(caller) != self.pool_manager.address:
            raise NotPoolManager(f"{caller} is not the pool manager")

    def after_initialize(self, caller: str, key: PoolKey, sqrt_price_x96: int, tick: int):
        self._only_pool_manager(caller)
        pool_id = key.get_pool_id()
        state = self.registry.initialize_state(
            pool_id,
            normalize_address(key.currency0),
            normalize_address(key.currency1),
            key.fee,
            key.tick_spacing,
            normalize_address(key.hooks),
            tick
        )
        self.reserve.sync_reserve(state, self.pool_manager, self.address)

    def after_swap(self, caller: str, key: PoolKey, params: SwapParams, delta: BalanceDelta):
        """
        Re-centre if needed, then compensate triggered IL.

        Baseline moves to the tick after a shift and after each completed
        compensation.
        """
        self._only_pool_manager(caller)
        pool_id = key.get_pool_id()
        state = self.registry.require_state(pool_id)
        config = self.registry.require_config(pool_id)

        with self.dispatcher.transaction():
            tick = self._refresh_tick(state)

            if self.tracker.should_shift(state, config, tick):
                self.dispatcher.dispatch(Action.SHIFT_POSITION, pool_id, tick)
                state.reset_baseline(tick)

            il = self.compute_current_il(pool_id)
            for compensation in self.accountant.compensations(il, config):
                self.dispatcher.dispatch(
                    Action.COMPENSATE_IL_SWAP, pool_id, compensation.buy_token0, compensation.amount
                )
                state.reset_baseline(self._refresh_tick(state))

    def _refresh_tick(self, state: PoolState) -> int:
        state.last_known_tick = self.pool_manager.get_pool_state(state.pool_key()).tick
        return state.last_known_tick

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_pool_id(self, pool_key: PoolKey) -> bytes:
        return pool_key.get_pool_id()

    def recover_pool_key(self, pool_id: bytes) -> Optional[PoolKey]:
        return self.registry.recover_pool_key(pool_id)

    def get_config(self, pool_id: bytes) -> Optional[PoolConfig]:
        return self.registry.get_config(pool_id)

    def get_state(self, pool_id: bytes) -> Optional[PoolState]:
        return self.registry.get_state(pool_id)

    def position_liquidity(self, pool_id: bytes) -> int:
        state = self.registry.require_state(pool_id)
        return self.dispatcher.position_liquidity(pool_id, state)

    def compute_current_il(self, pool_id: bytes) -> ILResult:
        state = self.registry.require_state(pool_id)
        return self.accountant.compute_il(
            state.baseline_tick,
            state.last_known_tick,
            self.position_liquidity(pool_id),
            state.baseline_position,
            state.current_position
        )

    def share_balance(self, pool_id: bytes, holder: str) -> int:
        return self.shares.balance_of(pool_id, holder)

    def total_shares(self, pool_id: bytes) -> int:
        return self.shares.total_supply(pool_id)
