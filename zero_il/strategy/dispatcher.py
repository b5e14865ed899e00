"""
Atomic Dispatcher

Every change of the strategy's live pool state runs as one action inside
its own pool manager unlock window:

    dispatch(action, args) -> pool_manager.unlock(dispatcher, payload)
                           -> unlock_callback(payload) -> handler
                           -> reconcile deltas with claims -> window closes

Payload format (as V4 router actions): 1 action byte + ABI-encoded args.
If any step fails or a delta stays open, the pool manager restores itself
and the error propagates.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict

from eth_abi import encode, decode

from ..math.ticks import get_sqrt_ratio_at_tick
from ..math.liquidity import (
    get_amounts_for_liquidity,
    get_liquidity_for_amounts,
    get_liquidity_for_single_amount,
)
from ..contracts.tokens import ShareLedger, normalize_address
from ..contracts.v4.pool_manager import V4PoolManager, PoolKey
from .errors import InsufficientLiquidity, NotPoolManager, UnknownAction
from .position_tracker import PositionTracker
from .registry import PoolRegistry, PoolState
from .reserve_ledger import ReserveLedger
from .swap_executor import SwapExecutor

logger = logging.getLogger(__name__)


class Action(IntEnum):
    ADD_LIQUIDITY = 0x00
    WITHDRAW_LIQUIDITY = 0x01
    SHIFT_POSITION = 0x02
    COMPENSATE_IL_SWAP = 0x03


class DispatchStatus(Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    EXECUTING = "executing"
    SETTLED = "settled"
    ROLLED_BACK = "rolled_back"


PAYLOAD_TYPES = {
    # pool_id, sender, amount0, amount1
    Action.ADD_LIQUIDITY: ['bytes32', 'address', 'uint256', 'uint256'],
    # pool_id, recipient, liquidity
    Action.WITHDRAW_LIQUIDITY: ['bytes32', 'address', 'uint256'],
    # pool_id, center tick
    Action.SHIFT_POSITION: ['bytes32', 'int24'],
    # pool_id, buy_token0, amount
    Action.COMPENSATE_IL_SWAP: ['bytes32', 'bool', 'uint256'],
}

RESULT_TYPES = ['int256', 'int256', 'uint256']


@dataclass
class SettlementResult:
    """
    Outcome of a settled action.

    amount0/amount1: tokens paid in (deposit), paid out (withdrawal) or the
    trade delta (compensation); liquidity: liquidity provided, removed,
    re-deposited or swapped.
    """
    action: Action
    pool_id: bytes
    amount0: int
    amount1: int
    liquidity: int


def encode_action(action: Action, *args) -> bytes:
    return bytes([action]) + encode(PAYLOAD_TYPES[action], list(args))


def decode_action(data: bytes) -> tuple:
    """Returns (Action, args); raises UnknownAction for a bad tag."""
    if not data:
        raise UnknownAction(-1)
    try:
        action = Action(data[0])
    except ValueError:
        raise UnknownAction(data[0]) from None
    return action, decode(PAYLOAD_TYPES[action], data[1:])


class AtomicDispatcher:
    """Executes strategy actions inside pool manager unlock windows."""

    def __init__(
        self,
        address: str,
        pool_manager: V4PoolManager,
        registry: PoolRegistry,
        shares: ShareLedger,
        reserve: ReserveLedger,
        tracker: PositionTracker,
        executor: SwapExecutor
    ):
        self.address = normalize_address(address)
        self.pool_manager = pool_manager
        self.registry = registry
        self.shares = shares
        self.reserve = reserve
        self.tracker = tracker
        self.executor = executor
        self._status: Dict[bytes, DispatchStatus] = {}

        self._handlers = {
            Action.ADD_LIQUIDITY: self._handle_add_liquidity,
            Action.WITHDRAW_LIQUIDITY: self._handle_withdraw_liquidity,
            Action.SHIFT_POSITION: self._handle_shift_position,
            Action.COMPENSATE_IL_SWAP: self._handle_compensate_il_swap,
        }

    def status(self, pool_id: bytes) -> DispatchStatus:
        return self._status.get(pool_id, DispatchStatus.IDLE)

    @contextmanager
    def transaction(self):
        """
        Unit of work over registry, shares and pool manager.

        Any exception restores all three and is re-raised.
        """
        snapshot = (self.registry.snapshot(), self.shares.snapshot(), self.pool_manager.snapshot())
        try:
            yield
        except Exception as e:
            registry_snapshot, shares_snapshot, manager_snapshot = snapshot
            self.registry.restore(registry_snapshot)
            self.shares.restore(shares_snapshot)
            self.pool_manager.restore(manager_snapshot)
            logger.warning(f"[Dispatcher] Unit of work rolled back: {e}")
            raise

    def dispatch(self, action: Action, pool_id: bytes, *args) -> SettlementResult:
        """Run one action in its own unlock window."""
        data = encode_action(action, pool_id, *args)
        self._status[pool_id] = DispatchStatus.DISPATCHING
        logger.info(f"[Dispatcher] {action.name} on 0x{pool_id.hex()[:16]}...")

        try:
            raw = self.pool_manager.unlock(self, data)
        except Exception:
            self._status[pool_id] = DispatchStatus.ROLLED_BACK
            logger.warning(f"[Dispatcher] {action.name} rolled back")
            raise

        self._status[pool_id] = DispatchStatus.SETTLED
        amount0, amount1, liquidity = decode(RESULT_TYPES, raw)
        return SettlementResult(action, pool_id, amount0, amount1, liquidity)

    def unlock_callback(self, data: bytes) -> bytes:
        if self.pool_manager.locker != self.address:
            raise NotPoolManager("unlock_callback outside of a granted window")

        action, args = decode_action(data)
        pool_id = args[0]
        self._status[pool_id] = DispatchStatus.EXECUTING

        amount0, amount1, liquidity = self._handlers[action](*args)
        return encode(RESULT_TYPES, [amount0, amount1, liquidity])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, pool_id: bytes) -> tuple:
        state = self.registry.require_state(pool_id)
        return state, state.pool_key()

    def _sqrt_bounds(self, state: PoolState) -> tuple:
        return (
            get_sqrt_ratio_at_tick(state.current_position.lower),
            get_sqrt_ratio_at_tick(state.current_position.upper),
        )

    def position_liquidity(self, pool_id: bytes, state: PoolState) -> int:
        return self.pool_manager.get_position_liquidity(
            pool_id, self.address, state.current_position.lower, state.current_position.upper
        )

    def _modify_position(self, key: PoolKey, state: PoolState, liquidity_delta: int):
        return self.pool_manager.modify_liquidity(
            key, state.current_position.lower, state.current_position.upper, liquidity_delta
        )

    def _reconcile(self, key: PoolKey):
        """Close open deltas against the strategy's claims."""
        for currency in (key.currency0, key.currency1):
            delta = self.pool_manager.currency_delta(self.address, currency)
            if delta > 0:
                self.pool_manager.mint(self.address, currency, delta)
            elif delta < 0:
                available = self.pool_manager.balance_of(self.address, currency)
                if available < -delta:
                    raise InsufficientLiquidity(
                        f"Claims of {currency} cover {available}, settlement needs {-delta}"
                    )
                self.pool_manager.burn(self.address, currency, -delta)

    def _finish(self, key: PoolKey, state: PoolState):
        self._reconcile(key)
        self.reserve.sync_reserve(state, self.pool_manager, self.address)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _handle_add_liquidity(self, pool_id: bytes, sender: str, amount0: int, amount1: int) -> tuple:
        state, key = self._load(pool_id)
        sqrt_price = self.pool_manager.get_pool_state(key).sqrt_price_x96
        sqrt_lower, sqrt_upper = self._sqrt_bounds(state)

        provided = get_liquidity_for_amounts(sqrt_price, sqrt_lower, sqrt_upper, amount0, amount1)
        if provided == 0:
            raise InsufficientLiquidity("Deposit is too small to provide liquidity")

        allocation = self.reserve.allocate_deposit(
            provided,
            self.position_liquidity(pool_id, state),
            self.reserve.liquidity_in_reserve(state, sqrt_price),
            amount0 if state.reserve_token0 else amount1
        )
        paid0 = 0
        paid1 = 0
        if allocation.to_position > 0:
            delta = self._modify_position(key, state, allocation.to_position)
            paid0 = -delta.amount0
            paid1 = -delta.amount1

        # Only the position cost and the reserve share are taken; the rest stays with the sender
        if state.reserve_token0:
            paid0 += min(allocation.reserve_token_amount, amount0 - paid0)
        else:
            paid1 += min(allocation.reserve_token_amount, amount1 - paid1)

        self.pool_manager.settle(key.currency0, sender, paid0)
        self.pool_manager.settle(key.currency1, sender, paid1)
        self._finish(key, state)

        logger.info(
            f"[Dispatcher] Deposit {paid0}/{paid1} of {amount0}/{amount1} -> L={provided} "
            f"(position {allocation.to_position}, reserve {allocation.to_reserve})"
        )
        return paid0, paid1, provided

    def _handle_withdraw_liquidity(self, pool_id: bytes, recipient: str, liquidity: int) -> tuple:
        state, key = self._load(pool_id)
        sqrt_price = self.pool_manager.get_pool_state(key).sqrt_price_x96

        allocation = self.reserve.allocate_withdrawal(
            liquidity,
            self.position_liquidity(pool_id, state),
            self.reserve.liquidity_in_reserve(state, sqrt_price),
            state.reserve_amount
        )

        amount0 = 0
        amount1 = 0
        if allocation.from_position > 0:
            delta = self._modify_position(key, state, -allocation.from_position)
            amount0 += delta.amount0
            amount1 += delta.amount1

        if allocation.reserve_token_amount > 0:
            self.pool_manager.burn(self.address, state.reserve_currency, allocation.reserve_token_amount)
            if state.reserve_token0:
                amount0 += allocation.reserve_token_amount
            else:
                amount1 += allocation.reserve_token_amount

        self.pool_manager.take(key.currency0, recipient, amount0)
        self.pool_manager.take(key.currency1, recipient, amount1)
        self._finish(key, state)

        logger.info(f"[Dispatcher] Withdrawal L={liquidity} -> {amount0}/{amount1}")
        return amount0, amount1, liquidity

    def _handle_shift_position(self, pool_id: bytes, center: int) -> tuple:
        state, key = self._load(pool_id)
        config = self.registry.require_config(pool_id)
        new_position = self.tracker.compute_new_bounds(center, config, state.tick_spacing)
        liquidity = self.position_liquidity(pool_id, state)
        old_position = state.current_position

        if liquidity == 0:
            state.current_position = new_position
            logger.info(
                f"[Dispatcher] Empty position moved [{old_position.lower}, {old_position.upper}] "
                f"-> [{new_position.lower}, {new_position.upper}]"
            )
            return 0, 0, 0

        self._modify_position(key, state, -liquidity)
        state.current_position = new_position

        sqrt_price = self.pool_manager.get_pool_state(key).sqrt_price_x96
        available0 = (
            self.pool_manager.currency_delta(self.address, key.currency0)
            + self.pool_manager.balance_of(self.address, key.currency0)
        )
        available1 = (
            self.pool_manager.currency_delta(self.address, key.currency1)
            + self.pool_manager.balance_of(self.address, key.currency1)
        )
        new_liquidity = self.tracker.fundable_liquidity(
            sqrt_price, new_position, liquidity, available0, available1
        )
        if new_liquidity > 0:
            self._modify_position(key, state, new_liquidity)

        self._finish(key, state)
        logger.info(
            f"[Dispatcher] Shifted [{old_position.lower}, {old_position.upper}] -> "
            f"[{new_position.lower}, {new_position.upper}], L {liquidity} -> {new_liquidity}"
        )
        return 0, 0, new_liquidity

    def _handle_compensate_il_swap(self, pool_id: bytes, buy_token0: bool, amount: int) -> tuple:
        state, key = self._load(pool_id)
        sqrt_price = self.pool_manager.get_pool_state(key).sqrt_price_x96
        sqrt_lower, sqrt_upper = self._sqrt_bounds(state)
        position_liquidity = self.position_liquidity(pool_id, state)

        liquidity_to_swap = get_liquidity_for_single_amount(
            sqrt_price, sqrt_lower, sqrt_upper, amount, buy_token0
        )

        if state.reserve_token0 != buy_token0:
            # Reserve holds the other token: fund the trade from the position
            if liquidity_to_swap > position_liquidity:
                raise InsufficientLiquidity(
                    f"Compensation needs {liquidity_to_swap} liquidity, position holds {position_liquidity}"
                )
            if liquidity_to_swap > 0:
                self._modify_position(key, state, -liquidity_to_swap)
            delta = self.executor.sell(key, sell_token0=not buy_token0, amount=amount, exact_input=False)
        else:
            reserve_liquidity = self.reserve.liquidity_in_reserve(state, sqrt_price)
            if reserve_liquidity < liquidity_to_swap:
                shortfall = liquidity_to_swap - reserve_liquidity
                if shortfall > position_liquidity:
                    raise InsufficientLiquidity(
                        f"Compensation shortfall {shortfall} exceeds position liquidity {position_liquidity}"
                    )
                self._modify_position(key, state, -shortfall)

            amounts = get_amounts_for_liquidity(sqrt_price, sqrt_lower, sqrt_upper, liquidity_to_swap)
            if reserve_liquidity > 0:
                self._modify_position(key, state, reserve_liquidity)

            sell_amount = amounts.amount1 if buy_token0 else amounts.amount0
            if sell_amount > 0:
                delta = self.executor.sell(key, sell_token0=not buy_token0, amount=sell_amount, exact_input=True)
            else:
                delta = None

        self._finish(key, state)

        amount0 = delta.amount0 if delta else 0
        amount1 = delta.amount1 if delta else 0
        logger.info(
            f"[Dispatcher] Compensated IL buying token{0 if buy_token0 else 1}: "
            f"amount={amount} L={liquidity_to_swap} trade=({amount0}, {amount1})"
        )
        return amount0, amount1, liquidity_to_swap
