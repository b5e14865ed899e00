"""
V4 PoolManager (in-memory)

Singleton pool manager with flash accounting:
- unlock(locker, data) opens an exclusive window and calls
  locker.unlock_callback(data); every currency delta booked inside the window
  must be zero when the callback returns, otherwise the window is rolled back.
- modify_liquidity / swap / settle / take / mint / burn are only allowed
  while a window is open and book deltas against the window's locker.
- Hooks registered by address receive after_initialize and after_swap.

No fee growth accounting: swap fees are charged on input and stay in the
manager.
"""

import copy
import logging
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from web3 import Web3
from eth_abi import encode

from ...math.ticks import (
    MIN_TICK,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MAX_SQRT_RATIO,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
)
from ...math.liquidity import get_amount0_delta_signed, get_amount1_delta_signed
from ...math.swap import compute_swap_step
from ..tokens import TokenLedger, normalize_address
from .constants import (
    ZERO_ADDRESS,
    MAX_V4_FEE,
    MIN_V4_FEE,
    MIN_TICK_SPACING,
    MAX_TICK_SPACING,
    suggest_tick_spacing,
)

logger = logging.getLogger(__name__)

POOL_MANAGER_ADDRESS = "0x000000000004444c5dc75cB358380D2e3dE08A90"
EMPTY_SALT = b"\x00" * 32


class PoolManagerError(Exception):
    """Base error of the pool manager."""


class ManagerLocked(PoolManagerError):
    """Operation requires an open unlock window."""


class CurrencyNotSettled(PoolManagerError):
    """Window closed with non-zero currency deltas."""


class PoolNotInitialized(PoolManagerError):
    pass


class PoolAlreadyInitialized(PoolManagerError):
    pass


class TickMisaligned(PoolManagerError):
    pass


class InvalidTickRange(PoolManagerError):
    pass


class PriceLimitError(PoolManagerError):
    pass


class InsufficientClaimBalance(PoolManagerError):
    pass


class PositionLiquidityUnderflow(PoolManagerError):
    pass


@dataclass
class PoolKey:
    """V4 Pool Key - uniquely identifies a pool."""
    currency0: str  # Token address (lower address)
    currency1: str  # Token address (higher address)
    fee: int        # Fee in hundredths of a bip (0-1,000,000)
    tick_spacing: int  # Tick spacing
    hooks: str = ZERO_ADDRESS  # Hooks address

    def to_tuple(self) -> tuple:
        """Convert to tuple for ABI encoding."""
        return (
            Web3.to_checksum_address(self.currency0),
            Web3.to_checksum_address(self.currency1),
            self.fee,
            self.tick_spacing,
            Web3.to_checksum_address(self.hooks)
        )

    def get_pool_id(self) -> bytes:
        """Calculate pool ID (keccak256 of encoded pool key)."""
        encoded = encode(
            ['address', 'address', 'uint24', 'int24', 'address'],
            list(self.to_tuple())
        )
        return bytes(Web3.keccak(encoded))

    @classmethod
    def from_tokens(
        cls,
        token0: str,
        token1: str,
        fee: int,
        tick_spacing: int = None,
        hooks: str = None
    ) -> 'PoolKey':
        """
        Create PoolKey from token addresses.

        Automatically sorts tokens by address (required for V4).
        """
        addr0 = Web3.to_checksum_address(token0)
        addr1 = Web3.to_checksum_address(token1)

        # Ensure correct order (lower address first)
        if int(addr0, 16) > int(addr1, 16):
            addr0, addr1 = addr1, addr0

        if tick_spacing is None:
            tick_spacing = suggest_tick_spacing(fee / 10000)

        return cls(
            currency0=addr0,
            currency1=addr1,
            fee=fee,
            tick_spacing=tick_spacing,
            hooks=hooks or ZERO_ADDRESS
        )


@dataclass(frozen=True)
class BalanceDelta:
    """
    Token deltas from the caller's perspective.

    Negative = caller owes the manager, positive = manager owes the caller.
    """
    amount0: int = 0
    amount1: int = 0

    def __add__(self, other: 'BalanceDelta') -> 'BalanceDelta':
        return BalanceDelta(self.amount0 + other.amount0, self.amount1 + other.amount1)

    def __neg__(self) -> 'BalanceDelta':
        return BalanceDelta(-self.amount0, -self.amount1)


@dataclass
class SwapParams:
    """amount_specified < 0 is exact input, > 0 is exact output."""
    zero_for_one: bool
    amount_specified: int
    sqrt_price_limit_x96: int


@dataclass
class V4PoolState:
    """V4 Pool state information."""
    pool_id: bytes
    sqrt_price_x96: int
    tick: int
    liquidity: int
    lp_fee: int
    initialized: bool


@dataclass
class _TickInfo:
    liquidity_gross: int = 0
    liquidity_net: int = 0


@dataclass
class _Pool:
    key: PoolKey
    sqrt_price_x96: int
    tick: int
    liquidity: int = 0
    ticks: Dict[int, _TickInfo] = field(default_factory=dict)
    positions: Dict[Tuple[str, int, int, bytes], int] = field(default_factory=dict)


@dataclass
class _LockFrame:
    locker: str
    deltas: Dict[Tuple[str, str], int] = field(default_factory=dict)


class V4PoolManager:
    """
    In-memory V4 PoolManager.

    Token custody goes through a TokenLedger under the manager's own address;
    ERC6909-style claims are tracked per (owner, currency).
    """

    def __init__(self, token_ledger: TokenLedger, address: str = POOL_MANAGER_ADDRESS):
        self.tokens = token_ledger
        self.address = normalize_address(address)
        self._pools: Dict[bytes, _Pool] = {}
        self._claims: Dict[Tuple[str, str], int] = {}
        self._hooks: Dict[str, object] = {}
        self._frames: List[_LockFrame] = []

    # ------------------------------------------------------------------
    # Hooks & pool lifecycle
    # ------------------------------------------------------------------

    def register_hooks(self, hooks) -> None:
        """Register a hooks contract under its `address`."""
        self._hooks[normalize_address(hooks.address)] = hooks
        logger.info(f"[V4 PoolManager] Registered hooks at {hooks.address}")

    def _get_hooks(self, key: PoolKey):
        if normalize_address(key.hooks) == ZERO_ADDRESS:
            return None
        return self._hooks.get(normalize_address(key.hooks))

    def initialize(self, key: PoolKey, sqrt_price_x96: int) -> int:
        """
        Initialize a pool at sqrt_price_x96 and call hooks.after_initialize.

        Returns:
            Initial tick
        """
        if int(key.currency0, 16) >= int(key.currency1, 16):
            raise PoolManagerError("Currencies out of order or equal")
        if not MIN_TICK_SPACING <= key.tick_spacing <= MAX_TICK_SPACING:
            raise PoolManagerError(f"Tick spacing {key.tick_spacing} out of range")
        if not MIN_V4_FEE <= key.fee < MAX_V4_FEE:
            raise PoolManagerError(f"LP fee {key.fee} out of range")

        pool_id = key.get_pool_id()
        if pool_id in self._pools:
            raise PoolAlreadyInitialized(f"Pool 0x{pool_id.hex()} already initialized")

        tick = get_tick_at_sqrt_ratio(sqrt_price_x96)
        self._pools[pool_id] = _Pool(key=key, sqrt_price_x96=sqrt_price_x96, tick=tick)
        logger.info(f"[V4 PoolManager] Initialized pool 0x{pool_id.hex()[:16]}... tick={tick}")

        hooks = self._get_hooks(key)
        if hooks is not None:
            try:
                hooks.after_initialize(self.address, key, sqrt_price_x96, tick)
            except Exception:
                del self._pools[pool_id]
                raise

        return tick

    # ------------------------------------------------------------------
    # Unlock window
    # ------------------------------------------------------------------

    @property
    def is_unlocked(self) -> bool:
        return bool(self._frames)

    @property
    def locker(self) -> Optional[str]:
        """Address that holds the innermost open window."""
        return self._frames[-1].locker if self._frames else None

    def _frame(self) -> _LockFrame:
        if not self._frames:
            raise ManagerLocked("PoolManager is locked; call unlock() first")
        return self._frames[-1]

    def _account(self, currency: str, amount: int):
        if amount == 0:
            return
        frame = self._frame()
        key = (frame.locker, normalize_address(currency))
        frame.deltas[key] = frame.deltas.get(key, 0) + amount

    def _account_pool_delta(self, key: PoolKey, delta: BalanceDelta):
        self._account(key.currency0, delta.amount0)
        self._account(key.currency1, delta.amount1)

    def unlock(self, locker, data: bytes) -> bytes:
        """
        Open an exclusive window for `locker` and run its unlock_callback.

        Any exception inside the window, or unsettled deltas at its end,
        restores the manager (and token custody) to the pre-window state.
        """
        snapshot = self.snapshot()
        frame = _LockFrame(locker=normalize_address(locker.address))
        self._frames.append(frame)

        try:
            result = locker.unlock_callback(data)
            unsettled = {k: v for k, v in frame.deltas.items() if v != 0}
            if unsettled:
                raise CurrencyNotSettled(f"Unsettled deltas: {unsettled}")
        except Exception as e:
            self._frames.pop()
            self.restore(snapshot)
            logger.warning(f"[V4 PoolManager] Window of {frame.locker} rolled back: {e}")
            raise

        self._frames.pop()
        return result

    def currency_delta(self, target: str, currency: str) -> int:
        """Outstanding delta of `target` in the current window."""
        frame = self._frame()
        return frame.deltas.get((normalize_address(target), normalize_address(currency)), 0)

    # ------------------------------------------------------------------
    # Liquidity
    # ------------------------------------------------------------------

    def _get_pool(self, pool_id: bytes) -> _Pool:
        pool = self._pools.get(pool_id)
        if pool is None:
            raise PoolNotInitialized(f"Pool 0x{pool_id.hex()} not initialized")
        return pool

    def _check_ticks(self, key: PoolKey, tick_lower: int, tick_upper: int):
        if tick_lower >= tick_upper:
            raise InvalidTickRange(f"tick_lower {tick_lower} >= tick_upper {tick_upper}")
        if tick_lower < MIN_TICK or tick_upper > MAX_TICK:
            raise InvalidTickRange(f"Ticks [{tick_lower}, {tick_upper}] out of bounds")
        if tick_lower % key.tick_spacing or tick_upper % key.tick_spacing:
            raise TickMisaligned(
                f"Ticks [{tick_lower}, {tick_upper}] not multiples of {key.tick_spacing}"
            )

    def _update_tick(self, pool: _Pool, tick: int, liquidity_delta: int, upper: bool):
        info = pool.ticks.get(tick, _TickInfo())
        info.liquidity_gross += liquidity_delta
        info.liquidity_net += -liquidity_delta if upper else liquidity_delta
        if info.liquidity_gross == 0:
            pool.ticks.pop(tick, None)
        else:
            pool.ticks[tick] = info

    def modify_liquidity(
        self,
        key: PoolKey,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        salt: bytes = EMPTY_SALT
    ) -> BalanceDelta:
        """
        Add (liquidity_delta > 0) or remove (< 0) liquidity for the locker.

        Returns:
            BalanceDelta of the caller (negative amounts are owed)
        """
        frame = self._frame()
        pool = self._get_pool(key.get_pool_id())
        self._check_ticks(key, tick_lower, tick_upper)

        position_key = (frame.locker, tick_lower, tick_upper, salt)
        current = pool.positions.get(position_key, 0)
        if current + liquidity_delta < 0:
            raise PositionLiquidityUnderflow(
                f"Position has {current} liquidity, cannot apply {liquidity_delta}"
            )

        if liquidity_delta != 0:
            self._update_tick(pool, tick_lower, liquidity_delta, upper=False)
            self._update_tick(pool, tick_upper, liquidity_delta, upper=True)

        new_liquidity = current + liquidity_delta
        if new_liquidity == 0:
            pool.positions.pop(position_key, None)
        else:
            pool.positions[position_key] = new_liquidity

        sqrt_lower = get_sqrt_ratio_at_tick(tick_lower)
        sqrt_upper = get_sqrt_ratio_at_tick(tick_upper)
        amount0 = 0
        amount1 = 0

        if pool.tick < tick_lower:
            amount0 = get_amount0_delta_signed(sqrt_lower, sqrt_upper, liquidity_delta)
        elif pool.tick < tick_upper:
            amount0 = get_amount0_delta_signed(pool.sqrt_price_x96, sqrt_upper, liquidity_delta)
            amount1 = get_amount1_delta_signed(sqrt_lower, pool.sqrt_price_x96, liquidity_delta)
            pool.liquidity += liquidity_delta
        else:
            amount1 = get_amount1_delta_signed(sqrt_lower, sqrt_upper, liquidity_delta)

        delta = BalanceDelta(-amount0, -amount1)
        self._account_pool_delta(key, delta)

        logger.debug(
            f"[V4 PoolManager] modify_liquidity [{tick_lower}, {tick_upper}] "
            f"dL={liquidity_delta} delta=({delta.amount0}, {delta.amount1})"
        )
        return delta

    # ------------------------------------------------------------------
    # Swap
    # ------------------------------------------------------------------

    def _next_initialized_tick(self, pool: _Pool, tick: int, zero_for_one: bool) -> Tuple[int, bool]:
        ticks = sorted(pool.ticks)
        if zero_for_one:
            index = bisect_right(ticks, tick)
            if index == 0:
                return MIN_TICK, False
            return ticks[index - 1], True

        index = bisect_right(ticks, tick)
        if index >= len(ticks):
            return MAX_TICK, False
        return ticks[index], True

    def swap(self, key: PoolKey, params: SwapParams) -> BalanceDelta:
        """
        Swap against the pool, crossing initialized ticks.

        Calls hooks.after_swap unless the caller is the pool's own hooks
        contract.

        Returns:
            BalanceDelta of the caller
        """
        frame = self._frame()
        pool_id = key.get_pool_id()
        pool = self._get_pool(pool_id)

        if params.amount_specified == 0:
            raise PoolManagerError("amount_specified must be non-zero")

        zero_for_one = params.zero_for_one
        limit = params.sqrt_price_limit_x96
        if zero_for_one:
            if limit >= pool.sqrt_price_x96:
                raise PriceLimitError(f"Price limit {limit} already exceeded")
            if limit <= MIN_SQRT_RATIO:
                raise PriceLimitError(f"Price limit {limit} out of bounds")
        else:
            if limit <= pool.sqrt_price_x96:
                raise PriceLimitError(f"Price limit {limit} already exceeded")
            if limit >= MAX_SQRT_RATIO:
                raise PriceLimitError(f"Price limit {limit} out of bounds")

        exact_input = params.amount_specified < 0
        remaining = params.amount_specified
        calculated = 0
        sqrt_price = pool.sqrt_price_x96
        tick = pool.tick
        liquidity = pool.liquidity

        while remaining != 0 and sqrt_price != limit:
            sqrt_start = sqrt_price
            tick_next, initialized = self._next_initialized_tick(pool, tick, zero_for_one)
            tick_next = max(MIN_TICK, min(MAX_TICK, tick_next))
            sqrt_next = get_sqrt_ratio_at_tick(tick_next)

            if (zero_for_one and sqrt_next < limit) or (not zero_for_one and sqrt_next > limit):
                target = limit
            else:
                target = sqrt_next

            step = compute_swap_step(sqrt_price, target, liquidity, remaining, key.fee)
            sqrt_price = step.sqrt_price_next_x96

            if exact_input:
                remaining += step.amount_in + step.fee_amount
                calculated += step.amount_out
            else:
                remaining -= step.amount_out
                calculated -= step.amount_in + step.fee_amount

            if sqrt_price == sqrt_next:
                if initialized:
                    liquidity_net = pool.ticks[tick_next].liquidity_net
                    if zero_for_one:
                        liquidity_net = -liquidity_net
                    liquidity += liquidity_net
                tick = tick_next - 1 if zero_for_one else tick_next
            elif sqrt_price != sqrt_start:
                tick = get_tick_at_sqrt_ratio(sqrt_price)

        pool.sqrt_price_x96 = sqrt_price
        pool.tick = tick
        pool.liquidity = liquidity

        if zero_for_one != exact_input:
            delta = BalanceDelta(calculated, params.amount_specified - remaining)
        else:
            delta = BalanceDelta(params.amount_specified - remaining, calculated)

        logger.debug(
            f"[V4 PoolManager] swap zfo={zero_for_one} specified={params.amount_specified} "
            f"delta=({delta.amount0}, {delta.amount1}) tick={tick}"
        )

        hooks = self._get_hooks(key)
        if hooks is not None and normalize_address(key.hooks) != frame.locker:
            hooks.after_swap(self.address, key, params, delta)

        self._account_pool_delta(key, delta)
        return delta

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def settle(self, currency: str, payer: str, amount: int):
        """Pay `amount` of `currency` into the manager on behalf of the locker."""
        if amount < 0:
            raise ValueError("Settle amount must be non-negative")
        self._frame()
        self.tokens.transfer(currency, payer, self.address, amount)
        self._account(currency, amount)

    def take(self, currency: str, to: str, amount: int):
        """Send `amount` of `currency` out of the manager, debiting the locker."""
        if amount < 0:
            raise ValueError("Take amount must be non-negative")
        self._frame()
        self._account(currency, -amount)
        self.tokens.transfer(currency, self.address, to, amount)

    def mint(self, to: str, currency: str, amount: int):
        """Mint claims of `currency` to `to`, debiting the locker."""
        if amount < 0:
            raise ValueError("Mint amount must be non-negative")
        self._frame()
        self._account(currency, -amount)
        claim_key = (normalize_address(to), normalize_address(currency))
        self._claims[claim_key] = self._claims.get(claim_key, 0) + amount

    def burn(self, owner: str, currency: str, amount: int):
        """Burn claims of `owner`, crediting the locker."""
        if amount < 0:
            raise ValueError("Burn amount must be non-negative")
        self._frame()
        claim_key = (normalize_address(owner), normalize_address(currency))
        available = self._claims.get(claim_key, 0)
        if available < amount:
            raise InsufficientClaimBalance(
                f"{owner} holds {available} claims of {currency}, needs {amount}"
            )
        self._claims[claim_key] = available - amount
        self._account(currency, amount)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def balance_of(self, owner: str, currency: str) -> int:
        """Claim balance of `owner` in `currency`."""
        return self._claims.get((normalize_address(owner), normalize_address(currency)), 0)

    def is_pool_initialized(self, pool_id: bytes) -> bool:
        return pool_id in self._pools

    def get_pool_state_by_id(self, pool_id: bytes) -> V4PoolState:
        pool = self._pools.get(pool_id)
        if pool is None:
            return V4PoolState(
                pool_id=pool_id, sqrt_price_x96=0, tick=0, liquidity=0, lp_fee=0, initialized=False
            )
        return V4PoolState(
            pool_id=pool_id,
            sqrt_price_x96=pool.sqrt_price_x96,
            tick=pool.tick,
            liquidity=pool.liquidity,
            lp_fee=pool.key.fee,
            initialized=True
        )

    def get_pool_state(self, key: PoolKey) -> V4PoolState:
        return self.get_pool_state_by_id(key.get_pool_id())

    def get_position_liquidity(
        self,
        pool_id: bytes,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        salt: bytes = EMPTY_SALT
    ) -> int:
        pool = self._get_pool(pool_id)
        return pool.positions.get((normalize_address(owner), tick_lower, tick_upper, salt), 0)

    def get_pool_key(self, pool_id: bytes) -> Optional[PoolKey]:
        pool = self._pools.get(pool_id)
        return pool.key if pool else None

    # ------------------------------------------------------------------
    # Rollback support
    # ------------------------------------------------------------------

    def snapshot(self) -> tuple:
        return copy.deepcopy(self._pools), copy.deepcopy(self._claims), self.tokens.snapshot()

    def restore(self, snapshot: tuple):
        pools, claims, balances = snapshot
        self._pools = copy.deepcopy(pools)
        self._claims = copy.deepcopy(claims)
        self.tokens.restore(balances)
