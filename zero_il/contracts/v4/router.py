"""
V4 test router.

Plays the role of an external caller of the pool manager: opens an unlock
window, performs one operation for `sender` and settles the resulting
deltas straight from / to the sender's token balances.

Router actions are encoded like V4 router actions: one action byte followed
by the ABI-encoded parameters.
"""

import logging
from typing import Optional

from eth_abi import encode, decode

from ..tokens import normalize_address
from .constants import MIN_SQRT_PRICE_LIMIT, MAX_SQRT_PRICE_LIMIT
from .pool_manager import V4PoolManager, PoolKey, BalanceDelta, SwapParams, EMPTY_SALT

logger = logging.getLogger(__name__)

ROUTER_ADDRESS = "0x00000000000000000000000000000000000A11CE"

POOL_KEY_TYPE = '(address,address,uint24,int24,address)'


class RouterAction:
    MODIFY_LIQUIDITY = 0x00
    SWAP = 0x01
    MINT_CLAIMS = 0x02


class V4Router:
    """Executes single operations against the pool manager on behalf of users."""

    def __init__(self, pool_manager: V4PoolManager, address: str = ROUTER_ADDRESS):
        self.pool_manager = pool_manager
        self.address = normalize_address(address)

    def modify_liquidity(
        self,
        sender: str,
        key: PoolKey,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        salt: bytes = EMPTY_SALT
    ) -> BalanceDelta:
        """Add or remove liquidity owned by the router, paid for by `sender`."""
        data = bytes([RouterAction.MODIFY_LIQUIDITY]) + encode(
            ['address', POOL_KEY_TYPE, 'int24', 'int24', 'int256', 'bytes32'],
            [normalize_address(sender), key.to_tuple(), tick_lower, tick_upper, liquidity_delta, salt]
        )
        return self._decode_delta(self.pool_manager.unlock(self, data))

    def swap(
        self,
        sender: str,
        key: PoolKey,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: Optional[int] = None
    ) -> BalanceDelta:
        """
        Swap for `sender`.

        Args:
            amount_specified: < 0 exact input, > 0 exact output
            sqrt_price_limit_x96: Defaults to the extreme price in the swap direction
        """
        if sqrt_price_limit_x96 is None:
            sqrt_price_limit_x96 = MIN_SQRT_PRICE_LIMIT if zero_for_one else MAX_SQRT_PRICE_LIMIT

        data = bytes([RouterAction.SWAP]) + encode(
            ['address', POOL_KEY_TYPE, 'bool', 'int256', 'uint160'],
            [normalize_address(sender), key.to_tuple(), zero_for_one, amount_specified, sqrt_price_limit_x96]
        )
        return self._decode_delta(self.pool_manager.unlock(self, data))

    def mint_claims(self, sender: str, to: str, currency: str, amount: int):
        """Deposit `amount` of `currency` from `sender` as claims credited to `to`."""
        data = bytes([RouterAction.MINT_CLAIMS]) + encode(
            ['address', 'address', 'address', 'uint256'],
            [normalize_address(sender), normalize_address(to), normalize_address(currency), amount]
        )
        self.pool_manager.unlock(self, data)

    # ------------------------------------------------------------------

    def unlock_callback(self, data: bytes) -> bytes:
        action, params = data[0], data[1:]

        if action == RouterAction.MODIFY_LIQUIDITY:
            sender, key_tuple, lower, upper, liquidity_delta, salt = decode(
                ['address', POOL_KEY_TYPE, 'int24', 'int24', 'int256', 'bytes32'], params
            )
            key = PoolKey(*key_tuple)
            delta = self.pool_manager.modify_liquidity(key, lower, upper, liquidity_delta, salt)
            self._settle_delta(sender, key, delta)
            return self._encode_delta(delta)

        if action == RouterAction.SWAP:
            sender, key_tuple, zero_for_one, amount_specified, limit = decode(
                ['address', POOL_KEY_TYPE, 'bool', 'int256', 'uint160'], params
            )
            key = PoolKey(*key_tuple)
            delta = self.pool_manager.swap(key, SwapParams(zero_for_one, amount_specified, limit))
            self._settle_delta(sender, key, delta)
            logger.info(
                f"[Router] swap for {sender[:10]}... "
                f"delta=({delta.amount0}, {delta.amount1})"
            )
            return self._encode_delta(delta)

        if action == RouterAction.MINT_CLAIMS:
            sender, to, currency, amount = decode(
                ['address', 'address', 'address', 'uint256'], params
            )
            self.pool_manager.settle(currency, sender, amount)
            self.pool_manager.mint(to, currency, amount)
            return b""

        raise ValueError(f"Unknown router action: {action}")

    def _settle_delta(self, sender: str, key: PoolKey, delta: BalanceDelta):
        for currency, amount in ((key.currency0, delta.amount0), (key.currency1, delta.amount1)):
            if amount < 0:
                self.pool_manager.settle(currency, sender, -amount)
            elif amount > 0:
                self.pool_manager.take(currency, sender, amount)

    @staticmethod
    def _encode_delta(delta: BalanceDelta) -> bytes:
        return encode(['int256', 'int256'], [delta.amount0, delta.amount1])

    @staticmethod
    def _decode_delta(data: bytes) -> BalanceDelta:
        amount0, amount1 = decode(['int256', 'int256'], data)
        return BalanceDelta(amount0, amount1)
