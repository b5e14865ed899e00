"""
Uniswap V4 Contracts Module (in-memory)

V4 uses singleton architecture: one pool manager, flash accounting
through unlock windows and hooks called back by the manager.
"""

from .pool_manager import (
    V4PoolManager,
    PoolKey,
    BalanceDelta,
    SwapParams,
    V4PoolState,
    PoolManagerError,
)
from .router import V4Router
from .constants import (
    ZERO_ADDRESS,
    NATIVE_CURRENCY,
    MIN_SQRT_PRICE_LIMIT,
    MAX_SQRT_PRICE_LIMIT,
)

__all__ = [
    'V4PoolManager',
    'V4Router',
    'PoolKey',
    'BalanceDelta',
    'SwapParams',
    'V4PoolState',
    'PoolManagerError',
    'ZERO_ADDRESS',
    'NATIVE_CURRENCY',
    'MIN_SQRT_PRICE_LIMIT',
    'MAX_SQRT_PRICE_LIMIT',
]
