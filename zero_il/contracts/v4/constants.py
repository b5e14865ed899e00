"""
V4 Constants
"""

from ...math.ticks import MIN_SQRT_RATIO, MAX_SQRT_RATIO

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Native currency is represented by the zero address in a PoolKey
NATIVE_CURRENCY = ZERO_ADDRESS

# Price limits usable as sqrtPriceLimitX96 (exclusive bounds)
MIN_SQRT_PRICE_LIMIT = MIN_SQRT_RATIO + 1
MAX_SQRT_PRICE_LIMIT = MAX_SQRT_RATIO - 1

# V4 Fee Constants
# In V4, fee is specified in hundredths of a bip (1/1,000,000)
# So 3000 = 0.30%, 10000 = 1.00%, 33330 = 3.333%
MAX_V4_FEE = 1_000_000  # 100%
MIN_V4_FEE = 0

MIN_TICK_SPACING = 1
MAX_TICK_SPACING = 32767


def v4_fee_to_percent(v4_fee: int) -> float:
    """Convert V4 fee (e.g. 3000) to percentage (e.g. 0.3)."""
    return v4_fee / 10000


def suggest_tick_spacing(fee_percent: float) -> int:
    """
    Calculate tick spacing based on fee using Uniswap V4 formula.

    Formula: tick_spacing = fee_percent × 200

    Example: 0.3% fee → tick_spacing = 60
             1.0% fee → tick_spacing = 200

    Minimum tick_spacing is 1.
    """
    tick_spacing = round(fee_percent * 200)
    return max(MIN_TICK_SPACING, tick_spacing)
