from .ticks import (
    Q96,
    MIN_TICK,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MAX_SQRT_RATIO,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    align_tick_to_spacing,
    tick_to_price,
)
from .liquidity import (
    LiquidityAmounts,
    to_wei,
    get_amounts_for_liquidity,
    get_liquidity_for_amounts,
    get_liquidity_for_single_amount,
)
from .swap import compute_swap_step, SwapStep
