"""
Uniswap V4 Tick Mathematics

Основные формулы:
- price(i) = 1.0001^i
- sqrtPriceX96 = sqrt(price) * 2^96

Exact conversions (get_sqrt_ratio_at_tick / get_tick_at_sqrt_ratio) follow
TickMath bit for bit, so amounts derived from them match on-chain values to
the wei. tick_to_price is a float helper for display only.
"""

# Константы
Q96 = 2 ** 96
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342
MAX_UINT256 = 2 ** 256 - 1

# 1 / sqrt(1.0001)^(2^i) in Q128, i = 0..19
_TICK_RATIOS = (
    0xfffcb933bd6fad37aa2d162d1a594001,
    0xfff97272373d413259a46990580e213a,
    0xfff2e50f5f656932ef12357cf3c7fdcc,
    0xffe5caca7e10e4e61c3624eaa0941cd0,
    0xffcb9843d60f6159c9db58835c926644,
    0xff973b41fa98c081472e6896dfb254c0,
    0xff2ea16466c96a3843ec78b326b52861,
    0xfe5dee046a99a2a811c461f1969c3053,
    0xfcbe86c7900a88aedcffc83b479aa3a4,
    0xf987a7253ac413176f2b074cf7815e54,
    0xf3392b0822b70005940c7a398e4b70f3,
    0xe7159475a2c29b7443b29c7fa6e889d9,
    0xd097f3bdfd2022b8845ad8f792aa5825,
    0xa9f746462d870fdf8a65dc1f90e061e5,
    0x70d869a156d2a1b890bb3df62baf32f7,
    0x31be135f97d08fd981231505542fcfa6,
    0x9aa508b5b7a84e1c677de54f3e99bc9,
    0x5d6af8dedb81196699c329225ee604,
    0x2216e584f5fa1ea926041bedfe98,
    0x48a170391f7dc42444e8fa2,
)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """
    sqrt(1.0001^tick) * 2^96, exact integer port of TickMath.getSqrtPriceAtTick.

    Args:
        tick: Номер тика в [MIN_TICK, MAX_TICK]

    Returns:
        sqrtPriceX96 (rounded up from Q128.128)

    Raises:
        ValueError: Если тик вне допустимого диапазона
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick {tick} out of range [{MIN_TICK}, {MAX_TICK}]")

    abs_tick = -tick if tick < 0 else tick

    ratio = 0x100000000000000000000000000000000
    for bit, multiplier in enumerate(_TICK_RATIOS):
        if abs_tick & (1 << bit):
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, round up
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """
    Greatest tick such that get_sqrt_ratio_at_tick(tick) <= sqrt_price_x96.

    Binary search over the full tick range; exact, no floats.
    """
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise ValueError(f"sqrtPriceX96 {sqrt_price_x96} out of range")

    lo, hi = MIN_TICK, MAX_TICK
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if get_sqrt_ratio_at_tick(mid) <= sqrt_price_x96:
            lo = mid
        else:
            hi = mid - 1
    return lo


def tick_to_price(tick: int, invert: bool = False) -> float:
    """
    Конвертация тика в цену.

    Args:
        tick: Номер тика
        invert: Если True, возвращает цену token0/token1

    Returns:
        Цена token1/token0 (или token0/token1 если invert=True)
    """
    pool_price = 1.0001 ** tick
    if invert:
        return 1.0 / pool_price
    return pool_price


def align_tick_to_spacing(tick: int, tick_spacing: int, round_down: bool = True) -> int:
    """
    Выравнивание тика к tick_spacing.

    В Uniswap V4 можно использовать только тики, кратные tick_spacing.

    Args:
        tick: Исходный тик
        tick_spacing: Шаг тиков
        round_down: True = округление вниз (к -∞), False = вверх (к +∞)

    Returns:
        Выровненный тик
    """
    if tick % tick_spacing == 0:
        return tick  # Already aligned

    if round_down:
        # Floor division works correctly for both positive and negative
        return (tick // tick_spacing) * tick_spacing
    else:
        return ((tick // tick_spacing) + 1) * tick_spacing
