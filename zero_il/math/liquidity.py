"""
Uniswap V4 Liquidity Mathematics

Формулы из whitepaper:
- L = amount0 * (sqrt(upper) * sqrt(lower)) / (sqrt(upper) - sqrt(lower))
- L = amount1 / (sqrt(upper) - sqrt(lower))

Когда текущая цена в диапазоне:
- L = amount0 * (sqrt(upper) * sqrt(current)) / (sqrt(upper) - sqrt(current))
- L = amount1 / (sqrt(current) - sqrt(lower))

All sqrt prices here are Q64.96 integers; rounding mirrors SqrtPriceMath and
LiquidityAmounts so results match the pool manager to the wei.
"""

from decimal import Decimal, getcontext
from dataclasses import dataclass

# Высокая точность для финансовых расчётов
getcontext().prec = 50

Q96 = 2 ** 96


def to_wei(amount: float | int | str, decimals: int = 18) -> int:
    """
    Точное преобразование суммы в wei с использованием Decimal.

    Args:
        amount: Сумма в токенах
        decimals: Количество десятичных знаков токена

    Returns:
        Количество в wei (smallest unit)

    Example:
        >>> to_wei(1000, 18)
        1000000000000000000000
    """
    amount_decimal = Decimal(str(amount))
    multiplier = Decimal(10) ** decimals
    return int(amount_decimal * multiplier)


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator)"""
    if denominator <= 0:
        raise ZeroDivisionError("mul_div denominator must be positive")
    return (a * b) // denominator


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator)"""
    if denominator <= 0:
        raise ZeroDivisionError("mul_div denominator must be positive")
    result, remainder = divmod(a * b, denominator)
    return result + 1 if remainder else result


def div_rounding_up(x: int, y: int) -> int:
    return -(-x // y)


@dataclass
class LiquidityAmounts:
    """Результат расчёта количества токенов."""
    amount0: int  # В wei/smallest unit
    amount1: int  # В wei/smallest unit
    liquidity: int


def _sorted(sqrt_a: int, sqrt_b: int) -> tuple[int, int]:
    return (sqrt_b, sqrt_a) if sqrt_a > sqrt_b else (sqrt_a, sqrt_b)


def get_amount0_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    """
    Количество token0 между двумя ценами.

    amount0 = L * (sqrt_upper - sqrt_lower) / (sqrt_upper * sqrt_lower)
    """
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    if sqrt_a <= 0:
        raise ValueError("sqrt price must be positive")

    numerator1 = liquidity << 96
    numerator2 = sqrt_b - sqrt_a

    if round_up:
        return div_rounding_up(mul_div_rounding_up(numerator1, numerator2, sqrt_b), sqrt_a)
    return mul_div(numerator1, numerator2, sqrt_b) // sqrt_a


def get_amount1_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    """
    Количество token1 между двумя ценами.

    amount1 = L * (sqrt_upper - sqrt_lower)
    """
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    if round_up:
        return mul_div_rounding_up(liquidity, sqrt_b - sqrt_a, Q96)
    return mul_div(liquidity, sqrt_b - sqrt_a, Q96)


def get_amount0_delta_signed(sqrt_a: int, sqrt_b: int, liquidity_delta: int) -> int:
    """Signed token0 amount owed to the pool (positive when adding, rounded up)."""
    if liquidity_delta < 0:
        return -get_amount0_delta(sqrt_a, sqrt_b, -liquidity_delta, False)
    return get_amount0_delta(sqrt_a, sqrt_b, liquidity_delta, True)


def get_amount1_delta_signed(sqrt_a: int, sqrt_b: int, liquidity_delta: int) -> int:
    """Signed token1 amount owed to the pool (positive when adding, rounded up)."""
    if liquidity_delta < 0:
        return -get_amount1_delta(sqrt_a, sqrt_b, -liquidity_delta, False)
    return get_amount1_delta(sqrt_a, sqrt_b, liquidity_delta, True)


def get_liquidity_for_amount0(sqrt_a: int, sqrt_b: int, amount0: int) -> int:
    """
    Расчёт liquidity по количеству token0.

    L = amount0 * (sqrt_upper * sqrt_lower) / (sqrt_upper - sqrt_lower)
    """
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    if sqrt_b == sqrt_a:
        raise ValueError("sqrt_price_upper must be > sqrt_price_lower")
    intermediate = mul_div(sqrt_a, sqrt_b, Q96)
    return mul_div(amount0, intermediate, sqrt_b - sqrt_a)


def get_liquidity_for_amount1(sqrt_a: int, sqrt_b: int, amount1: int) -> int:
    """
    Расчёт liquidity по количеству token1.

    L = amount1 / (sqrt_upper - sqrt_lower)
    """
    sqrt_a, sqrt_b = _sorted(sqrt_a, sqrt_b)
    if sqrt_b == sqrt_a:
        raise ValueError("sqrt_price_upper must be > sqrt_price_lower")
    return mul_div(amount1, Q96, sqrt_b - sqrt_a)


def get_liquidity_for_amounts(
    sqrt_price_current: int,
    sqrt_price_lower: int,
    sqrt_price_upper: int,
    amount0: int,
    amount1: int
) -> int:
    """
    Максимальная liquidity, которую можно получить из amount0 и amount1.

    Три случая:
    1. current <= lower: позиция полностью в token0
    2. current >= upper: позиция полностью в token1
    3. lower < current < upper: минимум из двух (лимитирующий фактор)
    """
    sqrt_price_lower, sqrt_price_upper = _sorted(sqrt_price_lower, sqrt_price_upper)

    if sqrt_price_current <= sqrt_price_lower:
        return get_liquidity_for_amount0(sqrt_price_lower, sqrt_price_upper, amount0)

    if sqrt_price_current < sqrt_price_upper:
        liquidity0 = get_liquidity_for_amount0(sqrt_price_current, sqrt_price_upper, amount0)
        liquidity1 = get_liquidity_for_amount1(sqrt_price_lower, sqrt_price_current, amount1)
        return min(liquidity0, liquidity1)

    return get_liquidity_for_amount1(sqrt_price_lower, sqrt_price_upper, amount1)


def get_liquidity_for_single_amount(
    sqrt_price_current: int,
    sqrt_price_lower: int,
    sqrt_price_upper: int,
    amount: int,
    is_token0: bool
) -> int:
    """
    Liquidity equivalent of a one-sided amount over a range.

    The in-range part of the range is used (token0 lives above the current
    price, token1 below it). When the price has left the range on the side
    where the token is absent, the whole range is used as a notional.
    """
    sqrt_price_lower, sqrt_price_upper = _sorted(sqrt_price_lower, sqrt_price_upper)

    if amount == 0:
        return 0

    if is_token0:
        start = max(sqrt_price_current, sqrt_price_lower)
        if start >= sqrt_price_upper:
            start = sqrt_price_lower
        return get_liquidity_for_amount0(start, sqrt_price_upper, amount)

    end = min(sqrt_price_current, sqrt_price_upper)
    if end <= sqrt_price_lower:
        end = sqrt_price_upper
    return get_liquidity_for_amount1(sqrt_price_lower, end, amount)


def get_amounts_for_liquidity(
    sqrt_price_current: int,
    sqrt_price_lower: int,
    sqrt_price_upper: int,
    liquidity: int
) -> LiquidityAmounts:
    """
    Расчёт количества обоих токенов для заданной liquidity (округление вниз).

    Args:
        sqrt_price_current: sqrtPriceX96 текущей цены
        sqrt_price_lower: sqrtPriceX96 нижней границы
        sqrt_price_upper: sqrtPriceX96 верхней границы
        liquidity: Liquidity (L)

    Returns:
        LiquidityAmounts с amount0 и amount1
    """
    sqrt_price_lower, sqrt_price_upper = _sorted(sqrt_price_lower, sqrt_price_upper)
    amount0 = 0
    amount1 = 0

    # Случай 1: текущая цена ниже диапазона
    if sqrt_price_current <= sqrt_price_lower:
        amount0 = get_amount0_delta(sqrt_price_lower, sqrt_price_upper, liquidity, False)

    # Случай 2: текущая цена в диапазоне
    elif sqrt_price_current < sqrt_price_upper:
        amount0 = get_amount0_delta(sqrt_price_current, sqrt_price_upper, liquidity, False)
        amount1 = get_amount1_delta(sqrt_price_lower, sqrt_price_current, liquidity, False)

    # Случай 3: текущая цена выше диапазона
    else:
        amount1 = get_amount1_delta(sqrt_price_lower, sqrt_price_upper, liquidity, False)

    return LiquidityAmounts(amount0=amount0, amount1=amount1, liquidity=liquidity)
