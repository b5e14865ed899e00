"""
Swap step mathematics (SwapMath / SqrtPriceMath port).

Sign convention follows V4: amount_remaining < 0 is exact input,
amount_remaining > 0 is exact output. Fees are in pips (1e-6).
"""

from dataclasses import dataclass

from .liquidity import (
    Q96,
    div_rounding_up,
    get_amount0_delta,
    get_amount1_delta,
    mul_div,
    mul_div_rounding_up,
)

MAX_FEE_PIPS = 1_000_000


@dataclass
class SwapStep:
    """Result of one swap step inside a single liquidity range."""
    sqrt_price_next_x96: int
    amount_in: int
    amount_out: int
    fee_amount: int


def get_next_sqrt_price_from_amount0_rounding_up(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool
) -> int:
    """
    Next sqrt price after adding/removing token0; always rounds up.

    sqrtQ = L * sqrtP / (L +- amount * sqrtP)
    """
    if amount == 0:
        return sqrt_price_x96

    numerator1 = liquidity << 96
    product = amount * sqrt_price_x96

    if add:
        return mul_div_rounding_up(numerator1, sqrt_price_x96, numerator1 + product)

    if numerator1 <= product:
        raise ValueError("Price overflow: not enough token0 liquidity")
    return mul_div_rounding_up(numerator1, sqrt_price_x96, numerator1 - product)


def get_next_sqrt_price_from_amount1_rounding_down(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool
) -> int:
    """
    Next sqrt price after adding/removing token1; always rounds down.

    sqrtQ = sqrtP +- amount / L
    """
    if add:
        return sqrt_price_x96 + mul_div(amount, Q96, liquidity)

    quotient = div_rounding_up(amount << 96, liquidity)
    if sqrt_price_x96 <= quotient:
        raise ValueError("Price underflow: not enough token1 liquidity")
    return sqrt_price_x96 - quotient


def get_next_sqrt_price_from_input(
    sqrt_price_x96: int,
    liquidity: int,
    amount_in: int,
    zero_for_one: bool
) -> int:
    if sqrt_price_x96 <= 0 or liquidity <= 0:
        raise ValueError("sqrt price and liquidity must be positive")

    if zero_for_one:
        return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_in, True)
    return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_in, True)


def get_next_sqrt_price_from_output(
    sqrt_price_x96: int,
    liquidity: int,
    amount_out: int,
    zero_for_one: bool
) -> int:
    if sqrt_price_x96 <= 0 or liquidity <= 0:
        raise ValueError("sqrt price and liquidity must be positive")

    if zero_for_one:
        return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_out, False)
    return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_out, False)


def compute_swap_step(
    sqrt_price_current_x96: int,
    sqrt_price_target_x96: int,
    liquidity: int,
    amount_remaining: int,
    fee_pips: int
) -> SwapStep:
    """
    Computes one step of a swap towards sqrt_price_target_x96.

    Args:
        sqrt_price_current_x96: Текущая sqrt цена
        sqrt_price_target_x96: Цена, дальше которой шаг не идёт
        liquidity: Активная liquidity
        amount_remaining: < 0 exact input, > 0 exact output
        fee_pips: Fee в сотых долях bip

    Returns:
        SwapStep
    """
    zero_for_one = sqrt_price_current_x96 >= sqrt_price_target_x96
    exact_in = amount_remaining < 0

    if exact_in:
        remaining_less_fee = mul_div(-amount_remaining, MAX_FEE_PIPS - fee_pips, MAX_FEE_PIPS)
        if zero_for_one:
            amount_in = get_amount0_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, True)
        else:
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, True)

        if remaining_less_fee >= amount_in:
            sqrt_next = sqrt_price_target_x96
            if fee_pips == MAX_FEE_PIPS:
                fee_amount = amount_in
            else:
                fee_amount = mul_div_rounding_up(amount_in, fee_pips, MAX_FEE_PIPS - fee_pips)
        else:
            amount_in = remaining_less_fee
            sqrt_next = get_next_sqrt_price_from_input(
                sqrt_price_current_x96, liquidity, remaining_less_fee, zero_for_one
            )
            # Whatever is not swapped is the fee
            fee_amount = -amount_remaining - amount_in

        if zero_for_one:
            amount_out = get_amount1_delta(sqrt_next, sqrt_price_current_x96, liquidity, False)
        else:
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_next, liquidity, False)
    else:
        if zero_for_one:
            amount_out = get_amount1_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, False)
        else:
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, False)

        if amount_remaining >= amount_out:
            sqrt_next = sqrt_price_target_x96
        else:
            amount_out = amount_remaining
            sqrt_next = get_next_sqrt_price_from_output(
                sqrt_price_current_x96, liquidity, amount_remaining, zero_for_one
            )

        if zero_for_one:
            amount_in = get_amount0_delta(sqrt_next, sqrt_price_current_x96, liquidity, True)
        else:
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_next, liquidity, True)

        fee_amount = mul_div_rounding_up(amount_in, fee_pips, MAX_FEE_PIPS - fee_pips)

    return SwapStep(
        sqrt_price_next_x96=sqrt_next,
        amount_in=amount_in,
        amount_out=amount_out,
        fee_amount=fee_amount,
    )
