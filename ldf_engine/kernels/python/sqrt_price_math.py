"""
Constant-liquidity price-step kernel.

Integer-exact versions of the concentrated-liquidity formulas:
- token deltas between two sqrt prices for a fixed liquidity,
- the next sqrt price after adding/removing an amount of one token,
- a single swap step bounded by a target sqrt price.

Rounding always favours the pool: amounts owed to the pool round up, amounts
paid out round down, and prices move the minimum the amounts allow.
No fees are applied here; fee policy belongs to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass

from .fixed_point import Q96, div_up, mul_div, mul_div_up


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_non_negative(name: str, value: int) -> None:
    _require_int(name, value)
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def get_amount0_delta(sqrt_price_a_x96: int, sqrt_price_b_x96: int, liquidity: int, round_up: bool) -> int:
    """Token0 held by `liquidity` between two sqrt prices (order-insensitive)."""
    _require_non_negative("liquidity", liquidity)
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96
    if sqrt_price_a_x96 <= 0:
        raise ValueError("sqrt price must be positive")

    numerator1 = liquidity << 96
    numerator2 = sqrt_price_b_x96 - sqrt_price_a_x96
    if round_up:
        return div_up(mul_div_up(numerator1, numerator2, sqrt_price_b_x96), sqrt_price_a_x96)
    return mul_div(numerator1, numerator2, sqrt_price_b_x96) // sqrt_price_a_x96


def get_amount1_delta(sqrt_price_a_x96: int, sqrt_price_b_x96: int, liquidity: int, round_up: bool) -> int:
    """Token1 held by `liquidity` between two sqrt prices (order-insensitive)."""
    _require_non_negative("liquidity", liquidity)
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96

    if round_up:
        return mul_div_up(liquidity, sqrt_price_b_x96 - sqrt_price_a_x96, Q96)
    return mul_div(liquidity, sqrt_price_b_x96 - sqrt_price_a_x96, Q96)


def get_next_sqrt_price_from_amount0_rounding_up(
    sqrt_price_x96: int, liquidity: int, amount: int, add: bool
) -> int:
    if amount == 0:
        return sqrt_price_x96
    numerator1 = liquidity << 96
    product = amount * sqrt_price_x96
    if add:
        return mul_div_up(numerator1, sqrt_price_x96, numerator1 + product)
    if numerator1 <= product:
        raise ValueError("amount0 exceeds the reserves at this liquidity")
    return mul_div_up(numerator1, sqrt_price_x96, numerator1 - product)


def get_next_sqrt_price_from_amount1_rounding_down(
    sqrt_price_x96: int, liquidity: int, amount: int, add: bool
) -> int:
    if add:
        return sqrt_price_x96 + (amount << 96) // liquidity
    quotient = div_up(amount << 96, liquidity)
    if sqrt_price_x96 <= quotient:
        raise ValueError("amount1 exceeds the reserves at this liquidity")
    return sqrt_price_x96 - quotient


def get_next_sqrt_price_from_input(sqrt_price_x96: int, liquidity: int, amount_in: int, zero_for_one: bool) -> int:
    """Sqrt price after `amount_in` of the input token enters at `liquidity`."""
    if sqrt_price_x96 <= 0:
        raise ValueError("sqrt price must be positive")
    if liquidity <= 0:
        raise ValueError("liquidity must be positive")
    _require_non_negative("amount_in", amount_in)
    if zero_for_one:
        return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_in, True)
    return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_in, True)


def get_next_sqrt_price_from_output(sqrt_price_x96: int, liquidity: int, amount_out: int, zero_for_one: bool) -> int:
    """Sqrt price after `amount_out` of the output token leaves at `liquidity`."""
    if sqrt_price_x96 <= 0:
        raise ValueError("sqrt price must be positive")
    if liquidity <= 0:
        raise ValueError("liquidity must be positive")
    _require_non_negative("amount_out", amount_out)
    if zero_for_one:
        return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_out, False)
    return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_out, False)


@dataclass(frozen=True)
class SwapStepResult:
    sqrt_price_next_x96: int
    amount_in: int
    amount_out: int

    def reached(self, sqrt_price_target_x96: int) -> bool:
        return self.sqrt_price_next_x96 == sqrt_price_target_x96


def compute_swap_step(
    sqrt_price_current_x96: int,
    sqrt_price_target_x96: int,
    liquidity: int,
    amount_remaining: int,
    *,
    exact_in: bool,
) -> SwapStepResult:
    """
    Swap within a single constant-liquidity range.

    The direction is implied by the target: a target at or below the current
    price is a zero-for-one swap. `amount_remaining` is the input still to be
    spent (`exact_in`) or the output still to be received.

    With zero liquidity the price jumps straight to the target and no tokens
    move.
    """
    _require_int("sqrt_price_current_x96", sqrt_price_current_x96)
    _require_int("sqrt_price_target_x96", sqrt_price_target_x96)
    _require_non_negative("liquidity", liquidity)
    _require_non_negative("amount_remaining", amount_remaining)

    zero_for_one = sqrt_price_current_x96 >= sqrt_price_target_x96

    if exact_in:
        if zero_for_one:
            amount_in = get_amount0_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, True)
        else:
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, True)
        if amount_remaining >= amount_in:
            sqrt_price_next = sqrt_price_target_x96
        else:
            amount_in = amount_remaining
            sqrt_price_next = get_next_sqrt_price_from_input(
                sqrt_price_current_x96, liquidity, amount_remaining, zero_for_one
            )
        if zero_for_one:
            amount_out = get_amount1_delta(sqrt_price_next, sqrt_price_current_x96, liquidity, False)
        else:
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_next, liquidity, False)
    else:
        if zero_for_one:
            amount_out = get_amount1_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, False)
        else:
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, False)
        if amount_remaining >= amount_out:
            sqrt_price_next = sqrt_price_target_x96
        else:
            amount_out = amount_remaining
            sqrt_price_next = get_next_sqrt_price_from_output(
                sqrt_price_current_x96, liquidity, amount_remaining, zero_for_one
            )
        if zero_for_one:
            amount_in = get_amount0_delta(sqrt_price_next, sqrt_price_current_x96, liquidity, True)
        else:
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_next, liquidity, True)

    return SwapStepResult(sqrt_price_next_x96=sqrt_price_next, amount_in=amount_in, amount_out=amount_out)
