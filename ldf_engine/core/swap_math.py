"""
LDF swap-math engine.

Executes a trade against a pool whose liquidity is placed by a liquidity
density function, possibly crossing many rounded ticks in one call.

Algorithm Design:
- Fast path: if a constant-liquidity step inside the current rounded tick
  fills the whole trade, use it directly.
- Slow path: add the trade to (exact-in) or remove it from (exact-out) the
  active balance of the inverted token, invert the distribution's cumulative
  amount to find the rounded tick where the swap ends, and finish with one
  constant-liquidity step inside that tick.
- Exact-output requests above the output balance are clamped once.
- Inversion failure prices the trade at the domain edge (boundary pricing).
- Invariant: the price never moves against the trade direction.

Sqrt price limits are the caller's concern and are not applied here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..kernels.python.fixed_point import sub_relu
from ..kernels.python.sqrt_price_math import (
    SwapStepResult,
    compute_swap_step,
    get_amount0_delta,
    get_amount1_delta,
)
from ..kernels.python.tick_math import (
    MAX_TICK,
    MIN_TICK,
    get_sqrt_price_at_tick,
    get_tick_at_sqrt_price,
    round_tick_single,
)
from .errors import SwapMathError
from .ldf import LDFKind, ResolvedLDF, resolve


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapInput:
    """Pool snapshot a swap executes against (active balances, not reserves)."""

    kind: LDFKind
    ldf_params: bytes
    ldf_state: bytes
    tick_spacing: int
    twap_tick: Optional[int]
    total_liquidity: int
    sqrt_price_x96: int
    current_tick: int
    balance0: int
    balance1: int


@dataclass(frozen=True)
class SwapResult:
    """
    Outcome of a swap.

    `success` is False when the distribution could not absorb the trade and
    the price was pushed to the domain edge instead; `hit_boundary` is True
    whenever the price ends on the domain edge.
    """

    success: bool
    updated_sqrt_price_x96: int
    updated_tick: int
    input_amount: int
    output_amount: int
    new_ldf_state: bytes
    should_surge: bool
    hit_boundary: bool = False


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _validate(inp: SwapInput, amount: int) -> None:
    for name in ("tick_spacing", "total_liquidity", "sqrt_price_x96", "current_tick", "balance0", "balance1"):
        _require_int(name, getattr(inp, name))
    _require_int("amount", amount)
    if amount <= 0:
        raise ValueError(f"amount must be positive: {amount}")
    if inp.total_liquidity <= 0:
        raise ValueError(f"total_liquidity must be positive: {inp.total_liquidity}")
    if inp.balance0 < 0 or inp.balance1 < 0:
        raise ValueError(f"balances must be non-negative: ({inp.balance0}, {inp.balance1})")


def _sqrt_price(tick: int) -> int:
    return get_sqrt_price_at_tick(min(max(tick, MIN_TICK), MAX_TICK))


def _tick_after(sqrt_price_x96: int, zero_for_one: bool) -> int:
    """Tick containing a post-swap price; a downward swap ending on a boundary sits below it."""
    tick = get_tick_at_sqrt_price(sqrt_price_x96)
    if zero_for_one and get_sqrt_price_at_tick(tick) == sqrt_price_x96:
        tick -= 1
    return tick


def active_balances(ldf: ResolvedLDF, sqrt_price_x96: int, current_tick: int, total_liquidity: int) -> Tuple[int, int]:
    """
    Token balances the distribution implies at a price, rounded down.

    Ticks above the current rounded tick hold token0, ticks below hold token1,
    and the current tick is split at the price. The split can be taken from
    either edge of the tick; each balance is the smaller of the two.
    """
    readings0, readings1 = _balance_readings(
        ldf, sqrt_price_x96, round_tick_single(current_tick, ldf.tick_spacing), total_liquidity, round_up=False
    )
    return min(readings0), min(readings1)


def _held_balances(ldf: ResolvedLDF, sqrt_price_x96: int, rounded_tick: int, total_liquidity: int) -> Tuple[int, int]:
    """What the pool keeps after a swap ends at a price: the larger reading of each token, rounded up."""
    readings0, readings1 = _balance_readings(ldf, sqrt_price_x96, rounded_tick, total_liquidity, round_up=True)
    return max(readings0), max(readings1)


def _balance_readings(
    ldf: ResolvedLDF, sqrt_price_x96: int, rounded_tick: int, total_liquidity: int, *, round_up: bool
) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    """
    Each token's balance at a price inside `rounded_tick`, read from the
    tick's upper edge and from its lower edge. `round_up` applies to the part
    added to a cumulative; the part subtracted rounds the other way.
    """
    s = ldf.tick_spacing
    L = total_liquidity
    sqrt_lower, sqrt_upper = _sqrt_price(rounded_tick), _sqrt_price(rounded_tick + s)
    liquidity = (ldf.density(rounded_tick) * L) >> 96

    readings0 = (
        ldf.cumulative_amount0(rounded_tick + s, L) + get_amount0_delta(sqrt_price_x96, sqrt_upper, liquidity, round_up),
        sub_relu(
            ldf.cumulative_amount0(rounded_tick, L),
            get_amount0_delta(sqrt_lower, sqrt_price_x96, liquidity, not round_up),
        ),
    )
    readings1 = (
        ldf.cumulative_amount1(rounded_tick - s, L) + get_amount1_delta(sqrt_lower, sqrt_price_x96, liquidity, round_up),
        sub_relu(
            ldf.cumulative_amount1(rounded_tick, L),
            get_amount1_delta(sqrt_price_x96, sqrt_upper, liquidity, not round_up),
        ),
    )
    return readings0, readings1


def _boundary_result(
    ldf: ResolvedLDF, inp: SwapInput, *, zero_for_one: bool, exact_in: bool, amount: int
) -> Tuple[int, int, int]:
    """`(sqrt_price, input, output)` for a trade the distribution cannot absorb."""
    start, end = ldf.domain()
    L = inp.total_liquidity
    if zero_for_one:
        sqrt_edge = _sqrt_price(start)
        balance_in, balance_out = inp.balance0, inp.balance1
        held_in = ldf.cumulative_amount0(start, L)
    else:
        sqrt_edge = _sqrt_price(end)
        balance_in, balance_out = inp.balance1, inp.balance0
        held_in = ldf.cumulative_amount1(end - ldf.tick_spacing, L)
    logger.debug(
        "boundary pricing: kind=%s zero_for_one=%s exact_in=%s amount=%d",
        ldf.kind.value,
        zero_for_one,
        exact_in,
        amount,
    )
    if exact_in:
        return sqrt_edge, amount, balance_out
    return sqrt_edge, sub_relu(held_in, balance_in), amount


def compute_swap(inp: SwapInput, *, zero_for_one: bool, exact_in: bool, amount: int) -> SwapResult:
    """
    Execute a swap of `amount` against the pool described by `inp`.

    Args:
        inp: Pool snapshot (parameters, persisted state, price, active balances)
        zero_for_one: True sells token0 for token1 (price moves down)
        exact_in: True when `amount` is the input, False when it is the output
        amount: Trade size (positive)

    Returns:
        SwapResult with the post-swap price and tick, the token amounts and the
        LDF state to persist.

    Raises:
        ValueError: If the request is malformed
        SwapMathError: If the computed price moved against the trade direction
    """
    _validate(inp, amount)
    s = inp.tick_spacing
    L = inp.total_liquidity
    ldf = resolve(inp.kind, inp.ldf_params, inp.ldf_state, tick_spacing=s, twap_tick=inp.twap_tick)

    if zero_for_one:
        balance_in, balance_out = inp.balance0, inp.balance1
    else:
        balance_in, balance_out = inp.balance1, inp.balance0

    sqrt_price = inp.sqrt_price_x96
    start, end = ldf.domain()
    edge = _sqrt_price(start) if zero_for_one else _sqrt_price(end)

    def finish(sqrt_next: int, amount_in: int, amount_out: int, success: bool = True) -> SwapResult:
        if (zero_for_one and sqrt_next > sqrt_price) or (not zero_for_one and sqrt_next < sqrt_price):
            raise SwapMathError(
                f"price moved against the trade: {sqrt_price} -> {sqrt_next} (zero_for_one={zero_for_one})"
            )
        tick = inp.current_tick if sqrt_next == sqrt_price else _tick_after(sqrt_next, zero_for_one)
        return SwapResult(
            success=success,
            updated_sqrt_price_x96=sqrt_next,
            updated_tick=tick,
            input_amount=amount_in,
            output_amount=amount_out,
            new_ldf_state=ldf.new_ldf_state,
            should_surge=ldf.should_surge,
            hit_boundary=sqrt_next == edge,
        )

    if (zero_for_one and sqrt_price <= edge) or (not zero_for_one and sqrt_price >= edge):
        # no liquidity left on the side the price is moving toward
        logger.debug(
            "price at or past the domain edge: kind=%s zero_for_one=%s sqrt_price=%d",
            ldf.kind.value,
            zero_for_one,
            sqrt_price,
        )
        return SwapResult(
            success=False,
            updated_sqrt_price_x96=sqrt_price,
            updated_tick=inp.current_tick,
            input_amount=0,
            output_amount=0,
            new_ldf_state=ldf.new_ldf_state,
            should_surge=ldf.should_surge,
            hit_boundary=True,
        )

    if not exact_in and amount > balance_out:
        logger.debug("exact output clamped: requested=%d available=%d", amount, balance_out)
        amount = balance_out
        if amount == 0:
            return finish(sqrt_price, 0, 0)

    # -- Fast path: stay inside the current rounded tick -----------------------
    rounded_tick = round_tick_single(inp.current_tick, s)
    sqrt_boundary = _sqrt_price(rounded_tick if zero_for_one else rounded_tick + s)
    liquidity = (ldf.density(rounded_tick) * L) >> 96

    naive: Optional[SwapStepResult] = None
    if liquidity > 0 and sqrt_boundary != sqrt_price:
        naive = compute_swap_step(sqrt_price, sqrt_boundary, liquidity, amount, exact_in=exact_in)
        if not naive.reached(sqrt_boundary) and naive.amount_out <= balance_out:
            if exact_in:
                return finish(naive.sqrt_price_next_x96, amount, naive.amount_out)
            return finish(naive.sqrt_price_next_x96, naive.amount_in, amount)

    # -- Slow path: invert the cumulative amount -----------------------------
    target = balance_in + amount if exact_in else balance_out - amount
    swap = ldf.compute_swap(target, L, zero_for_one=zero_for_one, exact_in=exact_in)
    if not swap.success:
        sqrt_edge, amount_in, amount_out = _boundary_result(
            ldf, inp, zero_for_one=zero_for_one, exact_in=exact_in, amount=amount
        )
        return finish(sqrt_edge, amount_in, amount_out, success=False)

    tick = swap.rounded_tick
    if (zero_for_one and tick >= rounded_tick) or (not zero_for_one and tick <= rounded_tick):
        # the distribution places the end point inside or behind the current
        # tick: stop at the current tick's edge with what the naive step moved
        if naive is None:
            return finish(sqrt_boundary, 0, 0)
        return finish(sqrt_boundary, naive.amount_in, min(naive.amount_out, balance_out))

    if zero_for_one:
        sqrt_start, sqrt_target = _sqrt_price(tick + s), _sqrt_price(tick)
        cum_in, cum_out = swap.cumulative_amount0, swap.cumulative_amount1
    else:
        sqrt_start, sqrt_target = _sqrt_price(tick), _sqrt_price(tick + s)
        cum_in, cum_out = swap.cumulative_amount1, swap.cumulative_amount0

    if exact_in:
        cum_in = max(cum_in, balance_in)
        remaining = sub_relu(target, cum_in)
    else:
        cum_out = min(cum_out, balance_out)
        remaining = sub_relu(cum_out, target)

    sqrt_next = sqrt_start
    updated_in, updated_out = cum_in, cum_out
    if remaining > 0:
        step = compute_swap_step(sqrt_start, sqrt_target, swap.swap_liquidity, remaining, exact_in=exact_in)
        sqrt_next = step.sqrt_price_next_x96
        updated_in = cum_in + step.amount_in
        updated_out = sub_relu(cum_out, step.amount_out)

    # settle the variable side against the larger reading of the end tick
    held0, held1 = _held_balances(ldf, sqrt_next, tick, L)
    if exact_in:
        updated_out = max(updated_out, held1 if zero_for_one else held0)
        return finish(sqrt_next, amount, sub_relu(balance_out, updated_out))
    updated_in = max(updated_in, held0 if zero_for_one else held1)
    return finish(sqrt_next, sub_relu(updated_in, balance_in), amount)


def swap_exact_in(inp: SwapInput, amount_in: int, *, zero_for_one: bool) -> SwapResult:
    return compute_swap(inp, zero_for_one=zero_for_one, exact_in=True, amount=amount_in)


def swap_exact_out(inp: SwapInput, amount_out: int, *, zero_for_one: bool) -> SwapResult:
    return compute_swap(inp, zero_for_one=zero_for_one, exact_in=False, amount=amount_out)
