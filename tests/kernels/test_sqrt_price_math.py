# [TESTER] v1

from __future__ import annotations

import pytest

from ldf_engine.kernels.python.fixed_point import Q96
from ldf_engine.kernels.python.sqrt_price_math import (
    compute_swap_step,
    get_amount0_delta,
    get_amount1_delta,
    get_next_sqrt_price_from_input,
    get_next_sqrt_price_from_output,
)


L = 10**18


def test_amount_deltas_between_one_and_four() -> None:
    # price 1 -> 4: sqrt 1 -> 2
    assert get_amount1_delta(Q96, 2 * Q96, L, False) == L
    assert get_amount1_delta(Q96, 2 * Q96, L, True) == L
    assert get_amount0_delta(Q96, 2 * Q96, L, True) == L // 2
    assert get_amount0_delta(Q96, 2 * Q96, L, False) == L // 2


def test_amount_deltas_are_order_insensitive() -> None:
    a, b = Q96 + 12345, 3 * Q96 // 2
    assert get_amount0_delta(a, b, L, True) == get_amount0_delta(b, a, L, True)
    assert get_amount1_delta(a, b, L, False) == get_amount1_delta(b, a, L, False)


def test_rounding_up_never_undercuts_rounding_down() -> None:
    a, b = Q96 + 7, Q96 + 10**20
    assert get_amount0_delta(a, b, L, True) >= get_amount0_delta(a, b, L, False)
    assert get_amount1_delta(a, b, L, True) >= get_amount1_delta(a, b, L, False)


def test_next_price_moves_with_the_trade() -> None:
    assert get_next_sqrt_price_from_input(Q96, L, 10**15, True) < Q96
    assert get_next_sqrt_price_from_input(Q96, L, 10**15, False) > Q96
    assert get_next_sqrt_price_from_output(Q96, L, 10**15, True) < Q96
    assert get_next_sqrt_price_from_output(Q96, L, 10**15, False) > Q96


def test_next_price_rejects_zero_liquidity() -> None:
    with pytest.raises(ValueError, match="liquidity"):
        get_next_sqrt_price_from_input(Q96, 0, 1, True)


def test_output_beyond_reserves_is_rejected() -> None:
    with pytest.raises(ValueError, match="exceeds"):
        get_next_sqrt_price_from_output(Q96, L, 2 * L, True)


# ---------------------------------------------------------------------------
# compute_swap_step
# ---------------------------------------------------------------------------

def test_step_with_zero_liquidity_jumps_to_target() -> None:
    step = compute_swap_step(Q96, Q96 // 2, 0, 1000, exact_in=True)
    assert step.reached(Q96 // 2)
    assert step.amount_in == 0
    assert step.amount_out == 0


def test_exact_in_step_inside_range() -> None:
    step = compute_swap_step(Q96, Q96 // 2, L, 10**6, exact_in=True)
    assert not step.reached(Q96 // 2)
    assert Q96 // 2 < step.sqrt_price_next_x96 < Q96
    assert step.amount_in == 10**6
    assert 0 < step.amount_out <= 10**6


def test_exact_in_step_reaching_target() -> None:
    target = Q96 - Q96 // 1000
    step = compute_swap_step(Q96, target, L, 10 * L, exact_in=True)
    assert step.reached(target)
    assert step.amount_in == get_amount0_delta(target, Q96, L, True)
    assert step.amount_out == get_amount1_delta(target, Q96, L, False)


def test_exact_out_step_delivers_request() -> None:
    step = compute_swap_step(Q96, 2 * Q96, L, 1000, exact_in=False)
    assert not step.reached(2 * Q96)
    assert step.sqrt_price_next_x96 > Q96
    assert step.amount_out == 1000
    assert step.amount_in >= 1000


def test_step_rejects_negative_amount() -> None:
    with pytest.raises(ValueError, match="amount_remaining"):
        compute_swap_step(Q96, Q96 // 2, L, -1, exact_in=True)
