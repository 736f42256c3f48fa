# [TESTER] v1

from __future__ import annotations

import pytest

from ldf_engine.kernels.python.fixed_point import Q96
from ldf_engine.kernels.python.tick_math import (
    MAX_SQRT_PRICE,
    MAX_TICK,
    MIN_SQRT_PRICE,
    MIN_TICK,
    get_sqrt_price_at_tick,
    get_tick_at_sqrt_price,
    is_aligned,
    max_usable_tick,
    min_usable_tick,
    round_tick,
    round_tick_single,
)


def test_sqrt_price_at_known_ticks() -> None:
    assert get_sqrt_price_at_tick(0) == Q96
    assert get_sqrt_price_at_tick(MIN_TICK) == MIN_SQRT_PRICE
    assert get_sqrt_price_at_tick(MAX_TICK) == MAX_SQRT_PRICE


@pytest.mark.parametrize("tick", [MIN_TICK - 1, MAX_TICK + 1])
def test_sqrt_price_rejects_out_of_range_ticks(tick: int) -> None:
    with pytest.raises(ValueError, match="out of bounds"):
        get_sqrt_price_at_tick(tick)


def test_sqrt_price_is_strictly_increasing() -> None:
    ticks = [-200_000, -60, -1, 0, 1, 60, 200_000]
    prices = [get_sqrt_price_at_tick(t) for t in ticks]
    assert all(a < b for a, b in zip(prices, prices[1:]))


@pytest.mark.parametrize("tick", [MIN_TICK, -123_456, -61, -1, 0, 1, 60, 12_345, MAX_TICK])
def test_tick_at_sqrt_price_round_trip(tick: int) -> None:
    sqrt_price = get_sqrt_price_at_tick(tick)
    assert get_tick_at_sqrt_price(sqrt_price) == tick
    if tick > MIN_TICK:
        assert get_tick_at_sqrt_price(sqrt_price - 1) == tick - 1


def test_tick_at_sqrt_price_rejects_out_of_range() -> None:
    with pytest.raises(ValueError, match="out of bounds"):
        get_tick_at_sqrt_price(MIN_SQRT_PRICE - 1)
    with pytest.raises(ValueError, match="out of bounds"):
        get_tick_at_sqrt_price(MAX_SQRT_PRICE + 1)


# ---------------------------------------------------------------------------
# Rounded ticks
# ---------------------------------------------------------------------------

def test_usable_ticks() -> None:
    assert min_usable_tick(60) == -887220
    assert max_usable_tick(60) == 887220
    assert min_usable_tick(1) == MIN_TICK
    assert max_usable_tick(1) == MAX_TICK


@pytest.mark.parametrize(
    "tick,spacing,expected",
    [(0, 60, 0), (59, 60, 0), (60, 60, 60), (-1, 60, -60), (-60, 60, -60), (-61, 60, -120)],
)
def test_round_tick_single_floors(tick: int, spacing: int, expected: int) -> None:
    assert round_tick_single(tick, spacing) == expected


def test_round_tick_brackets() -> None:
    assert round_tick(61, 60) == (60, 120)
    assert round_tick(-1, 10) == (-10, 0)


def test_is_aligned() -> None:
    assert is_aligned(-120, 60)
    assert not is_aligned(-121, 60)


def test_spacing_must_be_positive() -> None:
    with pytest.raises(ValueError, match="tick_spacing"):
        round_tick_single(10, 0)
    with pytest.raises(TypeError):
        min_usable_tick(True)  # type: ignore[arg-type]
