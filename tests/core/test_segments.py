# [TESTER] v1

from __future__ import annotations

import pytest

from ldf_engine.core import segments
from ldf_engine.core.segments import Segment, Shape, Side
from ldf_engine.kernels.python.fixed_point import Q96
from ldf_engine.kernels.python.sqrt_price_math import get_amount0_delta, get_amount1_delta
from ldf_engine.kernels.python.tick_math import get_sqrt_price_at_tick


SPACING = 10
L = 10**24


def _ticks(shape: Shape):
    return range(shape.domain_start, shape.domain_end, shape.tick_spacing)


def _decaying() -> Shape:
    return Shape(SPACING, (Segment(start_tick=-50, length=10, ratio_x96=Q96 * 8 // 10, weight_x96=Q96),))


def _growing() -> Shape:
    return Shape(SPACING, (Segment(start_tick=-50, length=10, ratio_x96=Q96 * 12 // 10, weight_x96=Q96),))


def _mixed() -> Shape:
    half = Q96 // 2
    return Shape(
        SPACING,
        (
            Segment(start_tick=-100, length=8, ratio_x96=Q96 * 13 // 10, weight_x96=Q96 // 4),
            Segment(start_tick=-20, length=4, ratio_x96=Q96, weight_x96=half - Q96 // 4),
            Segment(start_tick=20, length=8, ratio_x96=Q96 * 7 // 10, weight_x96=half),
        ),
    )


SHAPES = [_decaying, _growing, _mixed]


# ---------------------------------------------------------------------------
# Shape construction
# ---------------------------------------------------------------------------

def test_shape_requires_contiguous_segments() -> None:
    a = Segment(start_tick=0, length=2, ratio_x96=Q96, weight_x96=Q96 // 2)
    b = Segment(start_tick=30, length=2, ratio_x96=Q96, weight_x96=Q96 // 2)
    with pytest.raises(ValueError, match="contiguous"):
        Shape(SPACING, (a, b))


def test_segment_rejects_empty_run() -> None:
    with pytest.raises(ValueError, match="length"):
        Segment(start_tick=0, length=0, ratio_x96=Q96, weight_x96=Q96)


def test_build_shape_drops_missing_segments() -> None:
    seg = Segment(start_tick=0, length=3, ratio_x96=Q96, weight_x96=Q96)
    shape = segments.build_shape(SPACING, (None, seg, None))
    assert shape.segments == (seg,)
    assert (shape.domain_start, shape.domain_end, shape.last_tick) == (0, 30, 20)


# ---------------------------------------------------------------------------
# Density and cumulative density
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("make", SHAPES)
def test_densities_sum_to_total_mass(make) -> None:
    shape = make()
    total = sum(segments.density(shape, t) for t in _ticks(shape))
    assert total == segments.total_mass(shape)
    assert Q96 - total <= len(shape.segments) * 8


@pytest.mark.parametrize("make", SHAPES)
def test_density_is_zero_outside_domain(make) -> None:
    shape = make()
    assert segments.density(shape, shape.domain_start - SPACING) == 0
    assert segments.density(shape, shape.domain_end) == 0
    assert segments.density(shape, shape.domain_end + 100 * SPACING) == 0


@pytest.mark.parametrize("make", SHAPES)
def test_cumulative_boundaries(make) -> None:
    shape = make()
    total = segments.total_mass(shape)
    assert segments.cumulative_density_right(shape, shape.domain_start) == total
    assert segments.cumulative_density_right(shape, shape.domain_end) == 0
    assert segments.cumulative_density_left(shape, shape.domain_start - SPACING) == 0
    assert segments.cumulative_density_left(shape, shape.last_tick) == total


@pytest.mark.parametrize("make", SHAPES)
def test_cumulatives_telescope_with_density(make) -> None:
    shape = make()
    for t in _ticks(shape):
        right, right_next = (segments.cumulative_density_right(shape, x) for x in (t, t + SPACING))
        left, left_prev = (segments.cumulative_density_left(shape, x) for x in (t, t - SPACING))
        d = segments.density(shape, t)
        assert right == right_next + d
        assert left == left_prev + d


@pytest.mark.parametrize("make", SHAPES)
def test_cumulatives_are_monotone(make) -> None:
    shape = make()
    rights = [segments.cumulative_density_right(shape, t) for t in _ticks(shape)]
    lefts = [segments.cumulative_density_left(shape, t) for t in _ticks(shape)]
    assert rights == sorted(rights, reverse=True)
    assert lefts == sorted(lefts)


def test_decay_direction() -> None:
    down, up = _decaying(), _growing()
    assert segments.density(down, down.domain_start) > segments.density(down, down.last_tick)
    assert segments.density(up, up.domain_start) < segments.density(up, up.last_tick)


# ---------------------------------------------------------------------------
# Density inversion
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("make", SHAPES)
def test_inverse_cumulative_density_round_trip(make) -> None:
    shape = make()
    for t in _ticks(shape):
        right = segments.cumulative_density_right(shape, t)
        left = segments.cumulative_density_left(shape, t)
        assert segments.inverse_cumulative_density(shape, Side.RIGHT, right) == (True, t)
        assert segments.inverse_cumulative_density(shape, Side.LEFT, left) == (True, t)


@pytest.mark.parametrize("make", SHAPES)
def test_inverse_zero_target_returns_outer_tick(make) -> None:
    shape = make()
    assert segments.inverse_cumulative_density(shape, Side.LEFT, 0) == (True, shape.domain_start)
    assert segments.inverse_cumulative_density(shape, Side.RIGHT, 0) == (True, shape.last_tick)


@pytest.mark.parametrize("make", SHAPES)
def test_inverse_above_total_fails(make) -> None:
    shape = make()
    total = segments.total_mass(shape)
    assert segments.inverse_cumulative_density(shape, Side.LEFT, total + 1) == (False, 0)
    assert segments.inverse_cumulative_density(shape, Side.RIGHT, total + 1) == (False, 0)


def test_inverse_rejects_negative_target() -> None:
    with pytest.raises(ValueError, match="non-negative"):
        segments.inverse_cumulative_density(_decaying(), Side.LEFT, -1)


# ---------------------------------------------------------------------------
# Token amounts
# ---------------------------------------------------------------------------

def test_uniform_amounts_match_constant_liquidity_formulas() -> None:
    seg = Segment(start_tick=-50, length=10, ratio_x96=Q96, weight_x96=Q96)
    shape = Shape(SPACING, (seg,))
    liquidity = (L * (Q96 // 10)) >> 96
    lower, upper = get_sqrt_price_at_tick(-50), get_sqrt_price_at_tick(50)
    assert segments.cumulative_amount0(shape, -50, L) == get_amount0_delta(lower, upper, liquidity, True)
    assert segments.cumulative_amount1(shape, 40, L) == get_amount1_delta(lower, upper, liquidity, True)
    mid = get_sqrt_price_at_tick(0)
    assert segments.cumulative_amount0(shape, 0, L) == get_amount0_delta(mid, upper, liquidity, True)
    assert segments.cumulative_amount1(shape, -10, L) == get_amount1_delta(lower, mid, liquidity, True)


@pytest.mark.parametrize("make", SHAPES)
def test_amounts_vanish_outside_domain(make) -> None:
    shape = make()
    assert segments.cumulative_amount0(shape, shape.domain_end, L) == 0
    assert segments.cumulative_amount1(shape, shape.domain_start - SPACING, L) == 0
    assert segments.cumulative_amount0(shape, shape.domain_start - 5 * SPACING, L) == segments.cumulative_amount0(
        shape, shape.domain_start, L
    )


@pytest.mark.parametrize("make", SHAPES)
def test_amounts_are_strictly_monotone(make) -> None:
    shape = make()
    amount0 = [segments.cumulative_amount0(shape, t, L) for t in _ticks(shape)]
    amount1 = [segments.cumulative_amount1(shape, t, L) for t in _ticks(shape)]
    assert all(a > b for a, b in zip(amount0, amount0[1:]))
    assert all(a < b for a, b in zip(amount1, amount1[1:]))


def test_geometric_amounts_track_per_tick_liquidity() -> None:
    shape = _decaying()
    for t in _ticks(shape):
        liquidity = (segments.density(shape, t) * L) >> 96
        lower, upper = get_sqrt_price_at_tick(t), get_sqrt_price_at_tick(t + SPACING)
        in_tick0 = segments.cumulative_amount0(shape, t, L) - segments.cumulative_amount0(shape, t + SPACING, L)
        in_tick1 = segments.cumulative_amount1(shape, t, L) - segments.cumulative_amount1(shape, t - SPACING, L)
        exact0 = get_amount0_delta(lower, upper, liquidity, False)
        exact1 = get_amount1_delta(lower, upper, liquidity, False)
        assert abs(in_tick0 - exact0) * 10**9 <= exact0
        assert abs(in_tick1 - exact1) * 10**9 <= exact1


@pytest.mark.parametrize("ratio_x96", [Q96 * 12 // 10, Q96 * 8 // 10])
def test_amount0_keeps_precision_at_min_usable_tick(ratio_x96: int) -> None:
    # sqrt prices near the bottom of the tick range are ~4e9 in Q96
    spacing = 1000
    shape = Shape(spacing, (Segment(start_tick=-887000, length=20, ratio_x96=ratio_x96, weight_x96=Q96),))
    for t in range(shape.domain_start, shape.domain_end, spacing):
        liquidity = (segments.density(shape, t) * L) >> 96
        exact0 = get_amount0_delta(get_sqrt_price_at_tick(t), get_sqrt_price_at_tick(t + spacing), liquidity, False)
        in_tick0 = segments.cumulative_amount0(shape, t, L) - segments.cumulative_amount0(shape, t + spacing, L)
        assert abs(in_tick0 - exact0) * 10**7 <= exact0
    total = sum(
        get_amount0_delta(
            get_sqrt_price_at_tick(t),
            get_sqrt_price_at_tick(t + spacing),
            (segments.density(shape, t) * L) >> 96,
            False,
        )
        for t in range(shape.domain_start, shape.domain_end, spacing)
    )
    assert abs(segments.cumulative_amount0(shape, -887000, L) - total) * 10**7 <= total


@pytest.mark.parametrize("make", SHAPES)
def test_inverse_cumulative_amount_round_trip(make) -> None:
    shape = make()
    for t in _ticks(shape):
        a0 = segments.cumulative_amount0(shape, t, L)
        a1 = segments.cumulative_amount1(shape, t, L)
        assert segments.inverse_cumulative_amount0(shape, a0, L) == (True, t)
        assert segments.inverse_cumulative_amount1(shape, a1, L) == (True, t)


@pytest.mark.parametrize("make", SHAPES)
def test_inverse_amount_between_ticks(make) -> None:
    shape = make()
    t = shape.domain_start + 3 * SPACING
    a0 = segments.cumulative_amount0(shape, t + SPACING, L) + 1
    a1 = segments.cumulative_amount1(shape, t - SPACING, L) + 1
    assert segments.inverse_cumulative_amount0(shape, a0, L) == (True, t)
    assert segments.inverse_cumulative_amount1(shape, a1, L) == (True, t)


@pytest.mark.parametrize("make", SHAPES)
def test_inverse_amount_edges(make) -> None:
    shape = make()
    assert segments.inverse_cumulative_amount0(shape, 0, L) == (True, shape.last_tick)
    assert segments.inverse_cumulative_amount1(shape, 0, L) == (True, shape.domain_start)
    total0 = segments.cumulative_amount0(shape, shape.domain_start, L)
    total1 = segments.cumulative_amount1(shape, shape.last_tick, L)
    assert segments.inverse_cumulative_amount0(shape, total0 + 1, L) == (False, 0)
    assert segments.inverse_cumulative_amount1(shape, total1 + 1, L) == (False, 0)
