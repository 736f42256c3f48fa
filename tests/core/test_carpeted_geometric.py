# [TESTER] v1

from __future__ import annotations

import pytest

from ldf_engine.core import carpeted_geometric, segments
from ldf_engine.core.errors import InvalidParamsError
from ldf_engine.core.params import MIN_LIQUIDITY_DENSITY, WEIGHT_BASE
from ldf_engine.core.segments import Side
from ldf_engine.core.shift_mode import ShiftMode
from ldf_engine.kernels.python.fixed_point import Q96
from ldf_engine.kernels.python.tick_math import max_usable_tick, min_usable_tick


SPACING = 1000
LO = min_usable_tick(SPACING)
HI = max_usable_tick(SPACING)
MIN_TICK = -10_000
LENGTH = 20
CORE_END = MIN_TICK + LENGTH * SPACING
CARPET = WEIGHT_BASE // 100


def _raw(mode: ShiftMode = ShiftMode.STATIC, min_tick: int = MIN_TICK, alpha: int = 80_000_000, carpet: int = CARPET) -> bytes:
    return carpeted_geometric.encode_params(mode, min_tick, LENGTH, alpha, carpet)


def _params() -> carpeted_geometric.CarpetedGeometricParams:
    return carpeted_geometric.decode_params(_raw(), SPACING)


def test_encode_layout() -> None:
    raw = _raw()
    assert raw[0] == 3
    assert raw[1:4] == MIN_TICK.to_bytes(3, "big", signed=True)
    assert raw[4:7] == LENGTH.to_bytes(3, "big", signed=True)
    assert raw[7:11] == (80_000_000).to_bytes(4, "big")
    assert raw[11:15] == CARPET.to_bytes(4, "big")
    assert raw[15:] == bytes(17)


def test_shape_covers_usable_range() -> None:
    shape = carpeted_geometric.shape(_params(), SPACING)
    left, core, right = shape.segments
    assert (shape.domain_start, shape.domain_end) == (LO, HI)
    assert (core.start_tick, right.start_tick) == (MIN_TICK, CORE_END)
    assert left.is_uniform and right.is_uniform and not core.is_uniform
    assert left.weight_x96 + right.weight_x96 + core.weight_x96 == Q96


def test_every_usable_tick_has_liquidity() -> None:
    params = _params()
    d = lambda t: carpeted_geometric.density(t, SPACING, params)  # noqa: E731
    assert d(LO) > 0
    assert d(HI - SPACING) > 0
    assert d(LO - SPACING) == 0
    assert d(HI) == 0
    # carpet density is the same on both sides of the core
    assert abs(d(LO) - d(HI - SPACING)) <= 1
    assert d(LO) == d(MIN_TICK - SPACING)


def test_core_dominates_carpet() -> None:
    params = _params()
    d = lambda t: carpeted_geometric.density(t, SPACING, params)  # noqa: E731
    assert d(MIN_TICK) > d(CORE_END - SPACING) > d(CORE_END)
    assert d(CORE_END - SPACING) > MIN_LIQUIDITY_DENSITY


def test_total_mass() -> None:
    params = _params()
    shape = carpeted_geometric.shape(params, SPACING)
    total = sum(carpeted_geometric.density(t, SPACING, params) for t in range(LO, HI, SPACING))
    assert total == segments.total_mass(shape)
    assert Q96 - total <= 2 * len(range(LO, HI, SPACING))
    assert carpeted_geometric.cumulative_density_right(LO, SPACING, params) == total


def test_inverse_round_trip_across_carpet_edges() -> None:
    params = _params()
    for t in range(MIN_TICK - 3 * SPACING, CORE_END + 3 * SPACING, SPACING):
        right = carpeted_geometric.cumulative_density_right(t, SPACING, params)
        left = carpeted_geometric.cumulative_density_left(t, SPACING, params)
        assert carpeted_geometric.inverse_cumulative_density(Side.RIGHT, right, SPACING, params) == (True, t)
        assert carpeted_geometric.inverse_cumulative_density(Side.LEFT, left, SPACING, params) == (True, t)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "kwargs,twap_seconds_ago,expected",
    [
        ({}, 0, True),
        ({"carpet": 0}, 0, False),
        ({"carpet": WEIGHT_BASE}, 0, False),
        ({"alpha": 100_000_000}, 0, False),
        ({"alpha": 50_000_000}, 0, False),
        ({"min_tick": MIN_TICK + 1}, 0, False),
        ({"mode": ShiftMode.BOTH, "min_tick": 0}, 0, False),
        ({"mode": ShiftMode.BOTH, "min_tick": 0}, 60, True),
    ],
)
def test_is_valid_params(kwargs, twap_seconds_ago: int, expected: bool) -> None:
    assert carpeted_geometric.is_valid_params(SPACING, twap_seconds_ago, _raw(**kwargs)) is expected


def test_decode_rejects_out_of_range_carpet() -> None:
    with pytest.raises(InvalidParamsError, match="carpet"):
        carpeted_geometric.decode_params(_raw(carpet=0), SPACING)


def test_dynamic_core_tracks_reference_tick() -> None:
    raw = _raw(mode=ShiftMode.LEFT, min_tick=-5000)
    assert carpeted_geometric.decode_params(raw, SPACING, twap_tick=2500).min_tick == -3000
    assert carpeted_geometric.decode_params(raw, SPACING, twap_tick=-10**6).min_tick == LO
