"""Double-geometric distribution: two geometric runs side by side, mixed by weight.

Record layout: `[0]` shift mode, `[1:4]` min_tick (or offset), `[4:7]` length0,
`[7:11]` alpha0, `[11:15]` weight0, `[15:18]` length1, `[18:22]` alpha1,
`[22:26]` weight1.

Run 0 starts at `min_tick`; run 1 starts where run 0 ends. Run i carries
`weight_i / (weight0 + weight1)` of the mass.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from ..kernels.python.fixed_point import Q96, mul_div
from ..state.codec import pack_fields, read_int24, read_uint
from . import segments
from .errors import InvalidParamsError
from .geometric import segment
from .params import (
    MIN_LIQUIDITY_DENSITY,
    alpha_in_range,
    check_int24,
    read_shift_mode,
    require_record,
    resolve_anchor,
    static_bounds_ok,
    usable_range,
)
from .segments import Shape, Side
from .shift_mode import ShiftMode


@dataclass(frozen=True)
class DoubleGeometricParams:
    shift_mode: ShiftMode
    min_tick: int
    length0: int
    alpha0: int
    weight0: int
    length1: int
    alpha1: int
    weight1: int

    @property
    def anchor(self) -> int:
        return self.min_tick

    @property
    def length(self) -> int:
        return self.length0 + self.length1

    def with_anchor(self, tick: int) -> "DoubleGeometricParams":
        return replace(self, min_tick=tick)


def encode_params(
    shift_mode: ShiftMode,
    min_tick: int,
    length0: int,
    alpha0: int,
    weight0: int,
    length1: int,
    alpha1: int,
    weight1: int,
) -> bytes:
    check_int24("min_tick", min_tick)
    check_int24("length0", length0)
    check_int24("length1", length1)
    return pack_fields(
        [
            (int(ShiftMode(shift_mode)), 1, False),
            (min_tick, 3, True),
            (length0, 3, True),
            (alpha0, 4, False),
            (weight0, 4, False),
            (length1, 3, True),
            (alpha1, 4, False),
            (weight1, 4, False),
        ]
    )


def _fields(raw: bytes) -> DoubleGeometricParams:
    return DoubleGeometricParams(
        shift_mode=read_shift_mode(raw),
        min_tick=read_int24(raw, 1),
        length0=read_int24(raw, 4),
        alpha0=read_uint(raw, 7, 4),
        weight0=read_uint(raw, 11, 4),
        length1=read_int24(raw, 15),
        alpha1=read_uint(raw, 18, 4),
        weight1=read_uint(raw, 22, 4),
    )


def _shape_ok(p: DoubleGeometricParams) -> bool:
    return (
        p.length0 > 0
        and p.length1 > 0
        and p.weight0 > 0
        and p.weight1 > 0
        and alpha_in_range(p.alpha0)
        and alpha_in_range(p.alpha1)
    )


def decode_params(ldf_params: bytes, tick_spacing: int, twap_tick: Optional[int] = None) -> DoubleGeometricParams:
    p = _fields(require_record(ldf_params))
    if not _shape_ok(p):
        raise InvalidParamsError("double geometric lengths, weights and alphas must be in range")
    lo, hi = usable_range(tick_spacing)
    min_tick = resolve_anchor(
        p.shift_mode, p.min_tick, tick_spacing, twap_tick, lower=lo, upper=hi - p.length * tick_spacing
    )
    return p.with_anchor(min_tick)


def shape(params: DoubleGeometricParams, tick_spacing: int) -> Shape:
    weight0_x96 = mul_div(params.weight0, Q96, params.weight0 + params.weight1)
    left = segment(params.min_tick, params.length0, params.alpha0, weight0_x96)
    right = segment(left.end_tick(tick_spacing), params.length1, params.alpha1, Q96 - weight0_x96)
    return Shape(tick_spacing=tick_spacing, segments=(left, right))


def _min_density(sh: Shape) -> int:
    s = sh.tick_spacing
    edges = []
    for seg in sh.segments:
        edges.append(segments.density(sh, seg.start_tick))
        edges.append(segments.density(sh, seg.end_tick(s) - s))
    return min(edges)


def is_valid_params(tick_spacing: int, twap_seconds_ago: int, ldf_params: bytes) -> bool:
    try:
        p = _fields(require_record(ldf_params))
    except InvalidParamsError:
        return False
    if not _shape_ok(p):
        return False
    if not static_bounds_ok(p.shift_mode, twap_seconds_ago, p.min_tick, p.length * tick_spacing, tick_spacing):
        return False
    return _min_density(shape(p, tick_spacing)) > MIN_LIQUIDITY_DENSITY


def density(rounded_tick: int, tick_spacing: int, params: DoubleGeometricParams) -> int:
    return segments.density(shape(params, tick_spacing), rounded_tick)


def cumulative_density_right(rounded_tick: int, tick_spacing: int, params: DoubleGeometricParams) -> int:
    return segments.cumulative_density_right(shape(params, tick_spacing), rounded_tick)


def cumulative_density_left(rounded_tick: int, tick_spacing: int, params: DoubleGeometricParams) -> int:
    return segments.cumulative_density_left(shape(params, tick_spacing), rounded_tick)


def inverse_cumulative_density(
    side: Side, target: int, tick_spacing: int, params: DoubleGeometricParams
) -> Tuple[bool, int]:
    return segments.inverse_cumulative_density(shape(params, tick_spacing), side, target)
