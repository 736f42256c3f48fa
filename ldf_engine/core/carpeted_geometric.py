"""Carpeted-geometric distribution: a geometric core over a thin uniform carpet.

Record layout: `[0]` shift mode, `[1:4]` min_tick (or offset), `[4:7]` length,
`[7:11]` alpha, `[11:15]` carpet weight (uint32, WEIGHT_BASE-scaled).

The carpet covers every usable tick outside the core, so no usable tick has
zero density. Its weight is split between the left and right pieces in
proportion to their tick counts; the core carries the rest.
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
    WEIGHT_BASE,
    alpha_in_range,
    check_int24,
    read_shift_mode,
    require_record,
    resolve_anchor,
    static_bounds_ok,
    usable_range,
)
from .segments import Segment, Shape, Side
from .shift_mode import ShiftMode


@dataclass(frozen=True)
class CarpetedGeometricParams:
    shift_mode: ShiftMode
    min_tick: int
    length: int
    alpha: int
    weight_carpet: int

    @property
    def anchor(self) -> int:
        return self.min_tick

    def with_anchor(self, tick: int) -> "CarpetedGeometricParams":
        return replace(self, min_tick=tick)


def encode_params(shift_mode: ShiftMode, min_tick: int, length: int, alpha: int, weight_carpet: int) -> bytes:
    check_int24("min_tick", min_tick)
    check_int24("length", length)
    return pack_fields(
        [
            (int(ShiftMode(shift_mode)), 1, False),
            (min_tick, 3, True),
            (length, 3, True),
            (alpha, 4, False),
            (weight_carpet, 4, False),
        ]
    )


def _fields(raw: bytes) -> CarpetedGeometricParams:
    return CarpetedGeometricParams(
        shift_mode=read_shift_mode(raw),
        min_tick=read_int24(raw, 1),
        length=read_int24(raw, 4),
        alpha=read_uint(raw, 7, 4),
        weight_carpet=read_uint(raw, 11, 4),
    )


def _shape_ok(p: CarpetedGeometricParams) -> bool:
    return p.length > 0 and alpha_in_range(p.alpha) and 0 < p.weight_carpet < WEIGHT_BASE


def decode_params(
    ldf_params: bytes, tick_spacing: int, twap_tick: Optional[int] = None
) -> CarpetedGeometricParams:
    p = _fields(require_record(ldf_params))
    if not _shape_ok(p):
        raise InvalidParamsError("carpeted geometric length, alpha and carpet weight must be in range")
    lo, hi = usable_range(tick_spacing)
    min_tick = resolve_anchor(
        p.shift_mode, p.min_tick, tick_spacing, twap_tick, lower=lo, upper=hi - p.length * tick_spacing
    )
    return p.with_anchor(min_tick)


def shape(params: CarpetedGeometricParams, tick_spacing: int) -> Shape:
    lo, hi = usable_range(tick_spacing)
    core_end = params.min_tick + params.length * tick_spacing
    n_left = (params.min_tick - lo) // tick_spacing
    n_right = (hi - core_end) // tick_spacing

    carpet_x96 = 0
    if n_left + n_right > 0:
        carpet_x96 = mul_div(params.weight_carpet, Q96, WEIGHT_BASE)
    carpet_left_x96 = mul_div(carpet_x96, n_left, n_left + n_right) if carpet_x96 else 0

    left = right = None
    if n_left > 0:
        left = Segment(start_tick=lo, length=n_left, ratio_x96=Q96, weight_x96=carpet_left_x96)
    if n_right > 0:
        right = Segment(start_tick=core_end, length=n_right, ratio_x96=Q96, weight_x96=carpet_x96 - carpet_left_x96)
    core = segment(params.min_tick, params.length, params.alpha, Q96 - carpet_x96)
    return segments.build_shape(tick_spacing, (left, core, right))


def _core_min_density(sh: Shape, params: CarpetedGeometricParams) -> int:
    core_last = params.min_tick + (params.length - 1) * sh.tick_spacing
    return min(segments.density(sh, params.min_tick), segments.density(sh, core_last))


def _carpet_positive(sh: Shape) -> bool:
    return all(segments.density(sh, seg.start_tick) > 0 for seg in sh.segments if seg.is_uniform)


def is_valid_params(tick_spacing: int, twap_seconds_ago: int, ldf_params: bytes) -> bool:
    try:
        p = _fields(require_record(ldf_params))
    except InvalidParamsError:
        return False
    if not _shape_ok(p):
        return False
    if not static_bounds_ok(p.shift_mode, twap_seconds_ago, p.min_tick, p.length * tick_spacing, tick_spacing):
        return False
    if p.shift_mode is not ShiftMode.STATIC:
        # densities do not depend on where the core sits; evaluate it at the left edge
        p = p.with_anchor(usable_range(tick_spacing)[0])
    sh = shape(p, tick_spacing)
    return _core_min_density(sh, p) > MIN_LIQUIDITY_DENSITY and _carpet_positive(sh)


def density(rounded_tick: int, tick_spacing: int, params: CarpetedGeometricParams) -> int:
    return segments.density(shape(params, tick_spacing), rounded_tick)


def cumulative_density_right(rounded_tick: int, tick_spacing: int, params: CarpetedGeometricParams) -> int:
    return segments.cumulative_density_right(shape(params, tick_spacing), rounded_tick)


def cumulative_density_left(rounded_tick: int, tick_spacing: int, params: CarpetedGeometricParams) -> int:
    return segments.cumulative_density_left(shape(params, tick_spacing), rounded_tick)


def inverse_cumulative_density(
    side: Side, target: int, tick_spacing: int, params: CarpetedGeometricParams
) -> Tuple[bool, int]:
    return segments.inverse_cumulative_density(shape(params, tick_spacing), side, target)
