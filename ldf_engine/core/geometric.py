"""Geometric distribution: density proportional to `alpha**x` over `length` rounded ticks.

Record layout: `[0]` shift mode, `[1:4]` min_tick (or offset), `[4:7]` length,
`[7:11]` alpha (uint32, ALPHA_BASE-scaled).

alpha < 1 puts the mass at the left edge, alpha > 1 at the right edge.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from ..kernels.python.fixed_point import Q96
from ..state.codec import pack_fields, read_int24, read_uint
from . import segments
from .errors import InvalidParamsError
from .params import (
    MIN_LIQUIDITY_DENSITY,
    alpha_in_range,
    alpha_x96,
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
class GeometricParams:
    shift_mode: ShiftMode
    min_tick: int
    length: int
    alpha: int

    @property
    def anchor(self) -> int:
        return self.min_tick

    def with_anchor(self, tick: int) -> "GeometricParams":
        return replace(self, min_tick=tick)


def encode_params(shift_mode: ShiftMode, min_tick: int, length: int, alpha: int) -> bytes:
    check_int24("min_tick", min_tick)
    check_int24("length", length)
    return pack_fields(
        [(int(ShiftMode(shift_mode)), 1, False), (min_tick, 3, True), (length, 3, True), (alpha, 4, False)]
    )


def _fields(raw: bytes) -> Tuple[ShiftMode, int, int, int]:
    return read_shift_mode(raw), read_int24(raw, 1), read_int24(raw, 4), read_uint(raw, 7, 4)


def decode_params(ldf_params: bytes, tick_spacing: int, twap_tick: Optional[int] = None) -> GeometricParams:
    shift_mode, anchor_field, length, alpha = _fields(require_record(ldf_params))
    if length <= 0:
        raise InvalidParamsError("length must be positive")
    if not alpha_in_range(alpha):
        raise InvalidParamsError(f"alpha {alpha} out of range")
    lo, hi = usable_range(tick_spacing)
    min_tick = resolve_anchor(
        shift_mode, anchor_field, tick_spacing, twap_tick, lower=lo, upper=hi - length * tick_spacing
    )
    return GeometricParams(shift_mode=shift_mode, min_tick=min_tick, length=length, alpha=alpha)


def segment(start_tick: int, length: int, alpha: int, weight_x96: int = Q96) -> Segment:
    return Segment(start_tick=start_tick, length=length, ratio_x96=alpha_x96(alpha), weight_x96=weight_x96)


def min_density(sh: Shape) -> int:
    """Smallest density of a monotone run: one of its two edge ticks."""
    return min(segments.density(sh, sh.domain_start), segments.density(sh, sh.last_tick))


def is_valid_params(tick_spacing: int, twap_seconds_ago: int, ldf_params: bytes) -> bool:
    try:
        shift_mode, anchor_field, length, alpha = _fields(require_record(ldf_params))
    except InvalidParamsError:
        return False
    if length <= 0 or not alpha_in_range(alpha):
        return False
    if not static_bounds_ok(shift_mode, twap_seconds_ago, anchor_field, length * tick_spacing, tick_spacing):
        return False
    sh = build(anchor_field, length, alpha, tick_spacing)
    return min_density(sh) > MIN_LIQUIDITY_DENSITY


def build(min_tick: int, length: int, alpha: int, tick_spacing: int) -> Shape:
    return Shape(tick_spacing=tick_spacing, segments=(segment(min_tick, length, alpha),))


def shape(params: GeometricParams, tick_spacing: int) -> Shape:
    return build(params.min_tick, params.length, params.alpha, tick_spacing)


def density(rounded_tick: int, tick_spacing: int, params: GeometricParams) -> int:
    return segments.density(shape(params, tick_spacing), rounded_tick)


def cumulative_density_right(rounded_tick: int, tick_spacing: int, params: GeometricParams) -> int:
    return segments.cumulative_density_right(shape(params, tick_spacing), rounded_tick)


def cumulative_density_left(rounded_tick: int, tick_spacing: int, params: GeometricParams) -> int:
    return segments.cumulative_density_left(shape(params, tick_spacing), rounded_tick)


def inverse_cumulative_density(
    side: Side, target: int, tick_spacing: int, params: GeometricParams
) -> Tuple[bool, int]:
    return segments.inverse_cumulative_density(shape(params, tick_spacing), side, target)
