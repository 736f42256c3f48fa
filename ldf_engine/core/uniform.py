"""Uniform distribution: equal density on `[tick_lower, tick_lower + length * spacing)`.

Record layout: `[0]` shift mode, `[1:4]` tick_lower (or offset), `[4:7]` length.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from ..kernels.python.fixed_point import Q96
from ..state.codec import pack_fields, read_int24
from . import segments
from .errors import InvalidParamsError
from .params import check_int24, read_shift_mode, require_record, resolve_anchor, static_bounds_ok, usable_range
from .segments import Segment, Shape, Side
from .shift_mode import ShiftMode


@dataclass(frozen=True)
class UniformParams:
    shift_mode: ShiftMode
    tick_lower: int
    length: int

    @property
    def anchor(self) -> int:
        return self.tick_lower

    def with_anchor(self, tick: int) -> "UniformParams":
        return replace(self, tick_lower=tick)


def encode_params(shift_mode: ShiftMode, tick_lower: int, length: int) -> bytes:
    """`tick_lower` is an offset from the reference tick unless STATIC."""
    check_int24("tick_lower", tick_lower)
    check_int24("length", length)
    return pack_fields([(int(ShiftMode(shift_mode)), 1, False), (tick_lower, 3, True), (length, 3, True)])


def decode_params(ldf_params: bytes, tick_spacing: int, twap_tick: Optional[int] = None) -> UniformParams:
    raw = require_record(ldf_params)
    shift_mode = read_shift_mode(raw)
    anchor_field = read_int24(raw, 1)
    length = read_int24(raw, 4)
    if length <= 0:
        raise InvalidParamsError("length must be positive")
    lo, hi = usable_range(tick_spacing)
    tick_lower = resolve_anchor(
        shift_mode, anchor_field, tick_spacing, twap_tick, lower=lo, upper=hi - length * tick_spacing
    )
    return UniformParams(shift_mode=shift_mode, tick_lower=tick_lower, length=length)


def is_valid_params(tick_spacing: int, twap_seconds_ago: int, ldf_params: bytes) -> bool:
    try:
        raw = require_record(ldf_params)
        shift_mode = read_shift_mode(raw)
    except InvalidParamsError:
        return False
    anchor_field = read_int24(raw, 1)
    length = read_int24(raw, 4)
    if length <= 0:
        return False
    return static_bounds_ok(shift_mode, twap_seconds_ago, anchor_field, length * tick_spacing, tick_spacing)


def shape(params: UniformParams, tick_spacing: int) -> Shape:
    return Shape(
        tick_spacing=tick_spacing,
        segments=(Segment(start_tick=params.tick_lower, length=params.length, ratio_x96=Q96, weight_x96=Q96),),
    )


def density(rounded_tick: int, tick_spacing: int, params: UniformParams) -> int:
    return segments.density(shape(params, tick_spacing), rounded_tick)


def cumulative_density_right(rounded_tick: int, tick_spacing: int, params: UniformParams) -> int:
    return segments.cumulative_density_right(shape(params, tick_spacing), rounded_tick)


def cumulative_density_left(rounded_tick: int, tick_spacing: int, params: UniformParams) -> int:
    return segments.cumulative_density_left(shape(params, tick_spacing), rounded_tick)


def inverse_cumulative_density(side: Side, target: int, tick_spacing: int, params: UniformParams) -> Tuple[bool, int]:
    return segments.inverse_cumulative_density(shape(params, tick_spacing), side, target)
