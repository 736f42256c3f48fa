"""Discrete-Laplace distribution: density proportional to `alpha**(|t - mu| / spacing)`.

Record layout: `[0]` shift mode, `[1:4]` mu (or offset), `[4:8]` alpha
(uint32, ALPHA_BASE-scaled, strictly below 1).

The domain is the full usable tick range. Ticks below `mu` form a mirrored run
that grows towards `mu`; `mu` and the ticks above it form a decaying run. The
two runs are weighted by their unnormalized sums so the shape stays a single
two-sided geometric decay.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from ..kernels.python.fixed_point import Q96, mul_div, rpow
from ..state.codec import pack_fields, read_int24, read_uint
from . import segments
from .errors import InvalidParamsError
from .params import (
    ALPHA_BASE,
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
class DiscreteLaplaceParams:
    shift_mode: ShiftMode
    mu: int
    alpha: int

    @property
    def anchor(self) -> int:
        return self.mu

    def with_anchor(self, tick: int) -> "DiscreteLaplaceParams":
        return replace(self, mu=tick)


def encode_params(shift_mode: ShiftMode, mu: int, alpha: int) -> bytes:
    check_int24("mu", mu)
    return pack_fields([(int(ShiftMode(shift_mode)), 1, False), (mu, 3, True), (alpha, 4, False)])


def _fields(raw: bytes) -> DiscreteLaplaceParams:
    return DiscreteLaplaceParams(shift_mode=read_shift_mode(raw), mu=read_int24(raw, 1), alpha=read_uint(raw, 4, 4))


def _alpha_ok(alpha: int) -> bool:
    return alpha_in_range(alpha) and alpha < ALPHA_BASE


def decode_params(ldf_params: bytes, tick_spacing: int, twap_tick: Optional[int] = None) -> DiscreteLaplaceParams:
    p = _fields(require_record(ldf_params))
    if not _alpha_ok(p.alpha):
        raise InvalidParamsError(f"alpha {p.alpha} out of range")
    lo, hi = usable_range(tick_spacing)
    mu = resolve_anchor(p.shift_mode, p.mu, tick_spacing, twap_tick, lower=lo, upper=hi - tick_spacing)
    return p.with_anchor(mu)


def build(mu: int, alpha: int, tick_spacing: int) -> Shape:
    lo, hi = usable_range(tick_spacing)
    a = alpha_x96(alpha)
    n_left = (mu - lo) // tick_spacing
    n_right = (hi - mu) // tick_spacing

    left_sum = a * (Q96 - rpow(a, n_left, Q96)) // Q96
    right_sum = Q96 - rpow(a, n_right, Q96)
    weight_left = mul_div(left_sum, Q96, left_sum + right_sum)

    left = None
    if n_left > 0:
        left = Segment(start_tick=lo, length=n_left, ratio_x96=Q96 * Q96 // a, weight_x96=weight_left)
    right = Segment(start_tick=mu, length=n_right, ratio_x96=a, weight_x96=Q96 - weight_left)
    return segments.build_shape(tick_spacing, (left, right))


def shape(params: DiscreteLaplaceParams, tick_spacing: int) -> Shape:
    return build(params.mu, params.alpha, tick_spacing)


def _edges_positive(sh: Shape) -> bool:
    return segments.density(sh, sh.domain_start) > 0 and segments.density(sh, sh.last_tick) > 0


def is_valid_params(tick_spacing: int, twap_seconds_ago: int, ldf_params: bytes) -> bool:
    try:
        p = _fields(require_record(ldf_params))
    except InvalidParamsError:
        return False
    if not _alpha_ok(p.alpha):
        return False
    if not static_bounds_ok(p.shift_mode, twap_seconds_ago, p.mu, tick_spacing, tick_spacing):
        return False
    if p.shift_mode is ShiftMode.STATIC:
        return _edges_positive(build(p.mu, p.alpha, tick_spacing))
    # mu may be pushed to either usable edge
    lo, hi = usable_range(tick_spacing)
    return _edges_positive(build(lo, p.alpha, tick_spacing)) and _edges_positive(
        build(hi - tick_spacing, p.alpha, tick_spacing)
    )


def density(rounded_tick: int, tick_spacing: int, params: DiscreteLaplaceParams) -> int:
    return segments.density(shape(params, tick_spacing), rounded_tick)


def cumulative_density_right(rounded_tick: int, tick_spacing: int, params: DiscreteLaplaceParams) -> int:
    return segments.cumulative_density_right(shape(params, tick_spacing), rounded_tick)


def cumulative_density_left(rounded_tick: int, tick_spacing: int, params: DiscreteLaplaceParams) -> int:
    return segments.cumulative_density_left(shape(params, tick_spacing), rounded_tick)


def inverse_cumulative_density(
    side: Side, target: int, tick_spacing: int, params: DiscreteLaplaceParams
) -> Tuple[bool, int]:
    return segments.inverse_cumulative_density(shape(params, tick_spacing), side, target)
