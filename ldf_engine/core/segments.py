"""
Closed-form geometric segment kernel.

Every distribution family is described as a `Shape`: a contiguous run of
`Segment`s over rounded ticks. Inside a segment the density of the x-th rounded
tick is proportional to `ratio**x`, and the segment carries a fixed share
(`weight_x96`) of the total mass. `ratio == Q96` is a uniform run.

Everything here is closed form:
- masses and densities are normalized geometric series,
- token amounts are geometric series in the per-tick price step,
- inversions isolate the exponent with `ln_q96` and then confirm the estimate
  against the forward function with a bounded number of single-tick steps.

Powers are always taken of a base <= Q96: a ratio above Q96 is evaluated
through its reciprocal with the index range mirrored.

Conventions (rounded tick `t`, spacing `s`, interval `[t, t + s)`):
- `cumulative_density_right(t)`: mass of ticks >= t.
- `cumulative_density_left(t)`: mass of ticks <= t.
- `cumulative_amount0(t)`: token0 held in ticks >= t.
- `cumulative_amount1(t)`: token1 held in ticks <= t.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from functools import partial
from typing import Callable, Tuple

from ..kernels.python.fixed_point import (
    Q96,
    WAD,
    div_up,
    ln_q96,
    mul_div,
    mul_div_up,
    rpow,
    sub_relu,
    x_wad_to_rounded_tick,
)
from ..kernels.python.sqrt_price_math import get_amount0_delta, get_amount1_delta
from ..kernels.python.tick_math import get_sqrt_price_at_tick


# Single-tick steps allowed when confirming a closed-form inversion.
_MAX_CORRECTIONS = 8


@unique
class Side(Enum):
    """Which cumulative an inversion targets."""
    RIGHT = "right"
    LEFT = "left"


@dataclass(frozen=True)
class Segment:
    start_tick: int
    length: int
    ratio_x96: int
    weight_x96: int

    def __post_init__(self) -> None:
        if self.length <= 0:
            raise ValueError("segment length must be positive")
        if self.ratio_x96 <= 0:
            raise ValueError("segment ratio must be positive")
        if self.weight_x96 < 0:
            raise ValueError("segment weight must be non-negative")

    @property
    def is_uniform(self) -> bool:
        return self.ratio_x96 == Q96

    def end_tick(self, tick_spacing: int) -> int:
        return self.start_tick + self.length * tick_spacing


@dataclass(frozen=True)
class Shape:
    tick_spacing: int
    segments: Tuple[Segment, ...]

    def __post_init__(self) -> None:
        if self.tick_spacing <= 0:
            raise ValueError("tick_spacing must be positive")
        if not self.segments:
            raise ValueError("shape needs at least one segment")
        for prev, seg in zip(self.segments, self.segments[1:]):
            if seg.start_tick != prev.end_tick(self.tick_spacing):
                raise ValueError("segments must be contiguous and ordered")

    @property
    def domain_start(self) -> int:
        return self.segments[0].start_tick

    @property
    def domain_end(self) -> int:
        return self.segments[-1].end_tick(self.tick_spacing)

    @property
    def last_tick(self) -> int:
        return self.domain_end - self.tick_spacing

    def contains(self, rounded_tick: int) -> bool:
        return self.domain_start <= rounded_tick < self.domain_end


def build_shape(tick_spacing: int, segments) -> Shape:
    """Shape from `segments`, dropping empty runs."""
    return Shape(tick_spacing=tick_spacing, segments=tuple(s for s in segments if s is not None))


# -- Fixed-point series ------------------------------------------------------

def _pow(base: int, exponent: int) -> int:
    return rpow(base, exponent, Q96)


def _decay(ratio_x96: int) -> Tuple[int, bool]:
    """`(b, mirrored)` with `b <= Q96`; mirrored means density ~ b**(n-1-x)."""
    if ratio_x96 > Q96:
        return Q96 * Q96 // ratio_x96, True
    return ratio_x96, False


def _geometric_sum(first: int, ratio: int, count: int) -> int:
    """first * (1 + ratio + ... + ratio**(count-1)) with `ratio <= Q96`."""
    if count <= 0:
        return 0
    if ratio >= Q96:
        return first * count
    return mul_div(first, Q96 - _pow(ratio, count), Q96 - ratio)


def _head_share(value: int, tau_x96: int, n: int, m: int, round_up: bool) -> int:
    """
    Share of `value` carried by the first `m` of `n` terms of a geometric run
    with term ratio `tau`. Exact at `m == 0` and `m == n`.
    """
    if m <= 0:
        return 0
    if m >= n:
        return value
    num = den = 0
    if tau_x96 < Q96:
        num = Q96 - _pow(tau_x96, m)
        den = Q96 - _pow(tau_x96, n)
    elif tau_x96 > Q96:
        sigma = Q96 * Q96 // tau_x96
        sigma_n = _pow(sigma, n)
        num = sub_relu(_pow(sigma, n - m), sigma_n)
        den = Q96 - sigma_n
    if den <= 0:
        num, den = m, n
    num = min(num, den)
    if round_up:
        return mul_div_up(value, num, den)
    return mul_div(value, num, den)


def _head_count(tau_x96: int, n: int, local: int, total: int) -> int:
    """Closed-form estimate of the smallest `m` with `_head_share(total, tau, n, m) >= local`."""
    if local <= 0:
        return 0
    if local >= total:
        return n
    if tau_x96 < Q96:
        ln_tau = ln_q96(tau_x96)
        tau_n = _pow(tau_x96, n)
        y = Q96 - mul_div(local, Q96 - tau_n, total)
        if ln_tau == 0 or tau_n >= Q96:
            return div_up(local * n, total)
        if y <= 0:
            return n
        return x_wad_to_rounded_tick(ln_q96(y) * WAD // ln_tau, 0, 1, True)
    if tau_x96 > Q96:
        sigma = Q96 * Q96 // tau_x96
        ln_sigma = ln_q96(sigma)
        sigma_n = _pow(sigma, n)
        y = sigma_n + mul_div(local, Q96 - sigma_n, total)
        if ln_sigma == 0 or sigma_n >= Q96:
            return div_up(local * n, total)
        if y <= 0:
            return 1
        return n - x_wad_to_rounded_tick(ln_q96(y) * WAD // ln_sigma, 0, 1, False)
    return div_up(local * n, total)


def _refine_count(measure: Callable[[int], int], n: int, local: int, estimate: int) -> int:
    """Smallest `m` in `[1, n]` with `measure(m) >= local`, starting from `estimate`."""
    m = min(max(estimate, 1), n)
    for _ in range(_MAX_CORRECTIONS):
        if m < n and measure(m) < local:
            m += 1
        elif m > 1 and measure(m - 1) >= local:
            m -= 1
        else:
            break
    return m


# -- Mass --------------------------------------------------------------------

def _uniform_unit(seg: Segment) -> int:
    return seg.weight_x96 // seg.length


def segment_mass(seg: Segment) -> int:
    if seg.is_uniform:
        return _uniform_unit(seg) * seg.length
    return seg.weight_x96


def _segment_mass_below(seg: Segment, count: int) -> int:
    count = min(max(count, 0), seg.length)
    if seg.is_uniform:
        return _uniform_unit(seg) * count
    return _head_share(seg.weight_x96, seg.ratio_x96, seg.length, count, round_up=False)


def total_mass(shape: Shape) -> int:
    return sum(segment_mass(seg) for seg in shape.segments)


def mass_below(shape: Shape, rounded_tick: int) -> int:
    """Mass of every rounded tick strictly below `rounded_tick`."""
    s = shape.tick_spacing
    mass = 0
    for seg in shape.segments:
        if rounded_tick <= seg.start_tick:
            break
        count = (rounded_tick - seg.start_tick) // s
        if count >= seg.length:
            mass += segment_mass(seg)
            continue
        mass += _segment_mass_below(seg, count)
        break
    return mass


def density(shape: Shape, rounded_tick: int) -> int:
    """Share of total liquidity (Q96) at `rounded_tick`; 0 outside the domain."""
    if not shape.contains(rounded_tick):
        return 0
    s = shape.tick_spacing
    for seg in shape.segments:
        if rounded_tick < seg.end_tick(s):
            x = (rounded_tick - seg.start_tick) // s
            return sub_relu(_segment_mass_below(seg, x + 1), _segment_mass_below(seg, x))
    return 0


def cumulative_density_right(shape: Shape, rounded_tick: int) -> int:
    return total_mass(shape) - mass_below(shape, rounded_tick)


def cumulative_density_left(shape: Shape, rounded_tick: int) -> int:
    return mass_below(shape, rounded_tick + shape.tick_spacing)


def _smallest_mass_count(seg: Segment, local: int) -> int:
    if seg.is_uniform:
        return min(div_up(local, _uniform_unit(seg)), seg.length)
    estimate = _head_count(seg.ratio_x96, seg.length, local, seg.weight_x96)
    return _refine_count(partial(_segment_mass_below, seg), seg.length, local, estimate)


def _smallest_tick_with_mass(shape: Shape, target: int) -> int:
    """Smallest rounded tick `u` with `mass_below(u) >= target`, for `0 < target <= total`."""
    s = shape.tick_spacing
    acc = 0
    for seg in shape.segments:
        mass = segment_mass(seg)
        if mass > 0 and acc + mass >= target:
            return seg.start_tick + _smallest_mass_count(seg, target - acc) * s
        acc += mass
    return shape.domain_end


def inverse_cumulative_density(shape: Shape, side: Side, target: int) -> Tuple[bool, int]:
    """
    RIGHT: largest rounded tick whose right cumulative is >= `target`.
    LEFT: smallest rounded tick whose left cumulative is >= `target`.

    A zero target returns the outer boundary tick for that side. A target above
    the total mass returns `(False, 0)`.
    """
    if target < 0:
        raise ValueError("target must be non-negative")
    total = total_mass(shape)
    if target > total:
        return False, 0
    s = shape.tick_spacing
    if side is Side.LEFT:
        if target == 0:
            return True, shape.domain_start
        return True, _smallest_tick_with_mass(shape, target) - s
    if target == 0:
        return True, shape.last_tick
    return True, _smallest_tick_with_mass(shape, total - target + 1) - s


# -- Token amounts -----------------------------------------------------------

def _step_down(tick_spacing: int) -> int:
    """sqrt price ratio across one rounded tick, inverted (< Q96)."""
    return get_sqrt_price_at_tick(-tick_spacing)


def _uniform_liquidity(seg: Segment, total_liquidity: int) -> int:
    return (total_liquidity * _uniform_unit(seg)) >> 96


def _series_weight(seg: Segment, series: int) -> int:
    b, _ = _decay(seg.ratio_x96)
    norm = mul_div(Q96 - b, Q96, Q96 - _pow(b, seg.length))
    return mul_div(mul_div(seg.weight_x96, norm, Q96), series, Q96)


def _sqrt_price_ratio(tick: int) -> Tuple[int, int]:
    """
    `(num, den)` with `num / den` the sqrt price at `tick`.

    Negative ticks are read through the reciprocal of the mirrored tick: far
    below zero the Q96 value itself keeps only a few significant digits.
    """
    if tick >= 0:
        return get_sqrt_price_at_tick(tick), Q96
    return Q96, get_sqrt_price_at_tick(-tick)


def _anchored_series(seg: Segment, step_num: int, step_den: int) -> Tuple[int, int]:
    """
    `(series, x0)`: sum over the segment of `b**e(x) * price(x) / price(x0)`
    in Q96, where the per-tick price factor is `step_num / step_den`.

    `x0` is the end with the largest term, so every power stays below the unit
    and the anchor price is read once from the tick table.
    """
    n = seg.length
    b, mirrored = _decay(seg.ratio_x96)
    num = (Q96 if mirrored else b) * step_num
    den = (b if mirrored else Q96) * step_den
    x0 = 0
    if num > den:
        x0 = n - 1
        num, den = den, num
    exponent = n - 1 - x0 if mirrored else x0
    return _geometric_sum(_pow(b, exponent), num * Q96 // den, n), x0


def _segment_amount0_total(seg: Segment, tick_spacing: int, total_liquidity: int) -> int:
    if seg.is_uniform:
        sqrt_start = get_sqrt_price_at_tick(seg.start_tick)
        sqrt_end = get_sqrt_price_at_tick(seg.end_tick(tick_spacing))
        return get_amount0_delta(sqrt_start, sqrt_end, _uniform_liquidity(seg, total_liquidity), True)
    inv_r = _step_down(tick_spacing)
    series, x0 = _anchored_series(seg, inv_r, Q96)
    weight = _series_weight(seg, series)
    # token0 per unit liquidity scales with 1 / sqrt price at the tick's lower edge
    den, num = _sqrt_price_ratio(seg.start_tick + x0 * tick_spacing)
    return mul_div_up(total_liquidity * weight * (Q96 - inv_r), num, Q96 * Q96 * den)


def _segment_amount1_total(seg: Segment, tick_spacing: int, total_liquidity: int) -> int:
    if seg.is_uniform:
        sqrt_start = get_sqrt_price_at_tick(seg.start_tick)
        sqrt_end = get_sqrt_price_at_tick(seg.end_tick(tick_spacing))
        return get_amount1_delta(sqrt_start, sqrt_end, _uniform_liquidity(seg, total_liquidity), True)
    inv_r = _step_down(tick_spacing)
    series, x0 = _anchored_series(seg, Q96, inv_r)
    weight = _series_weight(seg, series)
    # token1 per unit liquidity scales with the sqrt price at the tick's upper edge
    num, den = _sqrt_price_ratio(seg.start_tick + (x0 + 1) * tick_spacing)
    return mul_div_up(total_liquidity * weight * (Q96 - inv_r), num, Q96 * Q96 * den)


def _amount0_tau(seg: Segment, tick_spacing: int) -> int:
    """Term ratio of token0 amounts read from the segment's right end."""
    return Q96**3 // (seg.ratio_x96 * _step_down(tick_spacing))


def _amount1_tau(seg: Segment, tick_spacing: int) -> int:
    """Term ratio of token1 amounts read from the segment's left end."""
    return seg.ratio_x96 * Q96 // _step_down(tick_spacing)


def _segment_amount0(seg: Segment, tick_spacing: int, total_liquidity: int, count: int) -> int:
    """Token0 in the last `count` rounded ticks of `seg`."""
    if count <= 0:
        return 0
    count = min(count, seg.length)
    if seg.is_uniform:
        sqrt_from = get_sqrt_price_at_tick(seg.end_tick(tick_spacing) - count * tick_spacing)
        sqrt_end = get_sqrt_price_at_tick(seg.end_tick(tick_spacing))
        return get_amount0_delta(sqrt_from, sqrt_end, _uniform_liquidity(seg, total_liquidity), True)
    total = _segment_amount0_total(seg, tick_spacing, total_liquidity)
    return _head_share(total, _amount0_tau(seg, tick_spacing), seg.length, count, round_up=True)


def _segment_amount1(seg: Segment, tick_spacing: int, total_liquidity: int, count: int) -> int:
    """Token1 in the first `count` rounded ticks of `seg`."""
    if count <= 0:
        return 0
    count = min(count, seg.length)
    if seg.is_uniform:
        sqrt_start = get_sqrt_price_at_tick(seg.start_tick)
        sqrt_to = get_sqrt_price_at_tick(seg.start_tick + count * tick_spacing)
        return get_amount1_delta(sqrt_start, sqrt_to, _uniform_liquidity(seg, total_liquidity), True)
    total = _segment_amount1_total(seg, tick_spacing, total_liquidity)
    return _head_share(total, _amount1_tau(seg, tick_spacing), seg.length, count, round_up=True)


def cumulative_amount0(shape: Shape, rounded_tick: int, total_liquidity: int) -> int:
    """Token0 held in rounded ticks >= `rounded_tick` (rounded up)."""
    s = shape.tick_spacing
    amount = 0
    for seg in shape.segments:
        if rounded_tick >= seg.end_tick(s):
            continue
        skipped = max((rounded_tick - seg.start_tick) // s, 0)
        amount += _segment_amount0(seg, s, total_liquidity, seg.length - skipped)
    return amount


def cumulative_amount1(shape: Shape, rounded_tick: int, total_liquidity: int) -> int:
    """Token1 held in rounded ticks <= `rounded_tick` (rounded up)."""
    s = shape.tick_spacing
    amount = 0
    for seg in shape.segments:
        if rounded_tick < seg.start_tick:
            break
        count = min((rounded_tick - seg.start_tick) // s + 1, seg.length)
        amount += _segment_amount1(seg, s, total_liquidity, count)
    return amount


def inverse_cumulative_amount0(shape: Shape, amount: int, total_liquidity: int) -> Tuple[bool, int]:
    """Largest rounded tick whose `cumulative_amount0` is >= `amount`."""
    if amount < 0:
        raise ValueError("amount must be non-negative")
    if amount == 0:
        return True, shape.last_tick
    s = shape.tick_spacing
    acc = 0
    for seg in reversed(shape.segments):
        seg_total = _segment_amount0(seg, s, total_liquidity, seg.length)
        if seg_total > 0 and acc + seg_total >= amount:
            local = amount - acc
            estimate = _head_count(_amount0_tau(seg, s), seg.length, local, seg_total)
            measure = partial(_segment_amount0, seg, s, total_liquidity)
            count = _refine_count(measure, seg.length, local, estimate)
            return True, seg.end_tick(s) - count * s
        acc += seg_total
    return False, 0


def inverse_cumulative_amount1(shape: Shape, amount: int, total_liquidity: int) -> Tuple[bool, int]:
    """Smallest rounded tick whose `cumulative_amount1` is >= `amount`."""
    if amount < 0:
        raise ValueError("amount must be non-negative")
    if amount == 0:
        return True, shape.domain_start
    s = shape.tick_spacing
    acc = 0
    for seg in shape.segments:
        seg_total = _segment_amount1(seg, s, total_liquidity, seg.length)
        if seg_total > 0 and acc + seg_total >= amount:
            local = amount - acc
            estimate = _head_count(_amount1_tau(seg, s), seg.length, local, seg_total)
            measure = partial(_segment_amount1, seg, s, total_liquidity)
            count = _refine_count(measure, seg.length, local, estimate)
            return True, seg.start_tick + (count - 1) * s
        acc += seg_total
    return False, 0
