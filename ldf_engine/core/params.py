"""Shared parameter-record helpers for the distribution families."""

from __future__ import annotations

from typing import Optional

from ..kernels.python.fixed_point import Q96
from ..kernels.python.tick_math import max_usable_tick, min_usable_tick, round_tick_single
from ..state.codec import INT24_MAX, INT24_MIN, WORD_SIZE, read_uint
from .errors import InvalidParamsError
from .shift_mode import ShiftMode


# -- Constants ---------------------------------------------------------------

ALPHA_BASE = 10**8
MIN_ALPHA = 10**3
MAX_ALPHA = 12 * 10**8
WEIGHT_BASE = 10**9
MIN_LIQUIDITY_DENSITY = Q96 // 1000


# -- Field helpers -----------------------------------------------------------

def require_record(ldf_params: bytes) -> bytes:
    if not isinstance(ldf_params, (bytes, bytearray)):
        raise InvalidParamsError("ldf_params must be bytes")
    if len(ldf_params) != WORD_SIZE:
        raise InvalidParamsError(f"ldf_params must be {WORD_SIZE} bytes")
    return bytes(ldf_params)


def read_shift_mode(ldf_params: bytes) -> ShiftMode:
    raw = read_uint(require_record(ldf_params), 0, 1)
    try:
        return ShiftMode(raw)
    except ValueError as exc:
        raise InvalidParamsError(f"unknown shift mode byte {raw}") from exc


def alpha_x96(alpha: int) -> int:
    """ALPHA_BASE-scaled decay factor to Q96."""
    return alpha * Q96 // ALPHA_BASE


def alpha_in_range(alpha: int) -> bool:
    return MIN_ALPHA <= alpha <= MAX_ALPHA and alpha != ALPHA_BASE


def check_int24(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if not (INT24_MIN <= value <= INT24_MAX):
        raise InvalidParamsError(f"{name} must fit in int24")


def resolve_anchor(
    shift_mode: ShiftMode,
    anchor_field: int,
    tick_spacing: int,
    twap_tick: Optional[int],
    *,
    lower: int,
    upper: int,
) -> int:
    """
    Anchor tick for a decoded record.

    STATIC records carry the anchor itself. Other modes carry an offset from
    the reference tick; the sum is floored to the spacing and clamped into
    `[lower, upper]`.
    """
    if shift_mode is ShiftMode.STATIC:
        return anchor_field
    if twap_tick is None:
        raise InvalidParamsError("dynamic shift mode requires a reference tick")
    anchor = round_tick_single(twap_tick + anchor_field, tick_spacing)
    return min(max(anchor, lower), upper)


def usable_range(tick_spacing: int) -> tuple[int, int]:
    """`(min_usable_tick, max_usable_tick)` for `tick_spacing`."""
    return min_usable_tick(tick_spacing), max_usable_tick(tick_spacing)


def static_bounds_ok(
    shift_mode: ShiftMode,
    twap_seconds_ago: int,
    anchor_field: int,
    domain_width: int,
    tick_spacing: int,
) -> bool:
    """
    Checks shared by every family: lookback window vs. shift mode, anchor (or
    offset) alignment, and a domain of `domain_width` ticks fitting the usable
    range (at the static anchor when STATIC).
    """
    lo, hi = usable_range(tick_spacing)
    if shift_mode is not ShiftMode.STATIC and twap_seconds_ago == 0:
        return False
    if anchor_field % tick_spacing != 0:
        return False
    if domain_width <= 0 or domain_width > hi - lo:
        return False
    if shift_mode is ShiftMode.STATIC:
        return lo <= anchor_field and anchor_field + domain_width <= hi
    return True
