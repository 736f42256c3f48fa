"""
Tick math kernel.

Ticks are signed integers on a logarithmic price axis (price = 1.0001**tick).
Prices are carried as Q96 square roots. Rounded ticks are multiples of the
pool's tick spacing; a rounded tick `t` covers the interval `[t, t + spacing)`.
"""

from __future__ import annotations

from .fixed_point import MAX_UINT256


MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_PRICE = 4295128739
MAX_SQRT_PRICE = 1461446703485210103287273052203988822378723970342

# sqrt(1.0001**-(2**i)) in Q128, for i in [0, 20).
_TICK_RATIOS = (
    0xFFFCB933BD6FAD37AA2D162D1A594001,
    0xFFF97272373D413259A46990580E213A,
    0xFFF2E50F5F656932EF12357CF3C7FDCC,
    0xFFE5CACA7E10E4E61C3624EAA0941CD0,
    0xFFCB9843D60F6159C9DB58835C926644,
    0xFF973B41FA98C081472E6896DFB254C0,
    0xFF2EA16466C96A3843EC78B326B52861,
    0xFE5DEE046A99A2A811C461F1969C3053,
    0xFCBE86C7900A88AEDCFFC83B479AA3A4,
    0xF987A7253AC413176F2B074CF7815E54,
    0xF3392B0822B70005940C7A398E4B70F3,
    0xE7159475A2C29B7443B29C7FA6E889D9,
    0xD097F3BDFD2022B8845AD8F792AA5825,
    0xA9F746462D870FDF8A65DC1F90E061E5,
    0x70D869A156D2A1B890BB3DF62BAF32F7,
    0x31BE135F97D08FD981231505542FCFA6,
    0x9AA508B5B7A84E1C677DE54F3E99BC9,
    0x5D6AF8DEDB81196699C329225EE604,
    0x2216E584F5FA1EA926041BEDFE98,
    0x48A170391F7DC42444E8FA2,
)


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_spacing(tick_spacing: int) -> None:
    _require_int("tick_spacing", tick_spacing)
    if tick_spacing <= 0:
        raise ValueError("tick_spacing must be positive")


def get_sqrt_price_at_tick(tick: int) -> int:
    """sqrt(1.0001**tick) as Q96, rounded up (integer exact)."""
    _require_int("tick", tick)
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError("tick out of bounds")

    abs_tick = -tick if tick < 0 else tick
    ratio = 1 << 128
    for i, step in enumerate(_TICK_RATIOS):
        if (abs_tick >> i) & 1:
            ratio = (ratio * step) >> 128
    if tick > 0:
        ratio = MAX_UINT256 // ratio

    return (ratio >> 32) + (1 if ratio & 0xFFFFFFFF else 0)


def get_tick_at_sqrt_price(sqrt_price_x96: int) -> int:
    """
    Greatest tick whose sqrt price is <= `sqrt_price_x96`.

    Accepts `[MIN_SQRT_PRICE, MAX_SQRT_PRICE]` (inclusive, so the price at
    MAX_TICK maps back to MAX_TICK).
    """
    _require_int("sqrt_price_x96", sqrt_price_x96)
    if sqrt_price_x96 < MIN_SQRT_PRICE or sqrt_price_x96 > MAX_SQRT_PRICE:
        raise ValueError("sqrt price out of bounds")

    lo, hi = MIN_TICK, MAX_TICK
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if get_sqrt_price_at_tick(mid) <= sqrt_price_x96:
            lo = mid
        else:
            hi = mid - 1
    return lo


def min_usable_tick(tick_spacing: int) -> int:
    _require_spacing(tick_spacing)
    return -(MAX_TICK // tick_spacing) * tick_spacing


def max_usable_tick(tick_spacing: int) -> int:
    _require_spacing(tick_spacing)
    return (MAX_TICK // tick_spacing) * tick_spacing


def round_tick_single(tick: int, tick_spacing: int) -> int:
    """Round `tick` down (towards -inf) to a multiple of `tick_spacing`."""
    _require_int("tick", tick)
    _require_spacing(tick_spacing)
    return (tick // tick_spacing) * tick_spacing


def round_tick(tick: int, tick_spacing: int) -> tuple[int, int]:
    """Return `(rounded_tick, next_rounded_tick)` bracketing `tick`."""
    rounded = round_tick_single(tick, tick_spacing)
    return rounded, rounded + tick_spacing


def is_aligned(tick: int, tick_spacing: int) -> bool:
    _require_int("tick", tick)
    _require_spacing(tick_spacing)
    return tick % tick_spacing == 0
