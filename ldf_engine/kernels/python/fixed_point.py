"""
Fixed-point kernel (WAD / Q96 semantics).

Integer-only helpers shared by the liquidity density functions and the swap
engine:
- `mul_div` / `mul_div_up`: full-precision a*b/d with explicit rounding.
- `rpow`: exponentiation by squaring with round-half-up after every multiply.
  Intermediates are bounded by the 256-bit word of the on-chain original;
  exceeding it raises `FixedPointOverflowError`.
- `ln_q96`: natural log of a Q96 value, returned WAD-scaled.
- `x_wad_to_rounded_tick`: converts an inverted (WAD-scaled) tick index into a
  rounded tick, snapping numerical noise at 1e-6 tick resolution first.

There is no floating point anywhere in this module.
"""

from __future__ import annotations

from ...core.errors import FixedPointOverflowError


WAD = 10**18
Q96 = 1 << 96
MAX_UINT256 = (1 << 256) - 1

# ln(2) scaled by 1e36.
LN2_E36 = 693147180559945309417232121458176568

# Fractional bits produced by the binary-log loop in `ln_q96`.
_LOG2_FRACTION_BITS = 64

# Inverted tick indices are snapped to this resolution (1e-6 of a tick).
INVERSE_RESOLUTION_WAD = 10**12


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) for non-negative operands."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if a < 0 or b < 0:
        raise ValueError("mul_div operands must be non-negative")
    return (a * b) // denominator


def mul_div_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator) for non-negative operands."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if a < 0 or b < 0:
        raise ValueError("mul_div operands must be non-negative")
    return -((-(a * b)) // denominator)


def div_up(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if numerator < 0:
        raise ValueError("numerator must be non-negative")
    return (numerator + denominator - 1) // denominator


def sub_relu(a: int, b: int) -> int:
    """max(a - b, 0)."""
    return a - b if a > b else 0


def abs_diff(a: int, b: int) -> int:
    return a - b if a >= b else b - a


def dist(a: int, b: int) -> int:
    """Distance between two ticks."""
    return abs_diff(a, b)


def rpow(x: int, n: int, unit: int) -> int:
    """
    Compute `x**n` where `x` is scaled by `unit`, rounding half up at each step.

    `0**0 == unit`; `0**n == 0` for n > 0.

    Raises FixedPointOverflowError if a squared base or an accumulated product
    would not fit in 256 bits.
    """
    _require_int("x", x)
    _require_int("n", n)
    _require_int("unit", unit)
    if x < 0 or n < 0:
        raise ValueError("rpow operands must be non-negative")
    if unit <= 0:
        raise ValueError("unit must be positive")

    if x == 0:
        return unit if n == 0 else 0

    z = x if n & 1 else unit
    half = unit >> 1
    n >>= 1
    while n:
        if x >> 128:
            raise FixedPointOverflowError("rpow: base squared exceeds 256 bits")
        x_round = x * x + half
        if x_round > MAX_UINT256:
            raise FixedPointOverflowError("rpow: rounded square exceeds 256 bits")
        x = x_round // unit
        if n & 1:
            zx_round = z * x + half
            if zx_round > MAX_UINT256:
                raise FixedPointOverflowError("rpow: accumulated product exceeds 256 bits")
            z = zx_round // unit
        n >>= 1
    return z


def log2_q64(x: int) -> int:
    """
    log2(x / 2**96) with 64 fractional bits (floor), for x > 0.

    The integer part comes from the most significant bit; the fractional bits
    come from repeatedly squaring the normalized mantissa.
    """
    _require_int("x", x)
    if x <= 0:
        raise ValueError("log2 undefined for non-positive input")

    msb = x.bit_length() - 1
    if msb >= 127:
        y = x >> (msb - 127)
    else:
        y = x << (127 - msb)

    two = 1 << 128
    frac = 0
    for _ in range(_LOG2_FRACTION_BITS):
        y = (y * y) >> 127
        frac <<= 1
        if y >= two:
            y >>= 1
            frac |= 1

    return ((msb - 96) << _LOG2_FRACTION_BITS) + frac


def ln_q96(x: int) -> int:
    """Natural log of a positive Q96 value, WAD-scaled (signed)."""
    if not isinstance(x, int) or isinstance(x, bool):
        raise TypeError("x must be an int")
    if x <= 0:
        raise ValueError("ln_q96 undefined for non-positive input")
    return (log2_q64(x) * LN2_E36) // (WAD << _LOG2_FRACTION_BITS)


def snap_wad(x_wad: int) -> int:
    """Round `x_wad` to the nearest 1e-6 (ties away from zero)."""
    q, r = divmod(abs(x_wad), INVERSE_RESOLUTION_WAD)
    if 2 * r >= INVERSE_RESOLUTION_WAD:
        q += 1
    snapped = q * INVERSE_RESOLUTION_WAD
    return snapped if x_wad >= 0 else -snapped


def x_wad_to_rounded_tick(x_wad: int, anchor: int, tick_spacing: int, round_up: bool) -> int:
    """
    Convert a WAD-scaled tick index into a rounded tick.

    `x_wad` is first snapped to 1e-6 resolution so that closed-form inversions
    landing a hair off an integer index do not get bumped to the neighbour.
    Then the index is rounded towards +inf (`round_up`) or -inf.
    """
    _require_int("x_wad", x_wad)
    _require_int("tick_spacing", tick_spacing)
    if tick_spacing <= 0:
        raise ValueError("tick_spacing must be positive")
    x, rem = divmod(snap_wad(x_wad), WAD)
    if round_up and rem:
        x += 1
    return x * tick_spacing + anchor
