"""
Integer kernels for Q96 concentrated-liquidity math.

- `fixed_point`: Q96/WAD helpers, `rpow`, binary and natural logs.
- `tick_math`: tick <-> sqrt price conversion and tick rounding.
- `sqrt_price_math`: token deltas and single constant-liquidity swap steps.

Every function takes and returns ints; rounding direction is explicit in the
signature or the name.
"""
