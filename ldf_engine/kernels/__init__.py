"""
Kernel layer.

`ldf_engine/kernels/python/` holds the integer-only math the distributions and
the swap engine are built from: fixed point, tick math and constant-liquidity
price steps.
"""
