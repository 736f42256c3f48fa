"""
Liquidity density functions and the swap-math engine built on them.

Submodules are imported directly (`ldf_engine.core.ldf`,
`ldf_engine.core.swap_math`, ...); this package does not re-export them.
"""
