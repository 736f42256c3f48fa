"""
LDF facade.

Routes an encoded parameter record to its distribution family by `LDFKind`,
resolves the anchor against the persisted state (shift mode, surge detection)
and exposes density, cumulative and inversion queries on the resolved shape.

State is threaded explicitly: every evaluation takes the prior state record and
returns the record the caller should persist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Optional, Tuple

from ..kernels.python.fixed_point import Q96
from ..kernels.python.tick_math import is_aligned
from ..state.ldf_state import decode_ldf_state, encode_ldf_state
from . import carpeted_geometric, discrete_laplace, double_geometric, geometric, segments, uniform
from .segments import Shape, Side
from .shift_mode import ShiftMode, apply_shift


logger = logging.getLogger(__name__)


@unique
class LDFKind(Enum):
    """Type tag stored alongside a pool's parameter record."""
    UNIFORM = "uniform"
    GEOMETRIC = "geometric"
    DOUBLE_GEOMETRIC = "double_geometric"
    DISCRETE_LAPLACE = "discrete_laplace"
    CARPETED_GEOMETRIC = "carpeted_geometric"


def parse_kind(value: Any) -> LDFKind:
    if isinstance(value, LDFKind):
        return value
    try:
        return LDFKind(str(value).strip().lower())
    except ValueError as exc:
        raise ValueError(f"unsupported ldf kind: {value!r}") from exc


def _family(kind: LDFKind):
    if kind is LDFKind.UNIFORM:
        return uniform
    if kind is LDFKind.GEOMETRIC:
        return geometric
    if kind is LDFKind.DOUBLE_GEOMETRIC:
        return double_geometric
    if kind is LDFKind.DISCRETE_LAPLACE:
        return discrete_laplace
    if kind is LDFKind.CARPETED_GEOMETRIC:
        return carpeted_geometric
    raise ValueError(f"unsupported ldf kind: {kind!r}")


# -- Results -----------------------------------------------------------------

@dataclass(frozen=True)
class QueryResult:
    """
    Density of the queried rounded tick plus the token amounts (for total
    liquidity Q96) held strictly right of it (token0) and strictly left of it
    (token1).
    """

    liquidity_density_x96: int
    cumulative_amount0_density_x96: int
    cumulative_amount1_density_x96: int
    new_ldf_state: bytes
    should_surge: bool


@dataclass(frozen=True)
class LDFSwapResult:
    """
    Where a cross-tick swap lands.

    `cumulative_amount0/1` are the active balances at the edge of
    `rounded_tick` the swap enters from; `swap_liquidity` is the liquidity of
    that tick for the remainder of the trade.
    """

    success: bool
    rounded_tick: int = 0
    cumulative_amount0: int = 0
    cumulative_amount1: int = 0
    swap_liquidity: int = 0


@dataclass(frozen=True)
class ResolvedLDF:
    """A decoded parameter record with its anchor resolved against state."""

    kind: LDFKind
    params: Any
    shape: Shape
    new_ldf_state: bytes
    should_surge: bool

    @property
    def tick_spacing(self) -> int:
        return self.shape.tick_spacing

    def domain(self) -> Tuple[int, int]:
        """`[start, end)` in ticks."""
        return self.shape.domain_start, self.shape.domain_end

    def density(self, rounded_tick: int) -> int:
        return segments.density(self.shape, rounded_tick)

    def cumulative_density_right(self, rounded_tick: int) -> int:
        return segments.cumulative_density_right(self.shape, rounded_tick)

    def cumulative_density_left(self, rounded_tick: int) -> int:
        return segments.cumulative_density_left(self.shape, rounded_tick)

    def inverse_cumulative_density(self, side: Side, target: int) -> Tuple[bool, int]:
        return segments.inverse_cumulative_density(self.shape, side, target)

    def cumulative_amount0(self, rounded_tick: int, total_liquidity: int) -> int:
        return segments.cumulative_amount0(self.shape, rounded_tick, total_liquidity)

    def cumulative_amount1(self, rounded_tick: int, total_liquidity: int) -> int:
        return segments.cumulative_amount1(self.shape, rounded_tick, total_liquidity)

    def inverse_cumulative_amount0(self, amount: int, total_liquidity: int) -> Tuple[bool, int]:
        return segments.inverse_cumulative_amount0(self.shape, amount, total_liquidity)

    def inverse_cumulative_amount1(self, amount: int, total_liquidity: int) -> Tuple[bool, int]:
        return segments.inverse_cumulative_amount1(self.shape, amount, total_liquidity)

    def query(self, rounded_tick: int) -> QueryResult:
        s = self.tick_spacing
        return QueryResult(
            liquidity_density_x96=self.density(rounded_tick),
            cumulative_amount0_density_x96=self.cumulative_amount0(rounded_tick + s, Q96),
            cumulative_amount1_density_x96=self.cumulative_amount1(rounded_tick - s, Q96),
            new_ldf_state=self.new_ldf_state,
            should_surge=self.should_surge,
        )

    def compute_swap(
        self, inverse_cumulative_amount_input: int, total_liquidity: int, *, zero_for_one: bool, exact_in: bool
    ) -> LDFSwapResult:
        """
        Locate the rounded tick where the active balance of the inverted token
        reaches `inverse_cumulative_amount_input`.

        Exact-in inverts the input token, exact-out the output token. A failed
        inversion (target above what the distribution holds) returns
        `success=False`.
        """
        s = self.tick_spacing
        if exact_in == zero_for_one:
            success, rounded_tick = self.inverse_cumulative_amount0(inverse_cumulative_amount_input, total_liquidity)
        else:
            success, rounded_tick = self.inverse_cumulative_amount1(inverse_cumulative_amount_input, total_liquidity)
        if not success:
            logger.debug(
                "ldf inversion failed: kind=%s target=%d zero_for_one=%s exact_in=%s",
                self.kind.value,
                inverse_cumulative_amount_input,
                zero_for_one,
                exact_in,
            )
            return LDFSwapResult(success=False)

        if zero_for_one:
            # enters from the top edge of the tick
            cumulative_amount0 = self.cumulative_amount0(rounded_tick + s, total_liquidity)
            cumulative_amount1 = self.cumulative_amount1(rounded_tick, total_liquidity)
        else:
            # enters from the bottom edge of the tick
            cumulative_amount0 = self.cumulative_amount0(rounded_tick, total_liquidity)
            cumulative_amount1 = self.cumulative_amount1(rounded_tick - s, total_liquidity)

        return LDFSwapResult(
            success=True,
            rounded_tick=rounded_tick,
            cumulative_amount0=cumulative_amount0,
            cumulative_amount1=cumulative_amount1,
            swap_liquidity=(self.density(rounded_tick) * total_liquidity) >> 96,
        )


# -- Facade ------------------------------------------------------------------

def is_valid_params(kind: LDFKind, tick_spacing: int, twap_seconds_ago: int, ldf_params: bytes) -> bool:
    if not isinstance(tick_spacing, int) or tick_spacing <= 0:
        return False
    return _family(kind).is_valid_params(tick_spacing, twap_seconds_ago, ldf_params)


def encode_params(kind: LDFKind, shift_mode: ShiftMode, **fields: int) -> bytes:
    """Pack a parameter record; `fields` are the family's named fields."""
    return _family(kind).encode_params(shift_mode, **fields)


def decode_params(kind: LDFKind, ldf_params: bytes, tick_spacing: int, twap_tick: Optional[int] = None) -> Any:
    return _family(kind).decode_params(ldf_params, tick_spacing, twap_tick)


def resolve(
    kind: LDFKind,
    ldf_params: bytes,
    ldf_state: bytes,
    *,
    tick_spacing: int,
    twap_tick: Optional[int] = None,
) -> ResolvedLDF:
    """Decode `ldf_params`, apply the shift policy and build the shape."""
    family = _family(kind)
    params = family.decode_params(ldf_params, tick_spacing, twap_tick)
    state = decode_ldf_state(ldf_state)
    anchor, should_surge = apply_shift(params.anchor, state, params.shift_mode)
    if anchor != params.anchor:
        params = params.with_anchor(anchor)
    if should_surge:
        logger.debug(
            "ldf anchor moved: kind=%s from=%d to=%d", kind.value, state.last_anchor, anchor
        )
    return ResolvedLDF(
        kind=kind,
        params=params,
        shape=family.shape(params, tick_spacing),
        new_ldf_state=encode_ldf_state(anchor),
        should_surge=should_surge,
    )


def query(
    kind: LDFKind,
    rounded_tick: int,
    *,
    twap_tick: Optional[int],
    tick_spacing: int,
    ldf_params: bytes,
    ldf_state: bytes,
) -> QueryResult:
    if not is_aligned(rounded_tick, tick_spacing):
        raise ValueError("rounded_tick must be a multiple of tick_spacing")
    ldf = resolve(kind, ldf_params, ldf_state, tick_spacing=tick_spacing, twap_tick=twap_tick)
    return ldf.query(rounded_tick)


def compute_swap(
    kind: LDFKind,
    inverse_cumulative_amount_input: int,
    total_liquidity: int,
    *,
    zero_for_one: bool,
    exact_in: bool,
    twap_tick: Optional[int],
    tick_spacing: int,
    ldf_params: bytes,
    ldf_state: bytes,
) -> LDFSwapResult:
    ldf = resolve(kind, ldf_params, ldf_state, tick_spacing=tick_spacing, twap_tick=twap_tick)
    return ldf.compute_swap(
        inverse_cumulative_amount_input, total_liquidity, zero_for_one=zero_for_one, exact_in=exact_in
    )
