"""Anchor shift policy for dynamic distributions.

A dynamic distribution re-derives its anchor from a moving reference tick on
every evaluation. The shift mode limits which way the anchor may move relative
to the last persisted anchor; any movement raises the should-surge flag.
"""

from __future__ import annotations

from enum import IntEnum, unique
from typing import Tuple

from ..state.ldf_state import LDFState


@unique
class ShiftMode(IntEnum):
    """Encoded as the first byte of every parameter record."""
    BOTH = 0
    LEFT = 1
    RIGHT = 2
    STATIC = 3


def enforce_shift_mode(tick: int, last_tick: int, shift_mode: ShiftMode) -> int:
    """Clamp a freshly derived anchor to the directions `shift_mode` allows."""
    if shift_mode is ShiftMode.BOTH:
        return tick
    if shift_mode is ShiftMode.LEFT:
        return tick if tick < last_tick else last_tick
    if shift_mode is ShiftMode.RIGHT:
        return tick if tick > last_tick else last_tick
    return last_tick


def apply_shift(anchor: int, state: LDFState, shift_mode: ShiftMode) -> Tuple[int, bool]:
    """
    Resolve the anchor against persisted state.

    Returns `(anchor, should_surge)`. An uninitialized state accepts the
    anchor as-is and never surges.
    """
    if not state.initialized:
        return anchor, False
    resolved = enforce_shift_mode(anchor, state.last_anchor, shift_mode)
    return resolved, resolved != state.last_anchor
