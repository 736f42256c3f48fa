"""
Persisted LDF state.

Dynamic distributions remember the last anchor tick they were evaluated at.
The record is `[0]` initialized flag (0x01), `[1:4]` last anchor (int24), the
rest zero. The all-zero record is the uninitialized state. Callers own
storage; every evaluation returns the record to persist next.
"""

from __future__ import annotations

from dataclasses import dataclass

from .codec import INT24_MAX, INT24_MIN, pack_fields, read_int24, read_uint


UNINITIALIZED_STATE = bytes(32)

_INITIALIZED_FLAG = 0x01


@dataclass(frozen=True)
class LDFState:
    initialized: bool
    last_anchor: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.last_anchor, int) or isinstance(self.last_anchor, bool):
            raise TypeError("last_anchor must be an int")
        if not (INT24_MIN <= self.last_anchor <= INT24_MAX):
            raise ValueError("last_anchor must fit in int24")


def decode_ldf_state(raw: bytes) -> LDFState:
    flag = read_uint(raw, 0, 1)
    if flag != _INITIALIZED_FLAG:
        return LDFState(initialized=False, last_anchor=0)
    return LDFState(initialized=True, last_anchor=read_int24(raw, 1))


def encode_ldf_state(last_anchor: int) -> bytes:
    """Initialized state record carrying `last_anchor`."""
    return pack_fields([(_INITIALIZED_FLAG, 1, False), (last_anchor, 3, True)])
