"""
Packed 32-byte record codec.

Parameter records and persisted LDF state are fixed-width big-endian byte
strings. Fields are read and written at explicit byte offsets; signed fields
use two's complement of the field width (ticks are 3 bytes / int24).
"""

from __future__ import annotations

from typing import Iterable, Tuple


WORD_SIZE = 32
INT24_MIN = -(1 << 23)
INT24_MAX = (1 << 23) - 1


def _require_word(raw: bytes) -> bytes:
    if not isinstance(raw, (bytes, bytearray)):
        raise TypeError("record must be bytes")
    if len(raw) != WORD_SIZE:
        raise ValueError(f"record must be {WORD_SIZE} bytes, got {len(raw)}")
    return bytes(raw)


def read_uint(raw: bytes, offset: int, size: int) -> int:
    word = _require_word(raw)
    if offset < 0 or size <= 0 or offset + size > WORD_SIZE:
        raise ValueError("field out of range")
    return int.from_bytes(word[offset : offset + size], "big", signed=False)


def read_int(raw: bytes, offset: int, size: int) -> int:
    word = _require_word(raw)
    if offset < 0 or size <= 0 or offset + size > WORD_SIZE:
        raise ValueError("field out of range")
    return int.from_bytes(word[offset : offset + size], "big", signed=True)


def read_int24(raw: bytes, offset: int) -> int:
    return read_int(raw, offset, 3)


def pack_fields(fields: Iterable[Tuple[int, int, bool]]) -> bytes:
    """
    Pack `(value, size, signed)` triples in order and zero-pad to 32 bytes.

    Raises ValueError if a value does not fit its field or the record overflows.
    """
    out = bytearray()
    for value, size, signed in fields:
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError("field values must be ints")
        try:
            out += value.to_bytes(size, "big", signed=signed)
        except OverflowError as exc:
            raise ValueError(f"value {value} does not fit in {size} bytes") from exc
    if len(out) > WORD_SIZE:
        raise ValueError("packed record exceeds 32 bytes")
    return bytes(out) + bytes(WORD_SIZE - len(out))
