"""
Packed records for the LDF engine (parameter fields and persisted state)
"""

from .codec import WORD_SIZE, pack_fields, read_int, read_int24, read_uint
from .ldf_state import LDFState, UNINITIALIZED_STATE, decode_ldf_state, encode_ldf_state

__all__ = [
    "WORD_SIZE",
    "pack_fields",
    "read_int",
    "read_int24",
    "read_uint",
    "LDFState",
    "UNINITIALIZED_STATE",
    "decode_ldf_state",
    "encode_ldf_state",
]
