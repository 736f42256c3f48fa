# [TESTER] v1

from __future__ import annotations

import pytest

from ldf_engine.state.codec import INT24_MAX, INT24_MIN
from ldf_engine.state.ldf_state import UNINITIALIZED_STATE, LDFState, decode_ldf_state, encode_ldf_state


def test_all_zero_record_is_uninitialized() -> None:
    state = decode_ldf_state(UNINITIALIZED_STATE)
    assert state == LDFState(initialized=False, last_anchor=0)


def test_encoded_layout() -> None:
    raw = encode_ldf_state(-120)
    assert len(raw) == 32
    assert raw[0] == 0x01
    assert raw[1:4] == (-120).to_bytes(3, "big", signed=True)
    assert raw[4:] == bytes(28)


@pytest.mark.parametrize("anchor", [INT24_MIN, -887220, -1, 0, 60, INT24_MAX])
def test_state_round_trip(anchor: int) -> None:
    state = decode_ldf_state(encode_ldf_state(anchor))
    assert state.initialized
    assert state.last_anchor == anchor


def test_unknown_flag_reads_as_uninitialized() -> None:
    raw = b"\x02" + (500).to_bytes(3, "big", signed=True) + bytes(28)
    assert not decode_ldf_state(raw).initialized


def test_anchor_must_fit_int24() -> None:
    with pytest.raises(ValueError):
        encode_ldf_state(INT24_MAX + 1)
    with pytest.raises(ValueError, match="int24"):
        LDFState(initialized=True, last_anchor=INT24_MIN - 1)
    with pytest.raises(TypeError):
        LDFState(initialized=True, last_anchor=True)  # type: ignore[arg-type]
