"""
YAML pool configuration.

A pool config names the distribution family, the tick spacing, the oracle
lookback window and the family's fields in readable form; loading packs the
fields into the 32-byte parameter record and validates it.

Example:

    kind: geometric
    tick_spacing: 60
    twap_seconds_ago: 0
    shift_mode: static
    params:
      min_tick: -600
      length: 20
      alpha: 120000000
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from .core.errors import InvalidParamsError
from .core.ldf import LDFKind, encode_params, is_valid_params, parse_kind
from .core.shift_mode import ShiftMode


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolLDFConfig:
    kind: LDFKind
    tick_spacing: int
    twap_seconds_ago: int
    shift_mode: ShiftMode
    ldf_params: bytes

    @property
    def is_dynamic(self) -> bool:
        return self.shift_mode is not ShiftMode.STATIC


def _require_int_field(obj: Mapping[str, Any], key: str, default: Any = None) -> int:
    value = obj.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidParamsError(f"{key} must be an int")
    return value


def parse_shift_mode(value: Any) -> ShiftMode:
    if isinstance(value, ShiftMode):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return ShiftMode(value)
        except ValueError as exc:
            raise InvalidParamsError(f"unknown shift_mode: {value!r}") from exc
    try:
        return ShiftMode[str(value).strip().upper()]
    except KeyError as exc:
        raise InvalidParamsError(f"unknown shift_mode: {value!r}") from exc


def parse_pool_config(obj: Mapping[str, Any]) -> PoolLDFConfig:
    """Build and validate a config from an already-parsed mapping."""
    if not isinstance(obj, Mapping):
        raise InvalidParamsError("pool config must be a mapping")
    try:
        kind = parse_kind(obj.get("kind"))
    except ValueError as exc:
        raise InvalidParamsError(str(exc)) from exc
    tick_spacing = _require_int_field(obj, "tick_spacing")
    if tick_spacing <= 0:
        raise InvalidParamsError("tick_spacing must be positive")
    twap_seconds_ago = _require_int_field(obj, "twap_seconds_ago", 0)
    if twap_seconds_ago < 0:
        raise InvalidParamsError("twap_seconds_ago must be non-negative")
    shift_mode = parse_shift_mode(obj.get("shift_mode", "static"))

    fields = obj.get("params") or {}
    if not isinstance(fields, Mapping):
        raise InvalidParamsError("params must be a mapping")
    for key, value in fields.items():
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidParamsError(f"params.{key} must be an int")

    try:
        ldf_params = encode_params(kind, shift_mode, **dict(fields))
    except TypeError as exc:
        raise InvalidParamsError(f"params do not match {kind.value}: {exc}") from exc
    except ValueError as exc:
        raise InvalidParamsError(f"params out of range for {kind.value}: {exc}") from exc

    if not is_valid_params(kind, tick_spacing, twap_seconds_ago, ldf_params):
        raise InvalidParamsError(f"invalid {kind.value} parameters for tick_spacing={tick_spacing}")

    logger.debug("pool config: kind=%s tick_spacing=%d shift_mode=%s", kind.value, tick_spacing, shift_mode.name)
    return PoolLDFConfig(
        kind=kind,
        tick_spacing=tick_spacing,
        twap_seconds_ago=twap_seconds_ago,
        shift_mode=shift_mode,
        ldf_params=ldf_params,
    )


def load_pool_config(path: Union[str, Path]) -> PoolLDFConfig:
    path = Path(path)
    obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(obj, Mapping):
        raise InvalidParamsError(f"{path}: pool config YAML must be a mapping")
    logger.info("loaded pool config from %s", path)
    return parse_pool_config(obj)
