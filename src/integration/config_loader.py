"""
Fail-closed loader for protocol configuration files.

A config file is YAML of the form:

    schema: luxor/config/v1
    params:
      admin: <identity>
      bonus_rate: 100000
      max_stake_count_to_get_bonus: 1000
      ...                           # any GlobalParameters field
    market:                         # optional; needed for quoting
      reserve_in: 1000000000000
      reserve_out: 50000000000000
      ...                           # any MarketSnapshot field

Unknown keys are rejected rather than ignored.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from ..core.cpmm import MarketSnapshot
from ..state.config import GlobalParameters


SCHEMA = "luxor/config/v1"


class ConfigError(ValueError):
    pass


def _require_mapping(obj: Any, *, name: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ConfigError(f"{name} must be an object")
    return obj


def _build(cls: type, obj: Any, *, name: str):
    data = _require_mapping(obj, name=name)
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"{name} has unknown keys: {', '.join(unknown)}")
    try:
        return cls(**data)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} invalid: {exc}") from exc


def read_config(path: Path) -> dict[str, Any]:
    root = _require_mapping(yaml.safe_load(path.read_text(encoding="utf-8")), name="config")
    schema = root.get("schema")
    if schema != SCHEMA:
        raise ConfigError(f"unsupported config schema: {schema!r}")
    return root


def parameters_from_mapping(obj: Any) -> GlobalParameters:
    return _build(GlobalParameters, obj, name="config.params")


def market_from_mapping(obj: Any) -> MarketSnapshot:
    return _build(MarketSnapshot, obj, name="config.market")


def load_parameters(path: Path) -> GlobalParameters:
    return parameters_from_mapping(read_config(path).get("params"))


def load_market_snapshot(path: Path) -> MarketSnapshot:
    return market_from_mapping(read_config(path).get("market"))
