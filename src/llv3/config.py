from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Sequence

from . import registers as reg


@dataclass
class CorrelationConfig:
    samples: int = reg.CORRELATION_DEFAULT_SAMPLES


@dataclass
class HostConfig:
    bus: int = 1
    address: int = reg.DEFAULT_ADDRESS
    preset: int = 0
    poll_interval_sec: float = 0.0
    average_window: int = 0  # 0 disables block averaging
    output_csv: Path | None = None
    log_level: str = "INFO"
    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)


def _load_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


def load_config(path: Path | str | None = None, overrides: Sequence[str] | None = None) -> HostConfig:
    """
    Load the host configuration from JSON and apply CLI-style overrides.

    Without a path the defaults apply; a path that cannot be read raises.
    Overrides are dotted `key=value` pairs, e.g.:
        ["address=0x44", "correlation.samples=1024"]
    """
    data: Dict[str, Any] = _load_json(Path(path)) if path is not None else {}
    for override in overrides or []:
        key, raw_value = _parse_override(override)
        _apply_override(data, key, raw_value)
    correlation_data = data.get("correlation") or {}
    if not isinstance(correlation_data, dict):
        raise ValueError("correlation must be a mapping")
    config = HostConfig(
        bus=_as_int(data.get("bus", 1), "bus"),
        address=_as_int(data.get("address", reg.DEFAULT_ADDRESS), "address"),
        preset=_as_int(data.get("preset", 0), "preset"),
        poll_interval_sec=_as_float(data.get("poll_interval_sec", 0.0), "poll_interval_sec"),
        average_window=_as_int(data.get("average_window", 0), "average_window"),
        output_csv=Path(data["output_csv"]) if data.get("output_csv") else None,
        log_level=str(data.get("log_level", "INFO")).upper(),
        correlation=CorrelationConfig(
            samples=_as_int(correlation_data.get("samples", reg.CORRELATION_DEFAULT_SAMPLES), "correlation.samples"),
        ),
    )
    _validate(config)
    return config


def _validate(config: HostConfig) -> None:
    if not 0 <= config.address <= 0x7F:
        raise ValueError(f"address must be a 7-bit I2C address, got 0x{config.address:X}")
    if config.poll_interval_sec < 0:
        raise ValueError("poll_interval_sec may not be negative")
    if config.average_window < 0:
        raise ValueError("average_window may not be negative")
    if not 0 <= config.correlation.samples <= reg.CORRELATION_MAX_SAMPLES:
        raise ValueError(
            f"correlation.samples must be between 0 and {reg.CORRELATION_MAX_SAMPLES}"
        )


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError as exc:
            raise ValueError(f"{key} must be an integer, got {value!r}") from exc
    raise ValueError(f"{key} must be an integer, got {value!r}")


def _as_float(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {value!r}") from exc


def _parse_override(item: str) -> tuple[str, Any]:
    if "=" not in item:
        raise ValueError(f"Override '{item}' must use key=value syntax")
    key, raw_value = item.split("=", 1)
    key = key.strip()
    if not key:
        raise ValueError("Override key may not be empty")
    return key, _coerce_value(raw_value.strip())


def _coerce_value(raw: str) -> Any:
    # config values are ints (decimal or 0x-prefixed), floats or strings
    for convert in (lambda text: int(text, 0), float):
        try:
            return convert(raw)
        except ValueError:
            continue
    return raw


def _apply_override(data: Dict[str, Any], dotted_key: str, value: Any) -> None:
    section, _, name = dotted_key.rpartition(".")
    target = data
    if section:
        nested = data.get(section)
        if not isinstance(nested, dict):
            nested = data[section] = {}
        target = nested
    target[name] = value
