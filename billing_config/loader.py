"""
YAML loading for billing settings.

Reads ``default.yaml`` and overlays the environment's file on top of it,
key by key.  Parsing into ``BillingSettings`` converts money and rates to
Decimal and keyword lists to tuples.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from billing_config.schema import BillingSettings

_KEYWORD_FIELDS = ("stage_keywords", "one_time_keywords", "hourly_keywords")
_DECIMAL_FIELDS = ("standard_hourly_rate", "default_tax_rate")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def merge_layers(*layers: dict[str, Any]) -> dict[str, Any]:
    """Later layers override earlier ones key by key."""
    merged: dict[str, Any] = {}
    for layer in layers:
        merged.update(layer)
    return merged


def _parse_decimal(name: str, value: Any) -> Decimal:
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


def _parse_keywords(name: str, value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{name} must be a list of strings")
    return tuple(str(v) for v in value)


def parse_settings(data: dict[str, Any], environment: str) -> BillingSettings:
    """
    Build BillingSettings from merged YAML data.

    Raises:
        ValueError: on unknown keys or values of the wrong shape.
    """
    known = set(BillingSettings.__dataclass_fields__)
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(unknown)}")

    values: dict[str, Any] = dict(data)
    values["environment"] = environment
    for name in _DECIMAL_FIELDS:
        if name in values:
            values[name] = _parse_decimal(name, values[name])
    for name in _KEYWORD_FIELDS:
        if name in values:
            values[name] = _parse_keywords(name, values[name])
    if "allow_period_override" in values and not isinstance(values["allow_period_override"], bool):
        # A quoted "false" is truthy
        raise ValueError(
            f"allow_period_override must be true or false, got {values['allow_period_override']!r}"
        )
    if "max_workers" in values:
        try:
            values["max_workers"] = int(values["max_workers"])
        except (TypeError, ValueError) as exc:
            raise ValueError("max_workers must be an integer") from exc
    return BillingSettings(**values)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization (deterministic)."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
