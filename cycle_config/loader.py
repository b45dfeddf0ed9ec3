"""
YAML and environment loading for LedgerSettings.

Layers, each overriding the one before:
    1. the packaged defaults.yaml
    2. an optional YAML override file
    3. CYCLE_LEDGER_* environment variables

Failure modes:
    * Missing override file -> ``FileNotFoundError`` propagates.
    * Malformed YAML        -> ``yaml.YAMLError`` propagates.
    * Bad values            -> ``ValueError`` naming the setting.
"""

from __future__ import annotations

import copy
import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

import yaml

from cycle_config.schema import LedgerSettings, StoreBackend

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

ENV_PREFIX = "CYCLE_LEDGER_"

# env suffix -> (section, key)
ENV_KEYS: dict[str, tuple[str, str]] = {
    "STORE_BACKEND": ("store", "backend"),
    "STORE_PATH": ("store", "path"),
    "DATABASE_URL": ("store", "database_url"),
    "SESSION_TTL_SECONDS": ("sessions", "ttl_seconds"),
    "MAX_SESSIONS": ("sessions", "max_entries"),
    "ALERT_TOLERANCE": ("ledger", "alert_tolerance"),
    "LOG_LEVEL": ("logging", "level"),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load one YAML file as a dict (empty file -> empty dict).

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top-level value is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML value must be a mapping")
    return data


def merge_layers(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursive dict merge; ``override`` wins on conflicts."""
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_layers(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    """Translate CYCLE_LEDGER_* variables into a settings layer."""
    layer: dict[str, Any] = {}
    for suffix, (section, key) in ENV_KEYS.items():
        value = environ.get(ENV_PREFIX + suffix)
        if value is None or value == "":
            continue
        layer.setdefault(section, {})[key] = value
    return layer


def parse_settings(data: Mapping[str, Any]) -> LedgerSettings:
    """Build LedgerSettings from a merged layer dict."""
    store = data.get("store") or {}
    sessions = data.get("sessions") or {}
    ledger = data.get("ledger") or {}
    log = data.get("logging") or {}

    backend_raw = str(store.get("backend", StoreBackend.JSON.value)).lower()
    try:
        backend = StoreBackend(backend_raw)
    except ValueError:
        raise ValueError(
            f"store.backend must be one of "
            f"{[b.value for b in StoreBackend]}, got {backend_raw!r}"
        ) from None

    return LedgerSettings(
        store_backend=backend,
        store_path=store.get("path"),
        database_url=store.get("database_url"),
        session_ttl_seconds=_as_int("sessions.ttl_seconds", sessions.get("ttl_seconds", 3600)),
        max_sessions=_as_int("sessions.max_entries", sessions.get("max_entries", 1024)),
        alert_tolerance=_as_decimal("ledger.alert_tolerance", ledger.get("alert_tolerance", "1")),
        log_level=str(log.get("level", "INFO")).upper(),
    )


def compute_checksum(settings: LedgerSettings) -> str:
    """SHA-256 of the canonical JSON form of ``settings``."""
    canonical = json.dumps(settings.to_dict(), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _as_decimal(name: str, value: Any) -> Decimal:
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"{name} must be a number, got {value!r}") from None
