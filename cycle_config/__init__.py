"""
cycle_config -- single public entrypoint for ledger settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component reads configuration
    files or CYCLE_LEDGER_* environment variables directly.

Architecture position:
    Configuration.  Sits beside ``cycle_kernel`` and below
    ``cycle_services``; the kernel never imports from here.  Wiring from
    settings to objects lives in ``cycle_services.bootstrap``.

Audit relevance:
    Every successful ``get_active_settings()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry carrying the settings checksum and
    the sources that contributed to it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from cycle_config.loader import (
    DEFAULTS_PATH,
    compute_checksum,
    env_layer,
    load_yaml_file,
    merge_layers,
    parse_settings,
)
from cycle_config.schema import LedgerSettings, StoreBackend

_logger = logging.getLogger("cycle_kernel.config")

CONFIG_PATH_ENV = "CYCLE_LEDGER_CONFIG"


def get_active_settings(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """The ONLY public settings entrypoint.

    Args:
        config_path: Optional YAML override file.  Falls back to the
            CYCLE_LEDGER_CONFIG environment variable.
        environ: Environment mapping to read; defaults to ``os.environ``.

    Raises:
        FileNotFoundError: If an override file is named but missing.
        ValueError: If any merged value is invalid.
    """
    env = os.environ if environ is None else environ

    sources = [str(DEFAULTS_PATH)]
    data = load_yaml_file(DEFAULTS_PATH)

    override = config_path or env.get(CONFIG_PATH_ENV)
    if override:
        data = merge_layers(data, load_yaml_file(Path(override)))
        sources.append(str(override))

    env_overrides = env_layer(env)
    if env_overrides:
        data = merge_layers(data, env_overrides)
        sources.append("environment")

    settings = parse_settings(data)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "checksum": compute_checksum(settings),
            "sources": sources,
            "store_backend": settings.store_backend.value,
        },
    )
    return settings


__all__ = [
    "LedgerSettings",
    "StoreBackend",
    "compute_checksum",
    "get_active_settings",
]
