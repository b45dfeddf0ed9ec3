"""
Settings schema for the cycle ledger.

LedgerSettings is the only configuration object the runtime sees.  It is
frozen and validated in ``__post_init__``: an instance that exists is an
instance that can be wired.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from enum import Enum
from typing import Any


class StoreBackend(str, Enum):
    """Where the ledger is persisted."""

    JSON = "json"
    SQL = "sql"
    MEMORY = "memory"


@dataclass(frozen=True)
class LedgerSettings:
    """
    Validated runtime settings.

    Guarantees:
        - ``store_path`` is set when the backend is JSON.
        - ``database_url`` is set when the backend is SQL.
        - ``session_ttl_seconds`` > 0 and ``max_sessions`` >= 1.
        - ``alert_tolerance`` >= 0.
        - ``log_level`` is a level name the logging module knows.
    """

    store_backend: StoreBackend = StoreBackend.JSON
    store_path: str | None = "data/cycles.json"
    database_url: str | None = None
    session_ttl_seconds: int = 3600
    max_sessions: int = 1024
    alert_tolerance: Decimal = Decimal("1")
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.store_backend == StoreBackend.JSON and not self.store_path:
            raise ValueError("store_path is required for the json backend")
        if self.store_backend == StoreBackend.SQL and not self.database_url:
            raise ValueError("database_url is required for the sql backend")
        if self.session_ttl_seconds <= 0:
            raise ValueError(
                f"session_ttl_seconds must be positive, got {self.session_ttl_seconds}"
            )
        if self.max_sessions < 1:
            raise ValueError(f"max_sessions must be at least 1, got {self.max_sessions}")
        if not self.alert_tolerance.is_finite() or self.alert_tolerance < 0:
            raise ValueError(
                f"alert_tolerance must be a non-negative number, got {self.alert_tolerance}"
            )
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown log_level: {self.log_level!r}")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["store_backend"] = self.store_backend.value
        data["alert_tolerance"] = str(self.alert_tolerance)
        return data
