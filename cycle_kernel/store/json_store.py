"""
JsonFileLedgerStore -- the ledger as one JSON document on disk.

Layout::

    {
      "cycles":   {"6": {...cycle wire dict...}, ...},
      "releases": [{...release wire dict...}, ...],
      "updatedAt": "2024-01-01T12:00:00+00:00"
    }

Invariants enforced:
    - Atomic whole-file rewrite: save() writes a temp file in the target
      directory, fsyncs it and os.replace()s it over the old file, so a
      reader sees either the old ledger or the new one, never a mix.
    - A missing file loads as an empty, well-formed ledger.

Failure modes:
    - StoreCorruptedError on invalid JSON or structurally broken records.
    - StoreUnavailableError on any OS-level read/write failure.
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from cycle_kernel.domain.clock import Clock
from cycle_kernel.domain.cycle import (
    LedgerState,
    cycle_from_dict,
    cycle_to_dict,
    release_from_dict,
    release_to_dict,
)
from cycle_kernel.exceptions import StoreCorruptedError, StoreUnavailableError
from cycle_kernel.logging_config import get_logger

logger = get_logger("store.json")


class JsonFileLedgerStore:
    """Whole-ledger JSON file with atomic replace on save."""

    def __init__(self, path: str | Path, clock: Clock):
        self.path = Path(path)
        self._clock = clock

    @property
    def location(self) -> str:
        return str(self.path)

    def load(self) -> LedgerState:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("store_initialized_empty", extra={"location": self.location})
            return LedgerState()
        except UnicodeDecodeError as exc:
            raise StoreCorruptedError(self.location, f"not UTF-8: {exc}") from exc
        except OSError as exc:
            raise StoreUnavailableError(self.location, str(exc)) from exc

        if not raw.strip():
            return LedgerState()

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreCorruptedError(self.location, f"invalid JSON: {exc}") from exc

        try:
            return self._decode(document)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise StoreCorruptedError(self.location, str(exc)) from exc

    def save(self, state: LedgerState) -> None:
        state.updated_at = self._clock.now()
        document = self._encode(state)
        payload = json.dumps(document, indent=2, ensure_ascii=False)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StoreUnavailableError(self.location, str(exc)) from exc

        logger.info(
            "store_saved",
            extra={
                "location": self.location,
                "cycle_count": len(state.cycles),
                "release_count": len(state.releases),
            },
        )

    @staticmethod
    def _encode(state: LedgerState) -> dict[str, Any]:
        return {
            "cycles": {
                str(cid): cycle_to_dict(state.cycles[cid]) for cid in sorted(state.cycles)
            },
            "releases": [release_to_dict(r) for r in state.releases],
            "updatedAt": state.updated_at.isoformat() if state.updated_at else None,
        }

    @staticmethod
    def _decode(document: Any) -> LedgerState:
        if not isinstance(document, dict):
            raise ValueError("top-level JSON value must be an object")

        cycles_raw = document.get("cycles") or {}
        if not isinstance(cycles_raw, dict):
            raise ValueError("'cycles' must be an object keyed by cycle id")
        releases_raw = document.get("releases") or []
        if not isinstance(releases_raw, list):
            raise ValueError("'releases' must be a list")

        state = LedgerState()
        for key, record in cycles_raw.items():
            record = dict(record)
            record.setdefault("cycleId", key)
            cycle = cycle_from_dict(record)
            state.cycles[cycle.cycle_id] = cycle
        state.releases = [release_from_dict(r) for r in releases_raw]

        updated_at = document.get("updatedAt")
        if updated_at:
            state.updated_at = datetime.fromisoformat(updated_at)
        return state
