"""
LedgerStore -- the whole-state load/save contract.

Every request loads the complete ledger, applies one operation and saves
the complete ledger back.  Implementations decide where the bytes live;
callers never assume in-memory state survives between requests.
"""

from __future__ import annotations

import copy
from typing import Protocol, runtime_checkable

from cycle_kernel.domain.cycle import LedgerState


@runtime_checkable
class LedgerStore(Protocol):
    """
    Contract:
        - ``load()`` returns the full ledger, or an empty well-formed one
          when nothing has been saved yet.
        - ``save(state)`` persists the full ledger atomically and stamps
          ``state.updated_at``.

    Failure modes:
        - StoreCorruptedError when persisted data cannot be decoded.
        - StoreUnavailableError when the medium cannot be read or written.
    """

    @property
    def location(self) -> str: ...

    def load(self) -> LedgerState: ...

    def save(self, state: LedgerState) -> None: ...


class InMemoryLedgerStore:
    """
    Process-local store.

    Holds a serialized copy, so callers get an independent LedgerState on
    every load exactly as with the persistent stores.
    """

    def __init__(self, clock) -> None:
        self._clock = clock
        self._snapshot: LedgerState | None = None

    @property
    def location(self) -> str:
        return "memory://"

    def load(self) -> LedgerState:
        if self._snapshot is None:
            return LedgerState()
        return copy.deepcopy(self._snapshot)

    def save(self, state: LedgerState) -> None:
        state.updated_at = self._clock.now()
        self._snapshot = copy.deepcopy(state)
