"""
StoreGate -- exclusive, scoped access to one ledger store.

Every request goes through exactly one ``exclusive()`` block:

    with gate.exclusive() as state:
        repository.create(state, payload)

The block acquires the store's lock, loads the whole ledger, hands it to
the caller, and on normal exit saves it back.  If the body raises, nothing
is saved and the exception propagates.  The lock is released on every
exit path.

Reads use ``exclusive(persist=False)``: they still recalculate on the
loaded copy, but that copy is discarded.

Invariants enforced:
    - Single writer per store: no two read-modify-write windows against the
      same store overlap.  Reads are serialized too, which is stronger
      than needed but keeps a reader from loading mid-save on stores
      without atomic replace.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from cycle_kernel.domain.cycle import LedgerState
from cycle_kernel.logging_config import get_logger
from cycle_kernel.store.base import LedgerStore

logger = get_logger("store.gate")


class StoreGate:
    """Serializes whole-state transactions against one LedgerStore."""

    def __init__(self, store: LedgerStore):
        self.store = store
        self._lock = threading.RLock()

    @contextmanager
    def exclusive(self, *, persist: bool = True) -> Iterator[LedgerState]:
        with self._lock:
            state = self.store.load()
            yield state
            if persist:
                self.store.save(state)
            else:
                logger.debug("store_read_released", extra={"location": self.store.location})
