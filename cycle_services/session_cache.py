"""
SessionCache -- bounded, expiring, per-key serialized state.

Holds one value per conversation session (the intake wizard's state) with:
- a sliding TTL (an entry expires ttl_seconds after its last checkout)
- a hard cap on entries, evicting least-recently-used first
- one lock per entry, so turns of the same session are serialized while
  different sessions proceed in parallel

Entries currently checked out are never evicted.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterator, TypeVar

from cycle_kernel.domain.clock import Clock, SystemClock
from cycle_kernel.logging_config import get_logger

logger = get_logger("services.session_cache")

T = TypeVar("T")


@dataclass
class _Entry(Generic[T]):
    value: T
    expires_at: float
    lock: threading.Lock = field(default_factory=threading.Lock)
    pins: int = 0


class SessionCache(Generic[T]):
    def __init__(
        self,
        factory: Callable[[], T],
        *,
        max_entries: int = 1024,
        ttl_seconds: float = 3600,
        clock: Clock | None = None,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._factory = factory
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._items: OrderedDict[str, _Entry[T]] = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._items.get(key)  # type: ignore[arg-type]
            return entry is not None and entry.expires_at > self._clock.monotonic()

    @contextmanager
    def checkout(self, key: str) -> Iterator[T]:
        """
        Yield the value for ``key`` (created on first use or after expiry)
        while holding that key's lock.
        """
        with self._lock:
            entry = self._get_or_create_unlocked(key)
            entry.pins += 1
        try:
            with entry.lock:
                yield entry.value
        finally:
            with self._lock:
                entry.pins -= 1
                entry.expires_at = self._clock.monotonic() + self.ttl_seconds

    def peek(self, key: str) -> T | None:
        """Current value for ``key`` without creating or refreshing it."""
        with self._lock:
            entry = self._items.get(key)
            if entry is None or entry.expires_at <= self._clock.monotonic():
                return None
            return entry.value

    def discard(self, key: str) -> None:
        with self._lock:
            entry = self._items.get(key)
            if entry is not None and entry.pins == 0:
                del self._items[key]

    def sweep_expired(self) -> int:
        """Delete expired, idle entries.  Returns how many were removed."""
        with self._lock:
            return self._evict_expired_unlocked()

    # ------------------------------------------------------------------

    def _get_or_create_unlocked(self, key: str) -> _Entry[T]:
        now = self._clock.monotonic()
        entry = self._items.get(key)

        if entry is not None:
            if entry.expires_at > now or entry.pins > 0:
                entry.expires_at = now + self.ttl_seconds
                self._items.move_to_end(key)
                return entry
            # expired -> replace
            del self._items[key]
            logger.debug("session_expired", extra={"session_key": key})

        entry = _Entry(value=self._factory(), expires_at=now + self.ttl_seconds)
        self._items[key] = entry
        self._evict_expired_unlocked()
        self._evict_overflow_unlocked(keep=key)
        return entry

    def _evict_expired_unlocked(self) -> int:
        now = self._clock.monotonic()
        expired = [
            k for k, e in self._items.items() if e.expires_at <= now and e.pins == 0
        ]
        for k in expired:
            del self._items[k]
        if expired:
            logger.debug("sessions_swept", extra={"removed": len(expired)})
        return len(expired)

    def _evict_overflow_unlocked(self, keep: str) -> None:
        if len(self._items) <= self.max_entries:
            return
        for k in list(self._items):
            if len(self._items) <= self.max_entries:
                break
            if k == keep or self._items[k].pins > 0:
                continue
            del self._items[k]
            logger.debug("session_evicted", extra={"session_key": k})
