"""
LedgerService -- the per-request entry points of the cycle ledger.

Responsibility:
    One method per request kind.  Each call binds a fresh correlation id to
    the log context, runs exactly one StoreGate transaction (load, one
    mutation or read, save) and converts every CycleLedgerError into an
    OperationResult.failure.  Nothing recoverable escapes this class.

Architecture position:
    Services layer -- the module boundary.  Transports (console, a web
    handler, a chat bridge) call this and never the repository directly.

Usage:
    service = LedgerService(store, CycleRepository(engine, clock))
    result = service.create_cycle({"cycleId": 6, "investedAmount": "11000", ...})
    if result:
        cycle = result.data
    else:
        print(result.error.code)
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import contextmanager
from typing import Any, Iterator
from uuid import uuid4

from cycle_kernel.domain.dtos import OperationResult, ValidationReason
from cycle_kernel.exceptions import CycleLedgerError, ValidationFailedError
from cycle_kernel.logging_config import LogContext, get_logger
from cycle_kernel.services.cycle_repository import CycleRepository
from cycle_kernel.store.base import LedgerStore
from cycle_kernel.store.gate import StoreGate
from cycle_services.intake import IntakeOutcome, IntakeSession, IntakeStateMachine
from cycle_services.session_cache import SessionCache

logger = get_logger("services.ledger")


class LedgerService:
    """Transactional, error-converting facade over the cycle repository."""

    def __init__(
        self,
        store: LedgerStore,
        repository: CycleRepository,
        sessions: SessionCache[IntakeSession] | None = None,
    ):
        self.gate = StoreGate(store)
        self.repository = repository
        self.intake = IntakeStateMachine(committer=self.create_cycle, sessions=sessions)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_cycles(self) -> OperationResult:
        with self._operation("list_cycles"):
            try:
                with self.gate.exclusive(persist=False) as state:
                    cycles = self.repository.list(state)
            except CycleLedgerError as exc:
                return self._failed(exc)
            return OperationResult.ok(cycles, count=len(cycles))

    def get_cycle(self, cycle_id: Any) -> OperationResult:
        with self._operation("get_cycle", cycle_id=cycle_id):
            try:
                with self.gate.exclusive(persist=False) as state:
                    cycle = self.repository.get(state, cycle_id)
            except CycleLedgerError as exc:
                return self._failed(exc)
            return OperationResult.ok(cycle)

    def list_releases(self, cycle_id: Any) -> OperationResult:
        with self._operation("list_releases", cycle_id=cycle_id):
            try:
                with self.gate.exclusive(persist=False) as state:
                    releases = self.repository.releases_for(state, cycle_id)
            except CycleLedgerError as exc:
                return self._failed(exc)
            return OperationResult.ok(releases, count=len(releases))

    def summarize(self) -> OperationResult:
        with self._operation("summarize"):
            try:
                with self.gate.exclusive(persist=False) as state:
                    summary = self.repository.summarize(state)
            except CycleLedgerError as exc:
                return self._failed(exc)
            return OperationResult.ok(summary)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_cycle(self, payload: Mapping[str, Any]) -> OperationResult:
        with self._operation("create_cycle", cycle_id=_payload_id(payload)):
            try:
                _require_mapping(payload)
                with self.gate.exclusive() as state:
                    cycle = self.repository.create(state, payload)
            except CycleLedgerError as exc:
                return self._failed(exc)
            return OperationResult.ok(cycle)

    def update_cycle(self, payload: Mapping[str, Any]) -> OperationResult:
        with self._operation("update_cycle", cycle_id=_payload_id(payload)):
            try:
                _require_mapping(payload)
                with self.gate.exclusive() as state:
                    cycle = self.repository.update(state, payload)
            except CycleLedgerError as exc:
                return self._failed(exc)
            return OperationResult.ok(cycle)

    def add_release(self, payload: Mapping[str, Any]) -> OperationResult:
        with self._operation("add_release", cycle_id=_payload_id(payload)):
            try:
                _require_mapping(payload)
                with self.gate.exclusive() as state:
                    release, cycle = self.repository.add_release(state, payload)
            except CycleLedgerError as exc:
                return self._failed(exc)
            return OperationResult.ok(cycle, release=release)

    # ------------------------------------------------------------------
    # Guided intake
    # ------------------------------------------------------------------

    def advance_intake(self, session_id: str, utterance: str | None) -> IntakeOutcome:
        """Feed one utterance to the session's intake wizard."""
        with self._operation("advance_intake", session_id=session_id):
            return self.intake.advance(str(session_id), utterance)

    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str, **context: Any) -> Iterator[None]:
        with LogContext.bind(operation=name, correlation_id=str(uuid4()), **context):
            logger.debug("operation_started")
            yield

    @staticmethod
    def _failed(exc: CycleLedgerError) -> OperationResult:
        logger.info(
            "operation_failed",
            extra={"error_code": exc.code, "error_kind": exc.error_kind.value},
        )
        return OperationResult.failure(exc.to_error_info())


def _payload_id(payload: Any) -> Any:
    return payload.get("cycleId") if isinstance(payload, Mapping) else None


def _require_mapping(payload: Any) -> None:
    if not isinstance(payload, Mapping):
        raise ValidationFailedError(
            "payload", ValidationReason.NOT_AN_OBJECT, type(payload).__name__
        )
