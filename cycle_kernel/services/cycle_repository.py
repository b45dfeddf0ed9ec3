"""
CycleRepository -- validated mutations and reads over a LedgerState.

Responsibility:
    Create and update cycles, record releases, list and fetch cycles.  Every
    operation validates its payload, mutates the in-memory ledger it is
    handed, and runs the recalculation engine before returning so no caller
    ever sees stale derived fields.

Architecture position:
    Kernel > Services.  Operates on a LedgerState passed in by the caller;
    loading, saving and locking are the caller's job (see
    cycle_kernel.store.gate.StoreGate).

Invariants enforced:
    - Cycle ids are unique positive integers.
    - Every stored amount is zero or lies within the magnitudes of
      cycle_kernel.domain.numeric.in_range; anything else is rejected as
      out_of_range.
    - Stored inputs are never invented: only availableDestination may be
      derived, and only from grossDestination - fee2.
    - update() honours a fixed allow-list of input fields; anything else in
      the payload is ignored.
    - A release's derived receivedOriginAmount is computed once, at
      creation, and stored as a concrete value.

Failure modes:
    - InvalidIdError, CycleAlreadyExistsError, CycleNotFoundError,
      MissingFieldError, ValidationFailedError.  Nothing is mutated when
      one of these is raised.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping
from uuid import uuid4

from cycle_kernel.domain.clock import Clock
from cycle_kernel.domain.cycle import (
    INPUT_FIELDS,
    OPTIONAL_FIELDS,
    REQUIRED_FIELDS,
    UPDATABLE_FIELDS,
    Cycle,
    CycleStatus,
    LedgerState,
    LedgerSummary,
    Release,
)
from cycle_kernel.domain.dtos import ValidationReason
from cycle_kernel.domain.numeric import (
    in_range,
    is_blank,
    optional_number,
    parse_number,
    round2,
)
from cycle_kernel.domain.recalculation import RecalculationEngine
from cycle_kernel.exceptions import (
    CycleAlreadyExistsError,
    CycleNotFoundError,
    InvalidIdError,
    MissingFieldError,
    ValidationFailedError,
)
from cycle_kernel.logging_config import get_logger

logger = get_logger("services.cycle_repository")

_ZERO = Decimal("0")


def parse_cycle_id(raw: Any) -> int:
    """
    Parse a cycle id.

    Raises:
        InvalidIdError: if ``raw`` is blank, not a number, not integral,
            not positive or too large to store.
    """
    if is_blank(raw):
        raise InvalidIdError(raw)
    value = parse_number(raw)
    if (
        not in_range(value)
        or value != value.to_integral_value()
        or value <= _ZERO
    ):
        raise InvalidIdError(raw)
    return int(value)


class CycleRepository:
    """CRUD-style operations over cycles and releases."""

    def __init__(self, engine: RecalculationEngine, clock: Clock):
        self.engine = engine
        self.clock = clock

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, state: LedgerState, payload: Mapping[str, Any]) -> Cycle:
        cycle_id = parse_cycle_id(payload.get("cycleId"))
        if cycle_id in state.cycles:
            raise CycleAlreadyExistsError(cycle_id)

        for name in REQUIRED_FIELDS[1:]:
            if is_blank(payload.get(name)):
                raise MissingFieldError(name)

        values: dict[str, Decimal | None] = {}
        for name in REQUIRED_FIELDS[1:]:
            values[name] = self._required_number(name, payload[name])
        for name in OPTIONAL_FIELDS:
            values[name] = self._optional_number(name, payload.get(name))

        now = self.clock.now()
        cycle = Cycle(cycle_id=cycle_id, created_at=now, updated_at=now)
        for name, value in values.items():
            setattr(cycle, INPUT_FIELDS[name], value)
        cycle.derive_available_destination()

        state.cycles[cycle_id] = cycle
        self.engine.recalculate(state, cycle_id)

        logger.info(
            "cycle_created",
            extra={
                "cycle_id": cycle_id,
                "status": cycle.status.value,
                "available_known": cycle.available_destination is not None,
            },
        )
        return cycle

    def update(self, state: LedgerState, payload: Mapping[str, Any]) -> Cycle:
        cycle_id = parse_cycle_id(payload.get("cycleId"))
        cycle = state.cycles.get(cycle_id)
        if cycle is None:
            raise CycleNotFoundError(cycle_id)

        changes: dict[str, Decimal | None] = {}
        for name in UPDATABLE_FIELDS:
            if name not in payload:
                continue
            raw = payload[name]
            if name in OPTIONAL_FIELDS:
                if is_blank(raw):
                    changes[name] = None
                else:
                    changes[name] = self._required_number(name, raw)
            else:
                if is_blank(raw):
                    raise MissingFieldError(name)
                changes[name] = self._required_number(name, raw)

        ignored = sorted(k for k in payload if k not in UPDATABLE_FIELDS and k != "cycleId")

        for name, value in changes.items():
            setattr(cycle, INPUT_FIELDS[name], value)
        cycle.derive_available_destination()
        cycle.updated_at = self.clock.now()
        self.engine.recalculate(state, cycle_id)

        logger.info(
            "cycle_updated",
            extra={
                "cycle_id": cycle_id,
                "changed_fields": sorted(changes),
                "ignored_fields": ignored,
            },
        )
        return cycle

    def add_release(
        self, state: LedgerState, payload: Mapping[str, Any]
    ) -> tuple[Release, Cycle]:
        cycle_id = parse_cycle_id(payload.get("cycleId"))
        cycle = state.cycles.get(cycle_id)
        if cycle is None:
            raise CycleNotFoundError(cycle_id)

        raw_released = payload.get("releasedAmount")
        if not parse_number(raw_released).is_finite():
            raise MissingFieldError("releasedAmount")
        released = self._required_number("releasedAmount", raw_released)

        rate = self._bounded(
            "conversionRate", optional_number(payload.get("conversionRate"))
        )
        received = self._bounded(
            "receivedOriginAmount", optional_number(payload.get("receivedOriginAmount"))
        )
        if received is None and rate is not None and rate != _ZERO:
            # Frozen here: later rate edits on the cycle do not touch it
            received = round2(released / rate)

        now = self.clock.now()
        release = Release(
            release_id=str(uuid4()),
            cycle_id=cycle_id,
            released_amount=released,
            conversion_rate=rate,
            received_origin_amount=received,
            note=str(payload.get("note") or ""),
            created_at=now,
        )
        state.releases.append(release)
        cycle.updated_at = now
        self.engine.recalculate(state, cycle_id)

        logger.info(
            "release_added",
            extra={
                "cycle_id": cycle_id,
                "release_id": release.release_id,
                "received_derived": payload.get("receivedOriginAmount") in (None, "")
                and received is not None,
                "status": cycle.status.value,
            },
        )
        return release, cycle

    # ------------------------------------------------------------------
    # Reads (recalculate before exposing)
    # ------------------------------------------------------------------

    def list(self, state: LedgerState) -> list[Cycle]:
        return self.engine.recalculate_all(state)

    def get(self, state: LedgerState, cycle_id: Any) -> Cycle:
        return self.engine.recalculate(state, parse_cycle_id(cycle_id))

    def releases_for(self, state: LedgerState, cycle_id: Any) -> list[Release]:
        parsed = parse_cycle_id(cycle_id)
        if parsed not in state.cycles:
            raise CycleNotFoundError(parsed)
        return state.releases_for(parsed)

    def summarize(self, state: LedgerState) -> LedgerSummary:
        cycles = self.engine.recalculate_all(state)
        status_counts = {status.value: 0 for status in CycleStatus}
        total_invested = total_received = total_profit = _ZERO
        for cycle in cycles:
            status_counts[cycle.status.value] += 1
            total_invested += cycle.invested_amount or _ZERO
            total_received += cycle.received_origin
            total_profit += cycle.profit_origin or _ZERO
        return LedgerSummary(
            cycle_count=len(cycles),
            status_counts=status_counts,
            total_invested=round2(total_invested),
            total_received=round2(total_received),
            total_profit=round2(total_profit),
            cycles_with_alerts=tuple(c.cycle_id for c in cycles if c.alerts),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _required_number(name: str, raw: Any) -> Decimal:
        value = parse_number(raw)
        if not value.is_finite():
            raise ValidationFailedError(name, ValidationReason.NOT_A_NUMBER, raw)
        return CycleRepository._bounded(name, value)

    @staticmethod
    def _optional_number(name: str, raw: Any) -> Decimal | None:
        if is_blank(raw):
            return None
        value = optional_number(raw)
        if value is None:
            logger.warning(
                "optional_field_ignored",
                extra={"field": name, "raw_value": str(raw)},
            )
        return CycleRepository._bounded(name, value)

    @staticmethod
    def _bounded(name: str, value: Decimal | None) -> Decimal | None:
        if value is not None and not in_range(value):
            raise ValidationFailedError(name, ValidationReason.OUT_OF_RANGE, value)
        return value
