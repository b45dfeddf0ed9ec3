"""
Cycle and release vocabulary.

Responsibility:
    Defines the in-memory shape of the ledger -- Cycle, Release and the
    whole-store LedgerState -- plus the wire (camelCase) names used by
    payloads and by the JSON store, and the dict conversions between them.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.

Invariants enforced:
    - All amounts are Decimal or None; the ledger never invents an input.
    - Release is frozen: once recorded it never changes.
    - Cycle is mutable only so the recalculation engine can overwrite its
      derived fields in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from cycle_kernel.domain.numeric import optional_number


class CycleStatus(str, Enum):
    """Lifecycle status derived from the pending destination amount."""

    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    CLOSED = "Closed"


# Wire name -> attribute name, for cycle inputs
INPUT_FIELDS: dict[str, str] = {
    "investedAmount": "invested_amount",
    "exchangeRate1": "exchange_rate_1",
    "fee1": "fee_1",
    "intermediateAmount": "intermediate_amount",
    "exchangeRate2": "exchange_rate_2",
    "grossDestination": "gross_destination",
    "fee2": "fee_2",
    "availableDestination": "available_destination",
}

DERIVED_FIELDS: dict[str, str] = {
    "releasedDestination": "released_destination",
    "receivedOrigin": "received_origin",
    "pendingDestination": "pending_destination",
    "profitOrigin": "profit_origin",
    "profitPercent": "profit_percent",
}

# Inputs a new cycle cannot be created without, in intake order
REQUIRED_FIELDS: tuple[str, ...] = (
    "cycleId",
    "investedAmount",
    "exchangeRate1",
    "fee1",
    "intermediateAmount",
    "exchangeRate2",
    "fee2",
)

OPTIONAL_FIELDS: tuple[str, ...] = ("grossDestination", "availableDestination")

# Inputs update() is allowed to overwrite; cycleId is the lookup key
UPDATABLE_FIELDS: tuple[str, ...] = REQUIRED_FIELDS[1:] + OPTIONAL_FIELDS


@dataclass(slots=True)
class Cycle:
    """One investment -> conversion -> release accounting unit."""

    cycle_id: int
    invested_amount: Decimal | None = None
    exchange_rate_1: Decimal | None = None
    fee_1: Decimal | None = None
    intermediate_amount: Decimal | None = None
    exchange_rate_2: Decimal | None = None
    gross_destination: Decimal | None = None
    fee_2: Decimal | None = None
    available_destination: Decimal | None = None

    released_destination: Decimal = Decimal("0.00")
    received_origin: Decimal = Decimal("0.00")
    pending_destination: Decimal | None = None
    profit_origin: Decimal | None = None
    profit_percent: Decimal | None = None
    status: CycleStatus = CycleStatus.PENDING
    alerts: tuple[str, ...] = ()

    created_at: datetime | None = None
    updated_at: datetime | None = None

    def derive_available_destination(self) -> None:
        """Fill availableDestination from gross - fee2 when it is unknown."""
        if (
            self.available_destination is None
            and self.gross_destination is not None
            and self.fee_2 is not None
        ):
            self.available_destination = self.gross_destination - self.fee_2

    def derived_snapshot(self) -> tuple[Any, ...]:
        """The derived fields as a comparable tuple."""
        return (
            self.released_destination,
            self.received_origin,
            self.pending_destination,
            self.profit_origin,
            self.profit_percent,
            self.status,
            self.alerts,
        )


@dataclass(frozen=True, slots=True)
class Release:
    """A partial withdrawal against a cycle's destination pool."""

    release_id: str
    cycle_id: int
    released_amount: Decimal
    conversion_rate: Decimal | None = None
    received_origin_amount: Decimal | None = None
    note: str = ""
    created_at: datetime | None = None


@dataclass
class LedgerState:
    """The whole persisted ledger: cycles by id plus all releases in order."""

    cycles: dict[int, Cycle] = field(default_factory=dict)
    releases: list[Release] = field(default_factory=list)
    updated_at: datetime | None = None

    def releases_for(self, cycle_id: int) -> list[Release]:
        return [r for r in self.releases if r.cycle_id == cycle_id]


@dataclass(frozen=True)
class LedgerSummary:
    """Totals across every cycle in the ledger."""

    cycle_count: int
    status_counts: dict[str, int]
    total_invested: Decimal
    total_received: Decimal
    total_profit: Decimal
    cycles_with_alerts: tuple[int, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycleCount": self.cycle_count,
            "statusCounts": dict(self.status_counts),
            "totalInvested": _dec_out(self.total_invested),
            "totalReceived": _dec_out(self.total_received),
            "totalProfit": _dec_out(self.total_profit),
            "cyclesWithAlerts": list(self.cycles_with_alerts),
        }


# ---------------------------------------------------------------------------
# Wire conversion
# ---------------------------------------------------------------------------


def _dec_out(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _dt_out(value: datetime | None) -> str | None:
    return None if value is None else value.isoformat()


def _dt_in(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def cycle_to_dict(cycle: Cycle) -> dict[str, Any]:
    """Serialize a cycle under its wire names (Decimals as strings)."""
    data: dict[str, Any] = {"cycleId": cycle.cycle_id}
    for wire, attr in INPUT_FIELDS.items():
        data[wire] = _dec_out(getattr(cycle, attr))
    for wire, attr in DERIVED_FIELDS.items():
        data[wire] = _dec_out(getattr(cycle, attr))
    data["status"] = cycle.status.value
    data["alerts"] = list(cycle.alerts)
    data["createdAt"] = _dt_out(cycle.created_at)
    data["updatedAt"] = _dt_out(cycle.updated_at)
    return data


def cycle_from_dict(data: dict[str, Any]) -> Cycle:
    """
    Rebuild a cycle from its wire dict.

    Derived fields are read back as stored; callers recalculate before
    exposing the cycle.

    Raises:
        KeyError / ValueError / TypeError on a structurally broken record.
    """
    cycle_id = int(data["cycleId"])
    if cycle_id < 1:
        raise ValueError(f"cycle id must be positive, got {cycle_id}")
    cycle = Cycle(cycle_id=cycle_id)
    for wire, attr in INPUT_FIELDS.items():
        setattr(cycle, attr, optional_number(data.get(wire)))
    for wire, attr in DERIVED_FIELDS.items():
        setattr(cycle, attr, optional_number(data.get(wire)))
    cycle.released_destination = cycle.released_destination or Decimal("0.00")
    cycle.received_origin = cycle.received_origin or Decimal("0.00")
    cycle.status = CycleStatus(data.get("status") or CycleStatus.PENDING.value)
    cycle.alerts = tuple(str(a) for a in data.get("alerts") or ())
    cycle.created_at = _dt_in(data.get("createdAt"))
    cycle.updated_at = _dt_in(data.get("updatedAt"))
    return cycle


def release_to_dict(release: Release) -> dict[str, Any]:
    return {
        "id": release.release_id,
        "cycleId": release.cycle_id,
        "releasedAmount": _dec_out(release.released_amount),
        "conversionRate": _dec_out(release.conversion_rate),
        "receivedOriginAmount": _dec_out(release.received_origin_amount),
        "note": release.note,
        "createdAt": _dt_out(release.created_at),
    }


def release_from_dict(data: dict[str, Any]) -> Release:
    released = optional_number(data.get("releasedAmount"))
    if released is None:
        raise ValueError(f"release {data.get('id')!r} has no releasedAmount")
    return Release(
        release_id=str(data["id"]),
        cycle_id=int(data["cycleId"]),
        released_amount=released,
        conversion_rate=optional_number(data.get("conversionRate")),
        received_origin_amount=optional_number(data.get("receivedOriginAmount")),
        note=str(data.get("note") or ""),
        created_at=_dt_in(data.get("createdAt")),
    )
