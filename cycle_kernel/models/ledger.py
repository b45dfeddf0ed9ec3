"""
Module: cycle_kernel.models.ledger
Responsibility: ORM tables for the SQL rendition of the ledger store --
    one row per cycle, one row per release, and a single metadata row
    holding the store-wide updatedAt stamp.
Architecture position: Kernel > Models.  May import from db/base.py and
    the pure domain types only.

Notes:
    Derived cycle fields are persisted alongside the inputs so a reader of
    the raw table sees the same numbers the service returned; they are
    always recomputed on load before anything is exposed.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cycle_kernel.db.base import Base
from cycle_kernel.domain.cycle import Cycle, CycleStatus, Release


class CycleRecord(Base):
    """One cycle: inputs, last derived values, timestamps."""

    __tablename__ = "cycles"

    cycle_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)

    invested_amount: Mapped[Decimal | None]
    exchange_rate_1: Mapped[Decimal | None]
    fee_1: Mapped[Decimal | None]
    intermediate_amount: Mapped[Decimal | None]
    exchange_rate_2: Mapped[Decimal | None]
    gross_destination: Mapped[Decimal | None]
    fee_2: Mapped[Decimal | None]
    available_destination: Mapped[Decimal | None]

    released_destination: Mapped[Decimal]
    received_origin: Mapped[Decimal]
    pending_destination: Mapped[Decimal | None]
    profit_origin: Mapped[Decimal | None]
    profit_percent: Mapped[Decimal | None]
    status: Mapped[str] = mapped_column(String(20))
    # Newline-separated; alert text never contains a newline
    alerts: Mapped[str] = mapped_column(Text, default="")

    created_at: Mapped[datetime | None]
    updated_at: Mapped[datetime | None]

    _COPIED = (
        "invested_amount",
        "exchange_rate_1",
        "fee_1",
        "intermediate_amount",
        "exchange_rate_2",
        "gross_destination",
        "fee_2",
        "available_destination",
        "released_destination",
        "received_origin",
        "pending_destination",
        "profit_origin",
        "profit_percent",
        "created_at",
        "updated_at",
    )

    @classmethod
    def from_domain(cls, cycle: Cycle) -> "CycleRecord":
        record = cls(
            cycle_id=cycle.cycle_id,
            status=cycle.status.value,
            alerts="\n".join(cycle.alerts),
        )
        for name in cls._COPIED:
            setattr(record, name, getattr(cycle, name))
        return record

    def to_domain(self) -> Cycle:
        cycle = Cycle(cycle_id=self.cycle_id)
        for name in self._COPIED:
            setattr(cycle, name, getattr(self, name))
        cycle.status = CycleStatus(self.status)
        cycle.alerts = tuple(a for a in (self.alerts or "").split("\n") if a)
        return cycle

    def __repr__(self) -> str:
        return f"<CycleRecord {self.cycle_id} {self.status}>"


class ReleaseRecord(Base):
    """One release.  ``position`` preserves insertion order."""

    __tablename__ = "releases"

    __table_args__ = (Index("idx_release_cycle", "cycle_id"),)

    release_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    position: Mapped[int]
    cycle_id: Mapped[int] = mapped_column(ForeignKey("cycles.cycle_id"))
    released_amount: Mapped[Decimal]
    conversion_rate: Mapped[Decimal | None]
    received_origin_amount: Mapped[Decimal | None]
    note: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime | None]

    @classmethod
    def from_domain(cls, release: Release, position: int) -> "ReleaseRecord":
        return cls(
            release_id=release.release_id,
            position=position,
            cycle_id=release.cycle_id,
            released_amount=release.released_amount,
            conversion_rate=release.conversion_rate,
            received_origin_amount=release.received_origin_amount,
            note=release.note,
            created_at=release.created_at,
        )

    def to_domain(self) -> Release:
        return Release(
            release_id=self.release_id,
            cycle_id=self.cycle_id,
            released_amount=self.released_amount,
            conversion_rate=self.conversion_rate,
            received_origin_amount=self.received_origin_amount,
            note=self.note or "",
            created_at=self.created_at,
        )


class LedgerMetaRecord(Base):
    """Single-row table holding the store-wide updatedAt stamp."""

    __tablename__ = "ledger_meta"

    meta_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    updated_at: Mapped[datetime | None]
