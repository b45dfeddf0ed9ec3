"""
SqlLedgerStore -- the ledger in relational tables via SQLAlchemy.

Same whole-state contract as the JSON store: load() reads every cycle and
release, save() replaces the persisted ledger inside one transaction.  The
transaction is the atomicity boundary: a failed save leaves the previous
ledger intact.

Failure modes:
    - StoreUnavailableError wraps any SQLAlchemyError.
    - StoreCorruptedError when stored rows cannot be mapped back onto the
      domain (e.g. an unknown status string).
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cycle_kernel.db.engine import session_scope
from cycle_kernel.domain.clock import Clock
from cycle_kernel.domain.cycle import LedgerState
from cycle_kernel.exceptions import StoreCorruptedError, StoreUnavailableError
from cycle_kernel.logging_config import get_logger
from cycle_kernel.models.ledger import CycleRecord, LedgerMetaRecord, ReleaseRecord

logger = get_logger("store.sql")

_META_ROW_ID = 1


class SqlLedgerStore:
    """Whole-ledger store on top of a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker[Session], clock: Clock):
        self._session_factory = session_factory
        self._clock = clock

    @property
    def location(self) -> str:
        bind = self._session_factory.kw.get("bind")
        return str(bind.url) if bind is not None else "sql://"

    def load(self) -> LedgerState:
        try:
            with session_scope(self._session_factory) as session:
                cycles = session.scalars(select(CycleRecord)).all()
                releases = session.scalars(
                    select(ReleaseRecord).order_by(ReleaseRecord.position)
                ).all()
                meta = session.get(LedgerMetaRecord, _META_ROW_ID)

                state = LedgerState()
                try:
                    for record in cycles:
                        state.cycles[record.cycle_id] = record.to_domain()
                    state.releases = [record.to_domain() for record in releases]
                except (TypeError, ValueError) as exc:
                    raise StoreCorruptedError(self.location, str(exc)) from exc
                state.updated_at = meta.updated_at if meta is not None else None
                return state
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(self.location, str(exc)) from exc

    def save(self, state: LedgerState) -> None:
        updated_at = self._clock.now()
        try:
            with session_scope(self._session_factory) as session:
                session.execute(delete(ReleaseRecord))
                session.execute(delete(CycleRecord))

                session.add_all(
                    CycleRecord.from_domain(state.cycles[cid])
                    for cid in sorted(state.cycles)
                )
                session.flush()
                session.add_all(
                    ReleaseRecord.from_domain(release, position)
                    for position, release in enumerate(state.releases)
                )

                meta = session.get(LedgerMetaRecord, _META_ROW_ID)
                if meta is None:
                    session.add(LedgerMetaRecord(meta_id=_META_ROW_ID, updated_at=updated_at))
                else:
                    meta.updated_at = updated_at
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(self.location, str(exc)) from exc

        state.updated_at = updated_at
        logger.info(
            "store_saved",
            extra={
                "location": self.location,
                "cycle_count": len(state.cycles),
                "release_count": len(state.releases),
            },
        )
