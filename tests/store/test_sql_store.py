"""Tests specific to the SQLAlchemy store (cycle_kernel/store/sql_store.py)."""

from decimal import Decimal

import pytest
from sqlalchemy import select, text
from sqlalchemy.orm import sessionmaker

from cycle_kernel.db.engine import build_engine, create_tables, drop_tables, session_scope
from cycle_kernel.domain.cycle import Cycle, LedgerState, Release
from cycle_kernel.exceptions import StoreCorruptedError, StoreUnavailableError
from cycle_kernel.models import CycleRecord, ReleaseRecord
from cycle_kernel.store import SqlLedgerStore


@pytest.fixture
def db():
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def factory(db):
    return sessionmaker(bind=db, expire_on_commit=False)


class TestSqlLedgerStore:
    def test_location_is_engine_url(self, factory, clock):
        assert SqlLedgerStore(factory, clock).location == "sqlite://"

    def test_decimals_stored_exactly(self, factory, clock):
        store = SqlLedgerStore(factory, clock)
        store.save(LedgerState(cycles={6: Cycle(cycle_id=6, fee_1=Decimal("0.99"))}))

        with session_scope(factory) as session:
            record = session.get(CycleRecord, 6)
            assert record.fee_1 == Decimal("0.99")
            raw = session.execute(text("SELECT fee_1 FROM cycles")).scalar_one()
        assert raw == "0.99"

    def test_release_order_preserved(self, factory, clock):
        store = SqlLedgerStore(factory, clock)
        state = LedgerState(cycles={6: Cycle(cycle_id=6)})
        state.releases = [Release(f"r-{i}", 6, Decimal(i)) for i in (3, 1, 2)]
        store.save(state)

        assert [r.release_id for r in store.load().releases] == ["r-3", "r-1", "r-2"]
        with session_scope(factory) as session:
            positions = session.scalars(
                select(ReleaseRecord.position).order_by(ReleaseRecord.position)
            ).all()
        assert positions == [0, 1, 2]

    def test_unknown_status_is_corrupted(self, factory, clock):
        store = SqlLedgerStore(factory, clock)
        store.save(LedgerState(cycles={6: Cycle(cycle_id=6)}))
        with session_scope(factory) as session:
            session.execute(text("UPDATE cycles SET status = 'Exploded'"))

        with pytest.raises(StoreCorruptedError):
            store.load()

    def test_missing_tables_is_unavailable(self, db, factory, clock):
        drop_tables(db)
        store = SqlLedgerStore(factory, clock)
        with pytest.raises(StoreUnavailableError):
            store.load()
        with pytest.raises(StoreUnavailableError):
            store.save(LedgerState())

    def test_failed_save_keeps_previous_ledger(self, factory, clock):
        store = SqlLedgerStore(factory, clock)
        good = LedgerState(cycles={6: Cycle(cycle_id=6)})
        good.releases = [Release("r-1", 6, Decimal("5"))]
        store.save(good)

        bad = LedgerState(cycles={6: Cycle(cycle_id=6), 7: Cycle(cycle_id=7)})
        bad.releases = [Release("dup", 6, Decimal("1")), Release("dup", 7, Decimal("2"))]
        with pytest.raises(StoreUnavailableError):
            store.save(bad)

        loaded = store.load()
        assert list(loaded.cycles) == [6]
        assert [r.release_id for r in loaded.releases] == ["r-1"]
