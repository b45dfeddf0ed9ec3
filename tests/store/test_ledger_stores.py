"""Contract tests run against every LedgerStore (cycle_kernel/store/)."""

from datetime import timedelta
from decimal import Decimal

from cycle_kernel.domain.cycle import Cycle, CycleStatus, LedgerState, Release
from cycle_kernel.store import LedgerStore


def _populated_state(clock) -> LedgerState:
    state = LedgerState()
    state.cycles[7] = Cycle(
        cycle_id=7,
        invested_amount=Decimal("10000"),
        exchange_rate_1=Decimal("100"),
        fee_1=Decimal("0"),
        intermediate_amount=Decimal("100"),
        exchange_rate_2=Decimal("760"),
        gross_destination=Decimal("76000"),
        fee_2=Decimal("1000"),
        available_destination=Decimal("75000"),
        released_destination=Decimal("50000.00"),
        received_origin=Decimal("625.00"),
        pending_destination=Decimal("25000.00"),
        profit_origin=Decimal("-9375.00"),
        profit_percent=Decimal("-93.75"),
        status=CycleStatus.IN_PROGRESS,
        alerts=("PROFIT_NEGATIVE: profit -9375.00 is below -1",),
        created_at=clock.now(),
        updated_at=clock.now(),
    )
    state.cycles[6] = Cycle(cycle_id=6, invested_amount=Decimal("11000"), created_at=clock.now())
    state.releases = [
        Release("r-1", 7, Decimal("30000"), Decimal("80"), Decimal("375.00"), "one", clock.now()),
        Release("r-2", 7, Decimal("20000"), None, Decimal("250.00"), "", clock.now()),
    ]
    return state


class TestLedgerStoreContract:
    def test_satisfies_protocol(self, any_store):
        assert isinstance(any_store, LedgerStore)
        assert any_store.location

    def test_empty_on_first_load(self, any_store):
        state = any_store.load()
        assert state.cycles == {}
        assert state.releases == []

    def test_save_then_load_preserves_ledger(self, any_store, clock):
        original = _populated_state(clock)
        any_store.save(original)

        loaded = any_store.load()

        assert sorted(loaded.cycles) == [6, 7]
        cycle = loaded.cycles[7]
        assert cycle.gross_destination == Decimal("76000")
        assert cycle.profit_percent == Decimal("-93.75")
        assert cycle.status == CycleStatus.IN_PROGRESS
        assert cycle.alerts == original.cycles[7].alerts
        assert cycle.created_at == clock.now()
        assert loaded.cycles[6].exchange_rate_1 is None
        assert loaded.releases == original.releases

    def test_save_stamps_updated_at(self, any_store, clock):
        state = LedgerState()
        clock.advance(30)
        any_store.save(state)
        assert state.updated_at == clock.now()
        assert any_store.load().updated_at == clock.now()

    def test_save_replaces_whole_ledger(self, any_store, clock):
        any_store.save(_populated_state(clock))
        smaller = LedgerState(cycles={1: Cycle(cycle_id=1)})
        any_store.save(smaller)

        loaded = any_store.load()
        assert list(loaded.cycles) == [1]
        assert loaded.releases == []

    def test_loads_are_independent_copies(self, any_store, clock):
        any_store.save(_populated_state(clock))
        first = any_store.load()
        first.cycles[7].fee_1 = Decimal("999")
        first.releases.clear()

        second = any_store.load()
        assert second.cycles[7].fee_1 == Decimal("0")
        assert len(second.releases) == 2

    def test_timestamps_keep_utc(self, any_store, clock):
        any_store.save(_populated_state(clock))
        created = any_store.load().cycles[7].created_at
        assert created.utcoffset() == timedelta(0)
