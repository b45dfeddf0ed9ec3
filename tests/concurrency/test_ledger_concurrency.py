"""
Concurrent requests against one store.

Every request is a whole-ledger load -> mutate -> save.  Without the store
gate two overlapping requests would each save their own copy and one of
the mutations would vanish.  These tests hammer one LedgerService from
many threads and check that nothing is lost.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from cycle_kernel.domain.dtos import ErrorKind
from cycle_kernel.store import JsonFileLedgerStore
from cycle_services.intake import IntakeEvent
from cycle_services.ledger_service import LedgerService

pytestmark = pytest.mark.slow

THREADS = 8


@pytest.fixture(params=["memory", "json", "sql"])
def shared_service(request, repository, sessions):
    store = request.getfixturevalue(f"{request.param}_store")
    return LedgerService(store, repository, sessions)


class TestNoLostUpdates:
    def test_parallel_releases_all_land(self, shared_service, funded_payload):
        shared_service.create_cycle(funded_payload)
        barrier = Barrier(THREADS)

        def release(i):
            barrier.wait()
            return shared_service.add_release(
                {"cycleId": 7, "releasedAmount": "100", "receivedOriginAmount": "1", "note": str(i)}
            )

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            results = list(pool.map(release, range(THREADS * 4)))

        assert all(results)
        cycle = shared_service.get_cycle(7).data
        assert cycle.released_destination == Decimal("3200.00")
        assert cycle.received_origin == Decimal("32.00")
        assert len(shared_service.list_releases(7).data) == THREADS * 4

    def test_parallel_distinct_creates(self, shared_service, funded_payload):
        barrier = Barrier(THREADS)

        def create(cycle_id):
            barrier.wait()
            return shared_service.create_cycle(dict(funded_payload, cycleId=cycle_id))

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            results = list(pool.map(create, range(1, THREADS + 1)))

        assert all(results)
        assert [c.cycle_id for c in shared_service.list_cycles().data] == list(
            range(1, THREADS + 1)
        )

    def test_racing_duplicate_creates_one_winner(self, shared_service, cycle_payload):
        barrier = Barrier(THREADS)

        def create(_):
            barrier.wait()
            return shared_service.create_cycle(cycle_payload)

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            results = list(pool.map(create, range(THREADS)))

        winners = [r for r in results if r]
        losers = [r for r in results if not r]
        assert len(winners) == 1
        assert {r.error.kind for r in losers} == {ErrorKind.ALREADY_EXISTS}


class TestParallelIntake:
    def test_sessions_progress_independently(self, service):
        barrier = Barrier(THREADS)

        def wizard(i):
            session_id = f"user-{i}"
            barrier.wait()
            turns = ["start a cycle", str(100 + i), "1000", "10", "0", "calculate", "5", "1%"]
            return [service.advance_intake(session_id, t) for t in turns][-1]

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            finals = list(pool.map(wizard, range(THREADS)))

        assert all(f.event == IntakeEvent.COMMITTED for f in finals)
        cycles = service.list_cycles().data
        assert [c.cycle_id for c in cycles] == [100 + i for i in range(THREADS)]
        assert all(c.fee_2 == Decimal("5.00") for c in cycles)


class TestJsonFileReopen:
    def test_second_service_sees_saved_ledger(self, tmp_path, repository, clock):
        store = JsonFileLedgerStore(tmp_path / "cycles.json", clock)
        service = LedgerService(store, repository)
        service.create_cycle(
            {"cycleId": 1, "investedAmount": "1", "exchangeRate1": "1", "fee1": "0",
             "intermediateAmount": "1", "exchangeRate2": "1", "fee2": "0"}
        )

        reopened = LedgerService(JsonFileLedgerStore(tmp_path / "cycles.json", clock), repository)
        assert reopened.get_cycle(1).data.invested_amount == Decimal("1")
