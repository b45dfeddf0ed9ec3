"""Tests for the request boundary (cycle_services/ledger_service.py)."""

from decimal import Decimal

import pytest

from cycle_kernel.domain.cycle import CycleStatus
from cycle_kernel.domain.dtos import ErrorKind, ResultStatus
from cycle_kernel.exceptions import StoreUnavailableError
from cycle_kernel.store import JsonFileLedgerStore
from cycle_services.intake import IntakeEvent
from cycle_services.ledger_service import LedgerService


class TestWrites:
    def test_create_persists(self, service, memory_store, cycle_payload):
        result = service.create_cycle(cycle_payload)

        assert result.status == ResultStatus.SUCCESS
        assert result.data.cycle_id == 6
        assert result.data.status == CycleStatus.PENDING
        assert 6 in memory_store.load().cycles

    def test_create_duplicate_is_structured_error(self, service, cycle_payload):
        service.create_cycle(cycle_payload)
        result = service.create_cycle(cycle_payload)

        assert not result
        assert result.error.kind == ErrorKind.ALREADY_EXISTS
        assert result.error.code == "CYCLE_ALREADY_EXISTS"

    def test_failed_create_saves_nothing(self, service, memory_store, cycle_payload):
        del cycle_payload["fee1"]
        result = service.create_cycle(cycle_payload)
        assert result.error.kind == ErrorKind.MISSING_FIELD
        assert result.error.field == "fee1"
        assert memory_store.load().cycles == {}

    @pytest.mark.parametrize("payload", [None, "cycle 6", ["cycleId", 6]])
    def test_non_mapping_payload(self, service, payload):
        result = service.create_cycle(payload)
        assert result.error.kind == ErrorKind.VALIDATION_FAILED
        assert result.error.reason == "not_an_object"

    def test_add_release_scenario(self, service, cycle_payload):
        service.create_cycle(cycle_payload)

        result = service.add_release(
            {"cycleId": "6", "releasedAmount": "50000", "conversionRate": "80"}
        )

        assert result
        assert result.extras["release"].received_origin_amount == Decimal("625.00")
        assert result.data.received_origin == Decimal("625.00")
        assert result.data.profit_origin == Decimal("-10375.00")

    def test_update_unknown_cycle(self, service):
        result = service.update_cycle({"cycleId": 3, "fee1": "1"})
        assert result.error.kind == ErrorKind.NOT_FOUND

    def test_update_bad_id(self, service):
        result = service.update_cycle({"cycleId": "six"})
        assert result.error.kind == ErrorKind.INVALID_ID


class TestReads:
    def test_list_and_get(self, service, cycle_payload, funded_payload):
        service.create_cycle(funded_payload)
        service.create_cycle(cycle_payload)

        listed = service.list_cycles()
        assert [c.cycle_id for c in listed.data] == [6, 7]
        assert listed.extras["count"] == 2
        assert service.get_cycle("7").data.available_destination == Decimal("75000")

    def test_get_missing(self, service):
        assert service.get_cycle(1).error.kind == ErrorKind.NOT_FOUND

    def test_reads_do_not_save(self, service, memory_store, cycle_payload, clock):
        service.create_cycle(cycle_payload)
        stamp = memory_store.load().updated_at
        clock.advance(10)
        service.list_cycles()
        service.get_cycle(6)
        service.summarize()
        assert memory_store.load().updated_at == stamp

    def test_list_releases_and_summary(self, service, cycle_payload):
        service.create_cycle(cycle_payload)
        service.add_release({"cycleId": 6, "releasedAmount": "50000", "conversionRate": "80"})

        releases = service.list_releases(6)
        assert [r.released_amount for r in releases.data] == [Decimal("50000")]
        summary = service.summarize().data
        assert summary.total_received == Decimal("625.00")


class TestNumericLimits:
    @pytest.mark.parametrize("value", ["1e27", 1e300])
    def test_oversized_amount_is_an_error_result(self, service, memory_store, cycle_payload, value):
        cycle_payload["investedAmount"] = value

        result = service.create_cycle(cycle_payload)

        assert result.status == ResultStatus.FAILED
        assert result.error.kind == ErrorKind.VALIDATION_FAILED
        assert (result.error.field, result.error.reason) == ("investedAmount", "out_of_range")
        assert memory_store.load().cycles == {}

    def test_oversized_estimate_fails_commit_not_service(self, service):
        turns = ["new cycle", "6", "900000000000000", "0.000000000001", "0", "calculate", "1", "0"]
        final = [service.advance_intake("chat-3", t) for t in turns][-1]

        assert final.event == IntakeEvent.COMMIT_FAILED
        assert final.error.field == "intermediateAmount"
        assert final.error.reason == "out_of_range"
        assert service.list_cycles().data == []


class TestStoreFailures:
    @pytest.mark.parametrize(
        "content", [b"{broken", b'{"cycles": {}, "releases": [], "x": "\xff\xfe"}']
    )
    def test_corrupted_store_is_an_error_result(self, tmp_path, repository, clock, content):
        path = tmp_path / "cycles.json"
        path.write_bytes(content)
        service = LedgerService(JsonFileLedgerStore(path, clock), repository)

        result = service.list_cycles()

        assert result.error.kind == ErrorKind.STORE_CORRUPTED
        assert path.read_bytes() == content

    def test_unavailable_store_on_save(self, service, monkeypatch, cycle_payload):
        def refuse(state):
            raise StoreUnavailableError("memory://", "disk full")

        monkeypatch.setattr(service.gate.store, "save", refuse)
        result = service.create_cycle(cycle_payload)
        assert result.error.kind == ErrorKind.STORE_UNAVAILABLE

    def test_programming_errors_propagate(self, service, monkeypatch):
        def broken(state):
            raise ZeroDivisionError

        monkeypatch.setattr(service.repository, "list", broken)
        with pytest.raises(ZeroDivisionError):
            service.list_cycles()


class TestIntakeThroughService:
    def test_wizard_creates_cycle(self, service):
        turns = ["create a new cycle", "6", "11000", "80", "0.99", "calculate", "562", "2301.56"]
        outcomes = [service.advance_intake("chat-1", t) for t in turns]

        final = outcomes[-1]
        assert final.event == IntakeEvent.COMMITTED
        cycle = final.result.data
        assert cycle.intermediate_amount == Decimal("136.51")
        assert cycle.status == CycleStatus.PENDING
        assert service.get_cycle(6)

    def test_wizard_duplicate_reports_and_resets(self, service, cycle_payload):
        service.create_cycle(cycle_payload)
        turns = ["new cycle", "6", "1", "1", "0", "1", "1", "0"]
        final = [service.advance_intake("chat-2", t) for t in turns][-1]

        assert final.event == IntakeEvent.COMMIT_FAILED
        assert final.error.kind == ErrorKind.ALREADY_EXISTS
        assert service.intake.snapshot("chat-2").draft == {}
        assert service.get_cycle(6).data.invested_amount == Decimal("11000")


class TestLogging:
    def test_operations_carry_context(self, service, cycle_payload, captured_logs):
        service.create_cycle(cycle_payload)

        created = [r for r in captured_logs() if r["message"] == "cycle_created"]
        assert len(created) == 1
        assert created[0]["operation"] == "create_cycle"
        assert created[0]["cycle_id"] == "6"
        assert created[0]["correlation_id"]

    def test_each_call_gets_new_correlation_id(self, service, captured_logs):
        service.list_cycles()
        service.list_cycles()
        ids = {r["correlation_id"] for r in captured_logs() if r["message"] == "operation_started"}
        assert len(ids) == 2

    def test_failure_is_logged(self, service, captured_logs):
        service.get_cycle(99)
        failures = [r for r in captured_logs() if r["message"] == "operation_failed"]
        assert failures[0]["error_code"] == "CYCLE_NOT_FOUND"
