"""Structured log output and request-scoped context."""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from cycle_kernel.domain.cycle import CycleStatus
from cycle_kernel.exceptions import ValidationFailedError
from cycle_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def stream():
    """Configure logging onto a buffer and return the buffer."""
    buffer = StringIO()
    configure_logging(stream=buffer, level=logging.DEBUG)
    return buffer


def _records(buffer: StringIO) -> list[dict]:
    return [json.loads(line) for line in buffer.getvalue().splitlines() if line]


class TestRecordShape:
    def test_envelope(self, stream):
        get_logger("store.json").info("store_saved")

        (record,) = _records(stream)
        assert record["message"] == "store_saved"
        assert record["level"] == "INFO"
        assert record["logger"] == "cycle_kernel.store.json"
        assert record["ts"].endswith("+00:00")

    def test_extras_merged_and_stringified(self, stream):
        get_logger("domain.recalculation").debug(
            "cycle_recalculated",
            extra={"release_count": 2, "pending": Decimal("-12.50"), "status": CycleStatus.CLOSED},
        )

        (record,) = _records(stream)
        assert record["release_count"] == 2
        assert record["pending"] == "-12.50"
        assert record["status"] == "Closed"

    def test_bound_context_wins_over_extra_of_same_name(self, stream):
        with LogContext.bind(cycle_id=6):
            get_logger("t").info("x", extra={"cycle_id": 99})

        (record,) = _records(stream)
        assert record["cycle_id"] == "6"

    def test_no_context_keys_when_nothing_bound(self, stream):
        get_logger("t").info("bare")

        (record,) = _records(stream)
        assert not {"correlation_id", "operation", "cycle_id", "session_id"} & record.keys()

    def test_ledger_error_attributes_flattened(self, stream):
        try:
            raise ValidationFailedError("fee1", "negative", "-3")
        except ValidationFailedError:
            get_logger("t").error("rejected", exc_info=True)

        (record,) = _records(stream)
        assert record["exc_type"] == "ValidationFailedError"
        assert record["exc_code"] == "VALIDATION_FAILED"
        assert record["exc_field"] == "fee1"
        assert record["exc_reason"] == "negative"
        assert "Traceback" in record["traceback"]

    def test_plain_exception_has_no_code(self, stream):
        try:
            raise KeyError("cycleId")
        except KeyError:
            get_logger("t").warning("decode_failed", exc_info=True)

        (record,) = _records(stream)
        assert record["exc_type"] == "KeyError"
        assert "exc_code" not in record


class TestLogContext:
    def test_bind_restores_outer_value(self):
        with LogContext.bind(operation="list_cycles"):
            with LogContext.bind(operation="get_cycle", cycle_id=3):
                assert LogContext.get_all() == {"operation": "get_cycle", "cycle_id": "3"}
            assert LogContext.get_all() == {"operation": "list_cycles"}
        assert LogContext.get_all() == {}

    def test_bind_skips_none(self):
        with LogContext.bind(session_id=None, correlation_id="c-1"):
            assert LogContext.get_all() == {"correlation_id": "c-1"}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(session_id="alice"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            with LogContext.bind(actor="x"):
                pass

    def test_clear(self):
        with LogContext.bind(session_id="alice"):
            LogContext.clear()
            assert LogContext.get_all() == {}


class TestConfigureLogging:
    def test_second_call_is_noop(self):
        configure_logging(stream=StringIO())
        configure_logging(stream=StringIO())
        assert len(logging.getLogger("cycle_kernel").handlers) == 1

    def test_level_filters(self):
        buffer = StringIO()
        configure_logging(stream=buffer, level="INFO")
        logger = get_logger("t")
        logger.debug("hidden")
        logger.info("shown")

        assert [r["message"] for r in _records(buffer)] == ["shown"]

    def test_explicit_handler_gets_structured_formatter(self):
        handler = logging.StreamHandler(StringIO())
        configure_logging(handler=handler)
        assert isinstance(handler.formatter, StructuredFormatter)

    def test_reset_detaches_handler(self):
        configure_logging(stream=StringIO())
        reset_logging()
        assert logging.getLogger("cycle_kernel").handlers == []
