"""
Pytest fixtures for the cycle ledger test suite.

Provides:
- Deterministic clock, engine, repository and in-memory ledger state
- Stores for every backend (memory, JSON file in tmp_path, in-memory SQLite)
- A wired LedgerService over an in-memory store
- Captured structured logs
- The canonical cycle payloads used across the suite
"""

import json
import logging
from io import StringIO

import pytest
from sqlalchemy.orm import sessionmaker

from cycle_kernel.db.engine import build_engine, create_tables
from cycle_kernel.domain.clock import DeterministicClock
from cycle_kernel.domain.cycle import LedgerState
from cycle_kernel.domain.recalculation import RecalculationEngine
from cycle_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from cycle_kernel.services.cycle_repository import CycleRepository
from cycle_kernel.store import InMemoryLedgerStore, JsonFileLedgerStore, SqlLedgerStore
from cycle_services.intake import IntakeSession
from cycle_services.ledger_service import LedgerService
from cycle_services.session_cache import SessionCache


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture cycle_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.create_cycle(...)
            logs = captured_logs()
            assert any(r["message"] == "cycle_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("cycle_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Payloads
# =============================================================================


def cycle_six_payload() -> dict:
    """The reference cycle: every required input, nothing optional."""
    return {
        "cycleId": 6,
        "investedAmount": "11000",
        "exchangeRate1": "80",
        "fee1": "0.99",
        "intermediateAmount": "136.51",
        "exchangeRate2": "562",
        "fee2": "2301.56",
    }


@pytest.fixture
def cycle_payload():
    return cycle_six_payload()


@pytest.fixture
def funded_payload():
    """Cycle 7 with a known destination pool of 76000 - 1000 = 75000."""
    return {
        "cycleId": 7,
        "investedAmount": "10000",
        "exchangeRate1": "100",
        "fee1": "0",
        "intermediateAmount": "100",
        "exchangeRate2": "760",
        "grossDestination": "76000",
        "fee2": "1000",
    }


# =============================================================================
# Kernel fixtures
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def engine():
    return RecalculationEngine()


@pytest.fixture
def repository(engine, clock):
    return CycleRepository(engine, clock)


@pytest.fixture
def state():
    return LedgerState()


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def memory_store(clock):
    return InMemoryLedgerStore(clock)


@pytest.fixture
def json_store(tmp_path, clock):
    return JsonFileLedgerStore(tmp_path / "ledger" / "cycles.json", clock)


@pytest.fixture
def sql_store(clock):
    db = build_engine("sqlite://")
    create_tables(db)
    yield SqlLedgerStore(sessionmaker(bind=db, expire_on_commit=False), clock)
    db.dispose()


@pytest.fixture(params=["memory", "json", "sql"])
def any_store(request):
    """Every LedgerStore implementation, one at a time."""
    return request.getfixturevalue(f"{request.param}_store")


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def sessions(clock):
    return SessionCache(IntakeSession, max_entries=16, ttl_seconds=600, clock=clock)


@pytest.fixture
def service(memory_store, repository, sessions):
    return LedgerService(memory_store, repository, sessions)
