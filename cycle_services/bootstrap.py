"""
Wiring from LedgerSettings to a ready LedgerService.

    settings = get_active_settings()
    service = build_ledger_service(settings)

Everything that depends on configuration is constructed here and nowhere
else: the store for the chosen backend, the recalculation engine with its
alert tolerance, the repository, the session cache and the service.
"""

from __future__ import annotations

from sqlalchemy.orm import sessionmaker

from cycle_config.schema import LedgerSettings, StoreBackend
from cycle_kernel.db.engine import build_engine, create_tables
from cycle_kernel.domain.clock import Clock, SystemClock
from cycle_kernel.domain.recalculation import RecalculationEngine
from cycle_kernel.logging_config import configure_logging, get_logger
from cycle_kernel.services.cycle_repository import CycleRepository
from cycle_kernel.store import (
    InMemoryLedgerStore,
    JsonFileLedgerStore,
    LedgerStore,
    SqlLedgerStore,
)
from cycle_services.intake import IntakeSession
from cycle_services.ledger_service import LedgerService
from cycle_services.session_cache import SessionCache

logger = get_logger("services.bootstrap")


def build_store(settings: LedgerSettings, clock: Clock) -> LedgerStore:
    """Construct the LedgerStore selected by ``settings.store_backend``."""
    if settings.store_backend == StoreBackend.JSON:
        return JsonFileLedgerStore(settings.store_path, clock)
    if settings.store_backend == StoreBackend.SQL:
        engine = build_engine(settings.database_url)
        create_tables(engine)
        factory = sessionmaker(bind=engine, expire_on_commit=False)
        return SqlLedgerStore(factory, clock)
    return InMemoryLedgerStore(clock)


def build_ledger_service(
    settings: LedgerSettings, clock: Clock | None = None
) -> LedgerService:
    """Configure logging and assemble a LedgerService from ``settings``."""
    configure_logging(level=settings.log_level)
    clock = clock or SystemClock()

    store = build_store(settings, clock)
    repository = CycleRepository(RecalculationEngine(settings.alert_tolerance), clock)
    sessions: SessionCache[IntakeSession] = SessionCache(
        IntakeSession,
        max_entries=settings.max_sessions,
        ttl_seconds=settings.session_ttl_seconds,
        clock=clock,
    )

    logger.info(
        "ledger_service_built",
        extra={
            "store_backend": settings.store_backend.value,
            "location": store.location,
        },
    )
    return LedgerService(store, repository, sessions)
