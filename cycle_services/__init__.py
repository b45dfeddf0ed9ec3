"""
cycle_services -- stateful orchestration over the cycle kernel.

Responsibility:
    The request boundary (LedgerService), the guided intake wizard and its
    session cache, wiring from settings, and the console transport.

Architecture position:
    Services.  Dependency direction:
        cycle_services/ -> cycle_kernel/  (allowed)
        cycle_services/ -> cycle_config/  (allowed)
        cycle_kernel/   -> cycle_services/ (FORBIDDEN)
"""

from cycle_services.bootstrap import build_ledger_service, build_store
from cycle_services.intake import (
    IntakeEvent,
    IntakeOutcome,
    IntakeSession,
    IntakeStateMachine,
    IntakeStep,
)
from cycle_services.ledger_service import LedgerService
from cycle_services.session_cache import SessionCache

__all__ = [
    "IntakeEvent",
    "IntakeOutcome",
    "IntakeSession",
    "IntakeStateMachine",
    "IntakeStep",
    "LedgerService",
    "SessionCache",
    "build_ledger_service",
    "build_store",
]
