"""
RecalculationEngine -- derived cycle state from inputs and releases.

Responsibility:
    Given the whole ledger and a cycle id, recompute that cycle's derived
    fields (released, received, pending, profit, profit %, status, alerts)
    and write them onto the cycle in place.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The only mutation
    is to the named cycle's derived fields.

Invariants enforced:
    - Idempotence: recalculating twice with no mutation in between yields
      identical derived fields.
    - Additivity: released/received totals are sums over exactly the
      releases whose cycle_id matches, independent of release order.
    - Status boundary: PENDING iff pending is unknown, CLOSED iff
      pending <= 0, IN_PROGRESS otherwise.

Failure modes:
    - CycleNotFoundError when the cycle id is not in the ledger.
"""

from __future__ import annotations

from decimal import Decimal

from cycle_kernel.domain.cycle import Cycle, CycleStatus, LedgerState
from cycle_kernel.domain.numeric import is_number, round2
from cycle_kernel.exceptions import CycleNotFoundError
from cycle_kernel.logging_config import get_logger

logger = get_logger("domain.recalculation")

DEFAULT_ALERT_TOLERANCE = Decimal("1")

PENDING_NEGATIVE = "PENDING_NEGATIVE"
PROFIT_NEGATIVE = "PROFIT_NEGATIVE"

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def _sum_terms(values) -> Decimal:
    total = _ZERO
    for value in values:
        if is_number(value):
            total += value
    return round2(total)


def derive_status(pending_destination: Decimal | None) -> CycleStatus:
    """Map the pending destination amount onto a lifecycle status."""
    if pending_destination is None:
        return CycleStatus.PENDING
    if pending_destination <= _ZERO:
        return CycleStatus.CLOSED
    return CycleStatus.IN_PROGRESS


def derive_alerts(
    pending_destination: Decimal | None,
    profit_origin: Decimal | None,
    tolerance: Decimal = DEFAULT_ALERT_TOLERANCE,
) -> tuple[str, ...]:
    """Data-consistency alerts, pending first, then profit."""
    alerts: list[str] = []
    if pending_destination is not None and pending_destination < -tolerance:
        alerts.append(
            f"{PENDING_NEGATIVE}: pending destination {pending_destination} "
            f"is below -{tolerance}; more was released than was available"
        )
    if profit_origin is not None and profit_origin < -tolerance:
        alerts.append(
            f"{PROFIT_NEGATIVE}: profit {profit_origin} is below -{tolerance}"
        )
    return tuple(alerts)


class RecalculationEngine:
    """
    Derives a cycle's computed fields.

    Contract:
        ``recalculate`` must run after every mutation that could change
        derived state and before any read is exposed, so nobody observes
        stale derived fields.
    """

    def __init__(self, alert_tolerance: Decimal = DEFAULT_ALERT_TOLERANCE):
        self.alert_tolerance = alert_tolerance

    def recalculate(self, state: LedgerState, cycle_id: int) -> Cycle:
        cycle = state.cycles.get(cycle_id)
        if cycle is None:
            raise CycleNotFoundError(cycle_id)

        releases = state.releases_for(cycle_id)
        released = _sum_terms(r.released_amount for r in releases)
        received = _sum_terms(r.received_origin_amount for r in releases)

        pending: Decimal | None = None
        if cycle.available_destination is not None:
            pending = round2(cycle.available_destination - released)

        profit: Decimal | None = None
        profit_percent: Decimal | None = None
        if cycle.invested_amount is not None:
            profit = round2(received - cycle.invested_amount)
            if cycle.invested_amount != _ZERO:
                profit_percent = round2(
                    (received - cycle.invested_amount)
                    / cycle.invested_amount
                    * _HUNDRED
                )

        cycle.released_destination = released
        cycle.received_origin = received
        cycle.pending_destination = pending
        cycle.profit_origin = profit
        cycle.profit_percent = profit_percent
        cycle.status = derive_status(pending)
        cycle.alerts = derive_alerts(pending, profit, self.alert_tolerance)

        logger.debug(
            "cycle_recalculated",
            extra={
                "recalculated_cycle_id": cycle_id,
                "release_count": len(releases),
                "status": cycle.status.value,
                "alert_count": len(cycle.alerts),
            },
        )
        return cycle

    def recalculate_all(self, state: LedgerState) -> list[Cycle]:
        """Recalculate every cycle, in ascending id order."""
        return [self.recalculate(state, cid) for cid in sorted(state.cycles)]
