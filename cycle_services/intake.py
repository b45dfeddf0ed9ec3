"""
IntakeStateMachine -- guided, one-field-per-turn creation of a cycle.

Responsibility:
    Collects the seven required inputs of a new cycle across several
    conversational turns, validates each answer as it arrives, offers two
    shortcuts (estimate the intermediate amount, give fee2 as a percentage)
    and hands the finished draft to a committer exactly once.

Architecture position:
    Services layer.  Owns per-session wizard state (held in a SessionCache);
    the committer is normally LedgerService.create_cycle, so the commit goes
    through the same store transaction as any other create.

States:
    IDLE -> AWAITING_CYCLE_ID -> AWAITING_INVESTED -> AWAITING_RATE_1
    -> AWAITING_FEE_1 -> AWAITING_INTERMEDIATE_AMOUNT -> AWAITING_RATE_2
    -> AWAITING_FEE_2 -> (commit) -> IDLE

Invariants enforced:
    - A rejected answer leaves step and draft exactly as they were.
    - Cancel from any active step resets to IDLE without touching the ledger.
    - After the final field the session resets to IDLE whether or not the
      commit succeeded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Callable

from cycle_kernel.domain.dtos import ErrorInfo, OperationResult, ValidationReason
from cycle_kernel.domain.intent import (
    CancelIntent,
    CreateIntent,
    DelegationIntent,
    PercentValue,
    Utterance,
    classify_utterance,
)
from cycle_kernel.domain.numeric import in_range, parse_number, round2
from cycle_kernel.exceptions import (
    InputError,
    PrerequisiteMissingError,
    ValidationFailedError,
)
from cycle_kernel.logging_config import LogContext, get_logger
from cycle_services.session_cache import SessionCache

logger = get_logger("services.intake")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


class IntakeStep(IntEnum):
    IDLE = 0
    AWAITING_CYCLE_ID = 1
    AWAITING_INVESTED = 2
    AWAITING_RATE_1 = 3
    AWAITING_FEE_1 = 4
    AWAITING_INTERMEDIATE_AMOUNT = 5
    AWAITING_RATE_2 = 6
    AWAITING_FEE_2 = 7


# step -> (wire field, rule)
_STEP_FIELDS: dict[IntakeStep, tuple[str, str]] = {
    IntakeStep.AWAITING_CYCLE_ID: ("cycleId", "positive_integer"),
    IntakeStep.AWAITING_INVESTED: ("investedAmount", "number"),
    IntakeStep.AWAITING_RATE_1: ("exchangeRate1", "positive"),
    IntakeStep.AWAITING_FEE_1: ("fee1", "non_negative"),
    IntakeStep.AWAITING_INTERMEDIATE_AMOUNT: ("intermediateAmount", "positive"),
    IntakeStep.AWAITING_RATE_2: ("exchangeRate2", "positive"),
    IntakeStep.AWAITING_FEE_2: ("fee2", "non_negative"),
}


def awaited_field(step: IntakeStep) -> str | None:
    """Wire name of the field awaited at ``step`` (None when idle)."""
    entry = _STEP_FIELDS.get(step)
    return entry[0] if entry else None


@dataclass
class IntakeSession:
    step: IntakeStep = IntakeStep.IDLE
    draft: dict[str, Any] = field(default_factory=dict)

    @property
    def active(self) -> bool:
        return self.step != IntakeStep.IDLE

    def reset(self) -> None:
        self.step = IntakeStep.IDLE
        self.draft = {}

    def copy(self) -> IntakeSession:
        return IntakeSession(step=self.step, draft=dict(self.draft))


class IntakeEvent(str, Enum):
    STARTED = "started"
    FIELD_ACCEPTED = "field_accepted"
    FIELD_REJECTED = "field_rejected"
    CANCELLED = "cancelled"
    COMMITTED = "committed"
    COMMIT_FAILED = "commit_failed"
    NOT_IN_INTAKE = "not_in_intake"


@dataclass(frozen=True)
class IntakeOutcome:
    """
    What one turn did, for whoever writes the reply.

    ``draft`` is the draft after the turn, except for COMMITTED and
    COMMIT_FAILED where it is the draft that was submitted.  ``result`` is
    the committer's OperationResult on those two events and None otherwise.
    """

    session_id: str
    event: IntakeEvent
    step: IntakeStep
    awaited_field: str | None
    draft: dict[str, Any]
    error: ErrorInfo | None = None
    result: OperationResult | None = None

    @property
    def is_error(self) -> bool:
        return self.event in (IntakeEvent.FIELD_REJECTED, IntakeEvent.COMMIT_FAILED)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "sessionId": self.session_id,
            "event": self.event.value,
            "step": int(self.step),
            "awaitedField": self.awaited_field,
            "draft": {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.draft.items()
            },
        }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


Committer = Callable[[dict[str, Any]], OperationResult]


class IntakeStateMachine:
    """Drives IntakeSession objects one utterance at a time."""

    def __init__(
        self,
        committer: Committer,
        sessions: SessionCache[IntakeSession] | None = None,
    ):
        self.committer = committer
        self.sessions = sessions if sessions is not None else SessionCache(IntakeSession)

    def advance(self, session_id: str, utterance: str | None) -> IntakeOutcome:
        turn = classify_utterance(utterance)
        with LogContext.bind(session_id=session_id):
            with self.sessions.checkout(session_id) as session:
                return self._advance(session_id, session, turn)

    def snapshot(self, session_id: str) -> IntakeSession:
        """Copy of the session's current state; IDLE if it is unknown."""
        session = self.sessions.peek(session_id)
        return session.copy() if session is not None else IntakeSession()

    # ------------------------------------------------------------------

    def _advance(
        self, session_id: str, session: IntakeSession, turn: Utterance
    ) -> IntakeOutcome:
        if not session.active:
            if isinstance(turn, CreateIntent):
                session.step = IntakeStep.AWAITING_CYCLE_ID
                session.draft = {}
                logger.info("intake_started")
                return self._outcome(session_id, IntakeEvent.STARTED, session)
            return self._outcome(session_id, IntakeEvent.NOT_IN_INTAKE, session)

        if isinstance(turn, CancelIntent):
            abandoned = awaited_field(session.step)
            session.reset()
            logger.info("intake_cancelled", extra={"abandoned_field": abandoned})
            return self._outcome(session_id, IntakeEvent.CANCELLED, session)

        try:
            updates = self._resolve(session, turn)
        except InputError as exc:
            logger.info(
                "intake_field_rejected",
                extra={"field": exc.field, "error_code": exc.code},
            )
            return self._outcome(
                session_id, IntakeEvent.FIELD_REJECTED, session,
                error=exc.to_error_info(),
            )

        session.draft.update(updates)
        if session.step == IntakeStep.AWAITING_FEE_2:
            return self._commit(session_id, session)

        logger.debug("intake_field_accepted", extra={"fields": sorted(updates)})
        session.step = IntakeStep(session.step + 1)
        return self._outcome(session_id, IntakeEvent.FIELD_ACCEPTED, session)

    @staticmethod
    def _outcome(
        session_id: str,
        event: IntakeEvent,
        session: IntakeSession,
        error: ErrorInfo | None = None,
    ) -> IntakeOutcome:
        return IntakeOutcome(
            session_id=session_id,
            event=event,
            step=session.step,
            awaited_field=awaited_field(session.step),
            draft=dict(session.draft),
            error=error,
        )

    def _commit(self, session_id: str, session: IntakeSession) -> IntakeOutcome:
        submitted = dict(session.draft)
        try:
            result = self.committer(dict(submitted))
        finally:
            session.reset()

        if result.is_success:
            logger.info("intake_committed", extra={"cycle_id": submitted.get("cycleId")})
            event = IntakeEvent.COMMITTED
        else:
            logger.info(
                "intake_commit_failed",
                extra={"error_code": result.error.code if result.error else None},
            )
            event = IntakeEvent.COMMIT_FAILED
        return IntakeOutcome(
            session_id=session_id,
            event=event,
            step=session.step,
            awaited_field=None,
            draft=submitted,
            error=result.error,
            result=result,
        )

    def _resolve(self, session: IntakeSession, turn: Utterance) -> dict[str, Any]:
        """Values this turn adds to the draft.  Raises InputError to stay."""
        name, rule = _STEP_FIELDS[session.step]
        draft = session.draft

        if session.step == IntakeStep.AWAITING_INTERMEDIATE_AMOUNT and isinstance(
            turn, DelegationIntent
        ):
            return {name: self._estimate_intermediate(draft)}

        if session.step == IntakeStep.AWAITING_FEE_2 and isinstance(turn, PercentValue):
            intermediate = draft.get("intermediateAmount")
            rate_2 = draft.get("exchangeRate2")
            if intermediate is not None and rate_2 is not None:
                gross = round2(intermediate * rate_2)
                return {
                    "grossDestination": gross,
                    name: round2(gross * turn.percent / _HUNDRED),
                }

        return {name: _check(name, rule, turn.text)}

    @staticmethod
    def _estimate_intermediate(draft: dict[str, Any]) -> Decimal:
        invested = draft.get("investedAmount")
        rate_1 = draft.get("exchangeRate1")
        missing = tuple(
            n
            for n, v in (("investedAmount", invested), ("exchangeRate1", rate_1))
            if v is None or (n == "exchangeRate1" and v == _ZERO)
        )
        if missing:
            raise PrerequisiteMissingError("intermediateAmount", missing)
        fee_1 = draft.get("fee1") or _ZERO
        return round2(invested / rate_1 - fee_1)


def _check(name: str, rule: str, text: str) -> Decimal | int:
    value = parse_number(text)
    if not value.is_finite():
        raise ValidationFailedError(name, ValidationReason.NOT_A_NUMBER, text)
    if not in_range(value):
        raise ValidationFailedError(name, ValidationReason.OUT_OF_RANGE, text)

    if rule == "positive_integer":
        if value <= _ZERO:
            raise ValidationFailedError(name, ValidationReason.NOT_POSITIVE, text)
        truncated = int(value)
        if truncated < 1:
            raise ValidationFailedError(name, ValidationReason.NOT_AN_INTEGER, text)
        return truncated
    if rule == "positive" and value <= _ZERO:
        raise ValidationFailedError(name, ValidationReason.NOT_POSITIVE, text)
    if rule == "non_negative" and value < _ZERO:
        raise ValidationFailedError(name, ValidationReason.NEGATIVE, text)
    return value

