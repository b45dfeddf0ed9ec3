"""
Result and error value objects shared by the kernel and the service layer.

Responsibility:
    Gives every entry point one shape for its answer: an OperationResult
    carrying either success data or a structured ErrorInfo.  Exceptions
    raised inside the kernel are converted into these objects at the
    module boundary (see cycle_services.ledger_service).

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Recoverable error kinds reported across the module boundary."""

    INVALID_ID = "invalid_id"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    MISSING_FIELD = "missing_field"
    VALIDATION_FAILED = "validation_failed"
    PREREQUISITE_MISSING = "prerequisite_missing"
    STORE_CORRUPTED = "store_corrupted"
    STORE_UNAVAILABLE = "store_unavailable"


class ValidationReason(str, Enum):
    """Why a single field value was rejected."""

    NOT_A_NUMBER = "not_a_number"
    NOT_POSITIVE = "not_positive"
    NEGATIVE = "negative"
    NOT_AN_INTEGER = "not_an_integer"
    NOT_AN_OBJECT = "not_an_object"
    OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class ErrorInfo:
    """
    A single structured error.

    Contract:
        Carries the error kind, the machine-readable code of the exception
        it came from, a human-readable message and, where relevant, the
        field and reason.  Text generation for the user is left to the
        caller; this object only says what went wrong.
    """

    kind: ErrorKind
    code: str
    message: str
    field: str | None = None
    reason: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
        }
        if self.field is not None:
            data["field"] = self.field
        if self.reason is not None:
            data["reason"] = self.reason
        if self.details:
            data["details"] = dict(self.details)
        return data


class ResultStatus(str, Enum):
    """Outcome of an entry-point call."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class OperationResult:
    """
    Result of a ledger operation.

    Guarantees:
        - Exactly one of ``data`` (on success) or ``error`` (on failure)
          is meaningful.
        - bool(result) == result.is_success for convenience.
    """

    status: ResultStatus
    data: Any = None
    error: ErrorInfo | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None, **extras: Any) -> OperationResult:
        """Create a successful result."""
        return cls(status=ResultStatus.SUCCESS, data=data, extras=extras)

    @classmethod
    def failure(cls, error: ErrorInfo) -> OperationResult:
        """Create a failed result."""
        return cls(status=ResultStatus.FAILED, error=error)

    @property
    def is_success(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    def __bool__(self) -> bool:
        return self.is_success
