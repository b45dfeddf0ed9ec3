"""
Typed exception hierarchy for the cycle kernel.

Every failure the kernel can recover from has its own class, a static
machine-readable ``code``, an ``error_kind`` from
``cycle_kernel.domain.dtos.ErrorKind`` and the structured data needed to
explain it (field name, reason, offending id).  Callers catch by type,
never by message text.

    CycleLedgerError (base)
    |
    +-- CycleError
    |   +-- InvalidIdError
    |   +-- CycleAlreadyExistsError
    |   +-- CycleNotFoundError
    |
    +-- InputError
    |   +-- MissingFieldError
    |   +-- ValidationFailedError
    |   +-- PrerequisiteMissingError
    |
    +-- StoreError
        +-- StoreCorruptedError
        +-- StoreUnavailableError

Nothing here is fatal.  The service layer converts any CycleLedgerError
into an ``OperationResult.failure`` via ``to_error_info()``.
"""

from __future__ import annotations

from typing import Any

from cycle_kernel.domain.dtos import ErrorInfo, ErrorKind


class CycleLedgerError(Exception):
    """
    Base exception for all cycle kernel errors.

    All subclasses carry a ``code`` class attribute and an ``error_kind``.
    """

    code: str = "CYCLE_LEDGER_ERROR"
    error_kind: ErrorKind = ErrorKind.VALIDATION_FAILED

    def to_error_info(self) -> ErrorInfo:
        """Project this exception onto the structured error DTO."""
        return ErrorInfo(
            kind=self.error_kind,
            code=self.code,
            message=str(self),
            field=getattr(self, "field", None),
            reason=getattr(self, "reason", None),
            details=self._details() or None,
        )

    def _details(self) -> dict[str, Any]:
        return {}


# Cycle identity


class CycleError(CycleLedgerError):
    """Base exception for cycle identity errors."""

    code: str = "CYCLE_ERROR"


class InvalidIdError(CycleError):
    """The cycle id is missing or does not parse to a positive number."""

    code: str = "INVALID_ID"
    error_kind = ErrorKind.INVALID_ID

    def __init__(self, raw_value: Any):
        self.raw_value = raw_value
        self.field = "cycleId"
        super().__init__(f"Invalid cycle id: {raw_value!r}")

    def _details(self) -> dict[str, Any]:
        return {"raw_value": repr(self.raw_value)}


class CycleAlreadyExistsError(CycleError):
    """A cycle with the given id is already in the ledger."""

    code: str = "CYCLE_ALREADY_EXISTS"
    error_kind = ErrorKind.ALREADY_EXISTS

    def __init__(self, cycle_id: int):
        self.cycle_id = cycle_id
        super().__init__(f"Cycle already exists: {cycle_id}")

    def _details(self) -> dict[str, Any]:
        return {"cycle_id": self.cycle_id}


class CycleNotFoundError(CycleError):
    """No cycle with the given id exists."""

    code: str = "CYCLE_NOT_FOUND"
    error_kind = ErrorKind.NOT_FOUND

    def __init__(self, cycle_id: Any):
        self.cycle_id = cycle_id
        super().__init__(f"Cycle not found: {cycle_id}")

    def _details(self) -> dict[str, Any]:
        return {"cycle_id": self.cycle_id}


# Field input


class InputError(CycleLedgerError):
    """Base exception for rejected field input."""

    code: str = "INPUT_ERROR"


class MissingFieldError(InputError):
    """A required field is absent, null or empty."""

    code: str = "MISSING_FIELD"
    error_kind = ErrorKind.MISSING_FIELD

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required field: {field}")


class ValidationFailedError(InputError):
    """A field value is present but unacceptable."""

    code: str = "VALIDATION_FAILED"
    error_kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, field: str, reason: str, value: Any = None):
        self.field = field
        self.reason = str(getattr(reason, "value", reason))
        self.value = value
        super().__init__(f"Invalid value for {field}: {self.reason}")

    def _details(self) -> dict[str, Any]:
        return {"value": None if self.value is None else str(self.value)}


class PrerequisiteMissingError(InputError):
    """An estimate was requested before the fields it depends on are known."""

    code: str = "PREREQUISITE_MISSING"
    error_kind = ErrorKind.PREREQUISITE_MISSING

    def __init__(self, field: str, missing: tuple[str, ...]):
        self.field = field
        self.missing = tuple(missing)
        super().__init__(
            f"Cannot estimate {field}: missing {', '.join(self.missing)}"
        )

    def _details(self) -> dict[str, Any]:
        return {"missing": list(self.missing)}


# Persistence


class StoreError(CycleLedgerError):
    """Base exception for store load/save failures."""

    code: str = "STORE_ERROR"
    error_kind = ErrorKind.STORE_UNAVAILABLE


class StoreCorruptedError(StoreError):
    """The persisted ledger exists but cannot be decoded."""

    code: str = "STORE_CORRUPTED"
    error_kind = ErrorKind.STORE_CORRUPTED

    def __init__(self, location: str, detail: str):
        self.location = location
        self.detail = detail
        super().__init__(f"Ledger store at {location} is corrupted: {detail}")

    def _details(self) -> dict[str, Any]:
        return {"location": self.location}


class StoreUnavailableError(StoreError):
    """The ledger could not be read or written."""

    code: str = "STORE_UNAVAILABLE"
    error_kind = ErrorKind.STORE_UNAVAILABLE

    def __init__(self, location: str, detail: str):
        self.location = location
        self.detail = detail
        super().__init__(f"Ledger store at {location} is unavailable: {detail}")

    def _details(self) -> dict[str, Any]:
        return {"location": self.location}
