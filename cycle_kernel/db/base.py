"""
Module: cycle_kernel.db.base
Responsibility: Declarative base and portable column types for the SQL
    rendition of the ledger store.
Architecture position: Kernel > DB.  Lowest-level import target for the
    ORM models.  MUST NOT import from models/, services/, store/ or
    outer layers.

Invariants enforced:
    - Exact decimals: amounts are stored as their decimal string so no
      backend (SQLite in particular) rounds them through a float.
    - Timezone-aware timestamps: datetimes are stored as ISO-8601 text and
      come back with their UTC offset intact.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


class DecimalString(TypeDecorator):
    """
    Decimal stored as String(64).

    Guarantees:
        - process_bind_param: Decimal -> str on INSERT/UPDATE.
        - process_result_value: str -> Decimal on SELECT.
        - None round-trips as NULL.
    """

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return Decimal(value)
        return None


class ISODateTime(TypeDecorator):
    """Timezone-aware datetime stored as ISO-8601 String(40)."""

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return value.isoformat()
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return datetime.fromisoformat(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for the ledger tables.

    Guarantees:
        - Decimal maps to DecimalString -- exact, never float.
        - datetime maps to ISODateTime -- offset preserved on every backend.
        - int maps to BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: DecimalString(),
        datetime: ISODateTime(),
        int: BigInteger,
    }
