"""Database infrastructure for the SQL ledger store."""

from cycle_kernel.db.base import Base, DecimalString, ISODateTime
from cycle_kernel.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    session_scope,
)

__all__ = [
    "Base",
    "DecimalString",
    "ISODateTime",
    "build_engine",
    "create_tables",
    "drop_tables",
    "session_scope",
]
