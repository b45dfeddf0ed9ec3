"""ORM models for the SQL ledger store."""

from cycle_kernel.models.ledger import CycleRecord, LedgerMetaRecord, ReleaseRecord

__all__ = ["CycleRecord", "LedgerMetaRecord", "ReleaseRecord"]
