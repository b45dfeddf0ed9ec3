"""Ledger persistence: the load/save contract, its backends and the store gate."""

from cycle_kernel.store.base import InMemoryLedgerStore, LedgerStore
from cycle_kernel.store.gate import StoreGate
from cycle_kernel.store.json_store import JsonFileLedgerStore
from cycle_kernel.store.sql_store import SqlLedgerStore

__all__ = [
    "InMemoryLedgerStore",
    "JsonFileLedgerStore",
    "LedgerStore",
    "SqlLedgerStore",
    "StoreGate",
]
