"""
Cycle Kernel

Deterministic ledger for currency-conversion cycles:
- Pure recalculation of derived cycle state from inputs and releases
- Decimal-only money with explicit cent rounding
- Whole-state load/save persistence behind an exclusive store gate
- Typed, code-carrying errors for every recoverable failure
"""

__version__ = "0.1.0"
