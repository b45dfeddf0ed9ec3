"""
Numeric normalization for user- and API-supplied amounts.

Responsibility:
    Turns loosely formatted scalars ("11 000", "0,99", 80, 2301.56) into
    Decimal values, rounds money to cents, and spots "15%"-style
    percentages in free text.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - Money is Decimal, never float.  Floats arriving from JSON are
      converted through ``str()`` so 0.1 stays 0.1.
    - Unparseable or non-finite input yields NOT_A_NUMBER; parsing never
      raises.
    - round2 rounds half away from zero at the cent boundary, at any
      magnitude.
    - Amounts the ledger accepts lie inside [MIN_MAGNITUDE, MAX_MAGNITUDE)
      or are zero, so derived arithmetic stays well inside the context's
      exponent range.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

NOT_A_NUMBER = Decimal("NaN")

CENT = Decimal("0.01")
MAX_MAGNITUDE = Decimal("1e15")
MIN_MAGNITUDE = Decimal("1e-12")
_ZERO = Decimal("0")

_WHITESPACE = re.compile(r"\s+")
_PERCENT = re.compile(r"(\d+(?:[.,]\d+)?)%")


def parse_number(raw: Any) -> Decimal:
    """
    Parse a scalar into a finite Decimal, or NOT_A_NUMBER.

    Native numbers are returned as-is (as Decimal) when finite.  Text is
    trimmed, stripped of all internal whitespace, and a single decimal
    comma is read as a decimal point.
    """
    if raw is None or isinstance(raw, bool):
        return NOT_A_NUMBER
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else NOT_A_NUMBER
    if isinstance(raw, int):
        return Decimal(raw)
    if isinstance(raw, float):
        return Decimal(str(raw)) if math.isfinite(raw) else NOT_A_NUMBER
    if not isinstance(raw, str):
        return NOT_A_NUMBER

    text = _WHITESPACE.sub("", raw.strip())
    if not text:
        return NOT_A_NUMBER
    if text.count(",") == 1:
        text = text.replace(",", ".")
    try:
        value = Decimal(text)
    except InvalidOperation:
        return NOT_A_NUMBER
    return value if value.is_finite() else NOT_A_NUMBER


def is_number(value: Any) -> bool:
    """True for a finite Decimal."""
    return isinstance(value, Decimal) and value.is_finite()


def in_range(value: Decimal) -> bool:
    """True for zero and for finite values whose magnitude the ledger carries."""
    if not is_number(value):
        return False
    return value.is_zero() or MIN_MAGNITUDE <= abs(value) < MAX_MAGNITUDE


def optional_number(raw: Any) -> Decimal | None:
    """Parse ``raw`` but report absent, empty and unparseable input as None."""
    value = parse_number(raw)
    return value if value.is_finite() else None


def is_blank(raw: Any) -> bool:
    """True for None and for strings that are empty after trimming."""
    return raw is None or (isinstance(raw, str) and not raw.strip())


def round2(value: Decimal) -> Decimal:
    """Round to cents, ties away from zero.  NaN passes through unchanged."""
    if not isinstance(value, Decimal):
        value = parse_number(value)
    if value.is_nan():
        return value
    with localcontext() as ctx:
        # Integer digits plus two places must fit the working precision
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        rounded = value.quantize(CENT, rounding=ROUND_HALF_UP)
    # No "-0.00" in the ledger
    return rounded if rounded != _ZERO else abs(rounded)


def extract_percent(text: Any) -> Decimal | None:
    """Return the first number written immediately before a '%' sign."""
    if not isinstance(text, str):
        return None
    match = _PERCENT.search(text)
    if match is None:
        return None
    return Decimal(match.group(1).replace(",", "."))
