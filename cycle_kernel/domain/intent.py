"""
Utterance classification for the guided intake.

Responsibility:
    Reads one user utterance and says what kind of turn it is: a request
    to start a new cycle, a cancellation, a request that the system
    estimate the current field, a percentage, or a plain answer.  The
    intake state machine decides what each kind means in its current
    state; this module only classifies.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Notes:
    Matching is keyword based and case-insensitive.  English and Spanish
    phrasings are both recognised.  Precedence when several match:
    create, cancel, delegation, percent, plain.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from cycle_kernel.domain.numeric import extract_percent


@dataclass(frozen=True)
class CreateIntent:
    text: str


@dataclass(frozen=True)
class CancelIntent:
    text: str


@dataclass(frozen=True)
class DelegationIntent:
    text: str


@dataclass(frozen=True)
class PercentValue:
    text: str
    percent: Decimal


@dataclass(frozen=True)
class PlainUtterance:
    text: str


Utterance = Union[
    CreateIntent, CancelIntent, DelegationIntent, PercentValue, PlainUtterance
]

_CREATE = re.compile(
    r"\b(?:create|new|start|open)\s+(?:(?:a|an|the|new)\s+)*cycle\b"
    r"|\b(?:crear|crea|nuevo|iniciar|inicia|abrir|abre)\s+"
    r"(?:(?:un|el|nuevo)\s+)*ciclo\b",
    re.IGNORECASE,
)

_CANCEL = re.compile(
    r"\b(?:cancel|exit|stop|end|cancelar|cancela|salir|parar|terminar)\b",
    re.IGNORECASE,
)

_DELEGATION = re.compile(
    r"\b(?:calculate|estimate|calcula|calcúlalo|calculalo|estima|estímalo)\b"
    r"|\byou\s+do\s+it\b|\bhazlo\s+t[uú]\b",
    re.IGNORECASE,
)


def is_create_intent(text: str) -> bool:
    return bool(_CREATE.search(text))


def is_cancel_intent(text: str) -> bool:
    return bool(_CANCEL.search(text))


def is_delegation_intent(text: str) -> bool:
    return bool(_DELEGATION.search(text))


def classify_utterance(text: str | None) -> Utterance:
    """Classify one utterance into a tagged variant."""
    text = (text or "").strip()
    if is_create_intent(text):
        return CreateIntent(text)
    if is_cancel_intent(text):
        return CancelIntent(text)
    if is_delegation_intent(text):
        return DelegationIntent(text)
    percent = extract_percent(text)
    if percent is not None:
        return PercentValue(text, percent)
    return PlainUtterance(text)
