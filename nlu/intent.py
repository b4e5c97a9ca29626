# nlu/intent.py
"""
Deterministic intent classification for kiosk turns.

Each rule is a (name, predicate) pair over normalized text and is evaluated
independently, so "sí, quita el teflón" is both an add and a removal turn.
The label given to the prompt and to the reconciler follows the precedence
End > Replace > Add > Normal; the removal flag is a modifier on any label.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Tuple

from nlu.normalizer import normalize_phrase, normalize_text

END = "End"
REPLACE = "Replace"
ADD = "Add"
NORMAL = "Normal"

# prompt hint per label (End never reaches the prompt)
PROMPT_LABELS: Dict[str, str] = {
    REPLACE: "REEMPLAZO",
    ADD: "AGREGAR",
    NORMAL: "NORMAL",
}

CLOSING_PHRASES: FrozenSet[str] = frozenset({
    "no",
    "no gracias",
    "eso es todo",
    "listo",
    "estoy bien",
    "nada mas",
})

_REPLACE_RE = re.compile(r"\b(mejor|prefiero|cambia|cambial\w*|en lugar de|en vez de)\b")
_ADD_RE = re.compile(
    r"\b(si|agrega\w*|anade|ponlo|sumalo|dame|damelo|tambien|incluyelo|mete|me lo llevo)\b"
)
_REMOVE_RE = re.compile(r"\b(quita|remueve|borra|elimina|saca)\w*|\bsin\b")


def is_end(text: str) -> bool:
    return normalize_phrase(text) in CLOSING_PHRASES


def is_replace(text: str) -> bool:
    return bool(_REPLACE_RE.search(normalize_text(text)))


def is_add(text: str) -> bool:
    return bool(_ADD_RE.search(normalize_text(text)))


def wants_removal(text: str) -> bool:
    return bool(_REMOVE_RE.search(normalize_text(text)))


INTENT_RULES: List[Tuple[str, Callable[[str], bool]]] = [
    ("end", is_end),
    ("replace", is_replace),
    ("add", is_add),
    ("wants_removal", wants_removal),
]


@dataclass(frozen=True)
class Intent:
    end: bool = False
    replace: bool = False
    add: bool = False
    wants_removal: bool = False

    @property
    def label(self) -> str:
        if self.end:
            return END
        if self.replace:
            return REPLACE
        if self.add:
            return ADD
        return NORMAL

    @property
    def prompt_label(self) -> str:
        return PROMPT_LABELS.get(self.label, "NORMAL")

    @property
    def add_turn(self) -> bool:
        # "sí, mejor el cople" is handled as a replacement, not an addition
        return self.add and not self.replace

    def as_dict(self) -> Dict[str, object]:
        return {
            "label": self.label,
            "end": self.end,
            "replace": self.replace,
            "add": self.add,
            "wants_removal": self.wants_removal,
        }


def classify_intent(text: str) -> Intent:
    flags = {name: bool(rule(text or "")) for name, rule in INTENT_RULES}

    # closing phrases are terminal; nothing else matters for the turn
    if flags["end"]:
        return Intent(end=True)

    return Intent(**flags)
