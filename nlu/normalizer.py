# nlu/normalizer.py
from __future__ import annotations

import re
import unicodedata
from typing import List, Optional, Sequence


def _safe_str(x: object) -> str:
    return x if isinstance(x, str) else "" if x is None else str(x)


def strip_diacritics(s: str) -> str:
    decomposed = unicodedata.normalize("NFD", _safe_str(s))
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize_text(s: str) -> str:
    """
    Lower-case, drop accents, collapse whitespace.
    "Sí, dámelo"  -> "si, damelo"
    "Teflón 1/2"" -> "teflon 1/2""
    """
    s = strip_diacritics(_safe_str(s).lower())
    return re.sub(r"\s+", " ", s).strip()


def normalize_phrase(s: str) -> str:
    """
    normalize_text + punctuation removed. Used for whole-utterance matches
    ("No, gracias." -> "no gracias").
    """
    s = normalize_text(s)
    s = re.sub(r"[^a-z0-9\s]", " ", s)
    return re.sub(r"\s+", " ", s).strip()


def tokenize(s: str, min_len: int = 3) -> List[str]:
    """
    Unique alphanumeric tokens in first-seen order.
    """
    out: List[str] = []
    seen = set()
    for t in normalize_phrase(s).split():
        if len(t) < min_len or t in seen:
            continue
        seen.add(t)
        out.append(t)
    return out


# ----------------------------
# hardware query normalization
# ----------------------------

# (substring in the lower-cased query, token to search with)
_MATERIAL_TOKENS: Sequence[tuple] = (
    ("pvc", "pvc"),
    ("cpvc", "cpvc"),
    ("cobre", "cobre"),
    ("pex", "pex"),
    ("tablaroca", "tablaroca"),
    ("drywall", "tablaroca"),
    ("madera", "madera"),
)

# spoken sizes -> fractional inches. "media pulgada" is covered by "media".
_SPOKEN_SIZES: Sequence[tuple] = (
    ("media", "1/2"),
    ("tres cuartos", "3/4"),
    ("cuarto", "1/4"),
    ("tres octavos", "3/8"),
    ("cinco octavos", "5/8"),
)

_ONE_INCH = ("una pulgada", "1 pulgada", '1"')

_FRACTION_RE = re.compile(r"\b(\d+\s*/\s*\d+)\b")


def normalize_query(q: str) -> str:
    """
    Compact search query with the materials and sizes the catalog is indexed by.
    Returns the original query when nothing is recognized.

    "tengo una fuga en tubo PVC de media" -> "pvc 1/2"
    """
    s = _safe_str(q).lower()
    tokens: List[str] = []

    for needle, token in _MATERIAL_TOKENS:
        if needle in s:
            tokens.append(token)

    m = _FRACTION_RE.search(s)
    if m:
        tokens.append(re.sub(r"\s+", "", m.group(1)))

    for needle, token in _SPOKEN_SIZES:
        if needle in s:
            tokens.append(token)

    if any(n in s for n in _ONE_INCH):
        tokens.append('1"')

    compact = " ".join(dict.fromkeys(tokens)).strip()
    return compact or _safe_str(q)


def like_needle(val: Optional[str]) -> str:
    """
    Collapse whitespace for a LIKE needle. Empty input -> "".
    """
    s = re.sub(r"\s+", " ", _safe_str(val)).strip()
    return s
