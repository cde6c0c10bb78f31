"""Payee name normalization."""

from __future__ import annotations

import re
import unicodedata

from payee.types import NormalizedName

_DISALLOWED = re.compile(r"[^\w\s&']")
_AMPERSAND = re.compile(r"\s*&\s*")
_WHITESPACE = re.compile(r"\s+")
_KEY_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize(raw: str) -> NormalizedName:
    """Normalize a payee name into its canonical upper-case form.

    Empty, whitespace-only or non-string input yields an empty name.
    """
    if not isinstance(raw, str) or not raw.strip():
        return NormalizedName(original=raw if isinstance(raw, str) else "", text="", tokens=[])

    # 1. Canonical composition, then upper-case
    s = unicodedata.normalize("NFC", raw).upper()

    # 2. Strip diacritics
    s = strip_diacritics(s)

    # 3. Punctuation to spaces, keeping '&' and apostrophes
    s = _DISALLOWED.sub(" ", s)

    # 4. Standardize ampersand
    s = _AMPERSAND.sub(" AND ", s)

    # 5. Collapse whitespace
    s = _WHITESPACE.sub(" ", s).strip()

    return NormalizedName(original=raw, text=s, tokens=s.split() if s else [])


def strip_diacritics(s: str) -> str:
    """Decompose and drop combining marks (e.g. 'É' -> 'E')."""
    decomposed = unicodedata.normalize("NFD", s)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def comparison_key(raw: str) -> str:
    """Key used to spot duplicate names: lower-case, no punctuation, single spaces."""
    if not isinstance(raw, str):
        return ""
    s = _KEY_PUNCTUATION.sub(" ", raw.lower())
    return _WHITESPACE.sub(" ", s).strip()
