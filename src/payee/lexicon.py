"""Word lists used by feature extraction and exclusion."""

from __future__ import annotations

import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("PAYEE_CONFIG_DATA") or Path(__file__).parent / "data")


def _load_word_list(filename: str) -> set[str]:
    path = DATA_DIR / filename
    if not path.exists():
        return set()
    return {line.strip().upper() for line in path.read_text().splitlines() if line.strip()}


# Cache for dynamically loaded word lists
_LIST_CACHE: dict[str, set[str]] = {}


def load_word_list(name: str) -> set[str]:
    """Load a word list by name (e.g. 'honorifics' loads 'honorifics.txt')."""
    if name not in _LIST_CACHE:
        _LIST_CACHE[name] = _load_word_list(f"{name}.txt")
    return _LIST_CACHE[name]


def get_available_lists() -> list[str]:
    """Return the names of all word lists in the data directory."""
    return sorted(path.stem for path in DATA_DIR.glob("*.txt"))


LEGAL_SUFFIXES: set[str] = load_word_list("legal_suffixes")
BUSINESS_KEYWORDS: set[str] = load_word_list("business_keywords")
HONORIFICS: set[str] = load_word_list("honorifics")
GENERATION_SUFFIXES: set[str] = load_word_list("generation_suffixes")
GIVEN_NAMES: set[str] = load_word_list("given_names")

# Multi-word keywords ("REAL ESTATE") can't be matched token by token
BUSINESS_KEYWORD_TOKENS: set[str] = {k for k in BUSINESS_KEYWORDS if " " not in k}
BUSINESS_KEYWORD_PHRASES: set[str] = BUSINESS_KEYWORDS - BUSINESS_KEYWORD_TOKENS


def default_exclusion_keywords() -> list[str]:
    """Default exclusion keywords, lower-cased and sorted."""
    return sorted(k.lower() for k in load_word_list("exclusion_keywords"))


def is_legal_suffix(token: str) -> bool:
    return token in LEGAL_SUFFIXES


def is_business_keyword(token: str) -> bool:
    return token in BUSINESS_KEYWORD_TOKENS


def is_given_name(token: str) -> bool:
    return token in GIVEN_NAMES


def contains_keyword_phrase(text: str) -> bool:
    """Check a normalized name for any multi-word business keyword."""
    padded = f" {text} "
    return any(f" {phrase} " in padded for phrase in BUSINESS_KEYWORD_PHRASES)
