"""Keyword exclusion filter."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from payee.config import ExclusionConfig
from payee.normalize import normalize
from payee.similarity import combined_similarity
from payee.types import ExclusionResult

log = structlog.get_logger()

NO_KEYWORDS = "No exclusion keywords configured"
NO_MATCH = "No exclusion keywords matched"


def validate_keywords(keywords: list[str] | None) -> list[str]:
    """Drop blank or non-string keywords, trim and lower-case the rest."""
    if not keywords:
        return []
    cleaned: list[str] = []
    for keyword in keywords:
        if isinstance(keyword, str) and keyword.strip():
            k = keyword.strip().lower()
            if k not in cleaned:
                cleaned.append(k)
    return cleaned


def check_exclusion(
    name: str,
    keywords: list[str] | None,
    mode: str = "enhanced",
    config: ExclusionConfig | None = None,
) -> ExclusionResult:
    """Check a payee name against the exclusion keywords.

    ``simple`` mode is a case-insensitive substring test that stops at the
    first hit. ``enhanced`` mode collects exact hits (substring or token) on
    the normalized name, then fuzzy hits via combined similarity.
    """
    keywords = validate_keywords(keywords)
    if not keywords:
        return ExclusionResult(is_excluded=False, confidence=0, reasoning=NO_KEYWORDS)
    if not isinstance(name, str) or not name.strip():
        return ExclusionResult(is_excluded=False, confidence=0, reasoning=NO_MATCH)

    if mode == "simple":
        return _check_simple(name, keywords)
    if mode != "enhanced":
        raise ValueError(f"Unknown exclusion mode '{mode}'")
    return _check_enhanced(name, keywords, config or ExclusionConfig())


def _check_simple(name: str, keywords: list[str]) -> ExclusionResult:
    lowered = name.lower()
    for keyword in keywords:
        if keyword in lowered:
            return ExclusionResult(
                is_excluded=True,
                matched_keywords=[keyword],
                confidence=100,
                reasoning=f"Excluded due to keyword match: {keyword}",
            )
    return ExclusionResult(is_excluded=False, confidence=0, reasoning=NO_MATCH)


def _check_enhanced(name: str, keywords: list[str], config: ExclusionConfig) -> ExclusionResult:
    normalized = normalize(name)
    text, tokens = normalized.text, normalized.tokens

    exact: list[str] = []
    fuzzy: dict[str, float] = {}

    for keyword in keywords:
        upper = normalize(keyword).text or keyword.upper()

        # 1. Exact substring or token hit
        if upper in text or upper in tokens:
            exact.append(keyword)
            continue

        # 2. Whole-name fuzzy
        best = 0.0
        whole = combined_similarity(text, upper).combined
        if whole >= config.name_similarity:
            best = whole

        # 3. Token fuzzy
        for token in tokens:
            token_sim = combined_similarity(token, upper).combined
            if token_sim >= config.token_similarity:
                best = max(best, token_sim)

        if best > 0:
            fuzzy[keyword] = best

    if not exact and not fuzzy:
        return ExclusionResult(is_excluded=False, confidence=0, reasoning=NO_MATCH)

    confidence = 100 if exact else round(max(fuzzy.values()))
    parts = []
    if exact:
        parts.append(f"Exact matches: {', '.join(exact)}")
    if fuzzy:
        parts.append("Fuzzy matches: " + ", ".join(f"{k} ({s:.1f}% similar)" for k, s in fuzzy.items()))

    return ExclusionResult(
        is_excluded=True,
        matched_keywords=exact + list(fuzzy),
        confidence=min(100, confidence),
        reasoning=f"Excluded due to keyword matches - {'; '.join(parts)}",
    )


@dataclass
class FilteredNames:
    kept: list[str]
    excluded: list[tuple[str, list[str]]]


def filter_names(names: list[str], keywords: list[str] | None, mode: str = "enhanced") -> FilteredNames:
    """Split names into those kept and those excluded (with matched keywords)."""
    kept: list[str] = []
    excluded: list[tuple[str, list[str]]] = []
    for name in names:
        result = check_exclusion(name, keywords, mode)
        if result.is_excluded:
            excluded.append((name, result.matched_keywords))
        else:
            kept.append(name)
    log.debug("names_filtered", kept=len(kept), excluded=len(excluded))
    return FilteredNames(kept=kept, excluded=excluded)
