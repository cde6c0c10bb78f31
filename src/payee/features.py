"""Feature extraction from normalized payee names."""

from __future__ import annotations

import re
from typing import Protocol

from payee.lexicon import (
    GENERATION_SUFFIXES,
    HONORIFICS,
    contains_keyword_phrase,
    is_business_keyword,
    is_given_name,
    is_legal_suffix,
)
from payee.normalize import normalize
from payee.types import EntitySignals, FeatureFlags, NormalizedName

TAX_ID_PATTERN = re.compile(r"\d{9}")
GOVERNMENT_PATTERN = re.compile(r"\b(CITY OF|COUNTY OF|STATE OF|DEPARTMENT OF|OFFICE OF|BUREAU OF)\b")
APARTMENT_PATTERN = re.compile(r"\b(APARTMENT|APARTMENTS|VILLAGE|VILLAS|TOWERS|CROSSINGS|COMMONS|MEADOWS)\b")
ARTICLE_PATTERN = re.compile(r"^(THE|A|AN)\s")
GOVERNMENT_PHRASES = ("CITY OF", "COUNTY OF", "STATE OF", "DEPARTMENT")


class EntitySignalProvider(Protocol):
    """Protocol for person-vs-organization recognizers."""

    def signals(self, name: NormalizedName) -> EntitySignals: ...


class HeuristicSignalProvider:
    """Lexicon-driven stand-in for a named-entity recognizer."""

    def signals(self, name: NormalizedName) -> EntitySignals:
        tokens = name.tokens
        if not tokens:
            return EntitySignals()

        has_suffix = any(is_legal_suffix(t) for t in tokens)
        has_keyword = any(is_business_keyword(t) for t in tokens) or contains_keyword_phrase(name.text)
        has_given = any(is_given_name(t) for t in tokens)
        person_shaped = 2 <= len(tokens) <= 4

        # Label pass (probablepeople-style)
        if has_suffix or has_keyword:
            label, label_confidence = "Company", 0.8
        elif person_shaped and has_given:
            label, label_confidence = "Person", 0.7
        else:
            label, label_confidence = "Unknown", 0.5

        # Probability pass (NER-style)
        org_probability = 0.0
        if has_suffix or has_keyword or any(p in name.text for p in GOVERNMENT_PHRASES):
            org_probability = 0.85

        person_probability = 0.0
        if person_shaped and has_given and not has_keyword:
            person_probability = 0.90
        if tokens[0] in HONORIFICS:
            person_probability = max(person_probability, 0.75)

        return EntitySignals(
            org_probability=org_probability,
            person_probability=person_probability,
            label=label,
            label_confidence=label_confidence,
        )


_DEFAULT_PROVIDER = HeuristicSignalProvider()


def extract_features(
    name: NormalizedName | str,
    provider: EntitySignalProvider | None = None,
) -> tuple[FeatureFlags, EntitySignals]:
    """Derive feature flags and entity signals for a name."""
    if isinstance(name, str):
        name = normalize(name)
    provider = provider or _DEFAULT_PROVIDER

    tokens = name.tokens
    if not tokens:
        return FeatureFlags(), EntitySignals()

    signals = provider.signals(name)
    text = name.text
    has_given = any(is_given_name(t) for t in tokens)

    flags = FeatureFlags(
        has_business_suffix=any(is_legal_suffix(t) for t in tokens),
        has_honorific=tokens[0] in HONORIFICS,
        has_generation_suffix=tokens[-1] in GENERATION_SUFFIXES,
        has_ampersand_or_and="AND" in tokens,
        has_business_keyword=any(is_business_keyword(t) for t in tokens) or contains_keyword_phrase(text),
        has_first_name_match=has_given,
        looks_like_tax_id=bool(TAX_ID_PATTERN.search(text.replace(" ", ""))),
        token_count=len(tokens),
        has_government_pattern=bool(GOVERNMENT_PATTERN.search(text)),
        has_apartment_pattern=bool(APARTMENT_PATTERN.search(text)),
        starts_with_article=bool(ARTICLE_PATTERN.match(text)),
        has_multiple_last_names=len(tokens) > 3 and has_given,
        org_probability=_clamp_probability(signals.org_probability),
        person_probability=_clamp_probability(signals.person_probability),
    )
    return flags, signals


def _clamp_probability(value: float) -> float:
    return max(0.0, min(1.0, float(value)))
