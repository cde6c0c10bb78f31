"""Human-readable explanations of fired signals."""

from __future__ import annotations

from payee.types import EntitySignals, FeatureFlags

ENTITY_THRESHOLD = 0.7

# (machine name, description), highest priority first
SIGNAL_PRIORITY: list[tuple[str, str]] = [
    ("business_suffix", "business suffix"),
    ("business_keyword", "business keyword"),
    ("first_name_match", "first-name match"),
    ("honorific", "honorific title"),
    ("government_pattern", "government pattern"),
    ("apartment_pattern", "apartment/property pattern"),
    ("person_entity", "PERSON entity signal"),
    ("org_entity", "ORG entity signal"),
    ("generation_suffix", "generation suffix"),
    ("ampersand_or_and", "ampersand/AND"),
    ("tax_id", "tax ID pattern"),
]

NO_SIGNALS = "No strong indicators; decided by weighted feature balance"


def _fired(features: FeatureFlags) -> dict[str, bool]:
    return {
        "business_suffix": features.has_business_suffix,
        "business_keyword": features.has_business_keyword,
        "first_name_match": features.has_first_name_match,
        "honorific": features.has_honorific,
        "government_pattern": features.has_government_pattern,
        "apartment_pattern": features.has_apartment_pattern,
        "person_entity": features.person_probability > ENTITY_THRESHOLD,
        "org_entity": features.org_probability > ENTITY_THRESHOLD,
        "generation_suffix": features.has_generation_suffix,
        "ampersand_or_and": features.has_ampersand_or_and,
        "tax_id": features.looks_like_tax_id,
    }


def fired_signals(features: FeatureFlags, signals: EntitySignals | None = None) -> list[str]:
    """Machine names of fired signals, in priority order."""
    fired = _fired(features)
    return [key for key, _ in SIGNAL_PRIORITY if fired[key]]


def explain(features: FeatureFlags, signals: EntitySignals | None = None, max_signals: int = 4) -> str:
    """Short explanation naming the top fired signals."""
    fired = _fired(features)
    descriptions = [desc for key, desc in SIGNAL_PRIORITY if fired[key]][:max_signals]
    if not descriptions:
        return NO_SIGNALS
    return "Signals: " + ", ".join(descriptions)
