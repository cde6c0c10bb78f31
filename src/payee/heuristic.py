"""Structural heuristic scorer used when the rule-based tier is unsure."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from payee.normalize import normalize
from payee.types import Classification

BUSINESS_INDICATORS = frozenset({
    "LLC", "INC", "CORP", "LTD", "CO", "COMPANY", "CORPORATION", "ENTERPRISES",
    "GROUP", "HOLDINGS", "PARTNERS", "ASSOCIATES", "SERVICES", "SOLUTIONS",
    "AGENCY", "STUDIO", "CONSULTING", "MANAGEMENT", "SYSTEMS", "TECHNOLOGIES",
    "GRAPHICS", "POOLS", "TRAVEL", "EVENTS", "PLANNERS", "MAINTENANCE",
    "DISTRIBUTORS", "BAKERY", "CREATIVE", "MECHANICAL", "PRO", "HVAC",
    "RESOURCING", "GAS", "CRUISE", "DESIGNS", "ENTERTAINMENT", "AIR",
    "ADVANCED", "AV", "EXPERT",
})

INDIVIDUAL_INDICATORS = frozenset({
    "DR", "MR", "MRS", "MS", "JR", "SR", "III", "IV", "ESQ", "MD", "PHD",
    "PROF", "REV", "PASTOR", "RABBI",
})

HIGH = 95

_POSSESSIVE = re.compile(r"'\s*s\b", re.IGNORECASE)


@dataclass
class HeuristicScore:
    classification: Classification
    confidence: int
    business_score: int
    individual_score: int
    indicators: list[str] = field(default_factory=list)

    @property
    def reasoning(self) -> str:
        key = ", ".join(self.indicators[:3]) or "none"
        return (
            f"Structural heuristic (Business: {self.business_score}, "
            f"Individual: {self.individual_score}). Key indicators: {key}"
        )


def structural_score(raw: str) -> HeuristicScore:
    """Score a raw name on indicator tokens and surface structure."""
    tokens = normalize(raw).tokens
    words = raw.split()
    indicators: list[str] = []
    business = 0
    individual = 0

    # 1. Indicator tokens
    for token in tokens:
        if token in BUSINESS_INDICATORS:
            business += 25
            indicators.append(f"Business indicator: {token}")
        elif token in INDIVIDUAL_INDICATORS:
            individual += 30
            indicators.append(f"Individual indicator: {token}")

    # 2. Business structure
    word_count = len(words)
    has_numbers = any(c.isdigit() for c in raw)
    if word_count > 3:
        business += 15
        indicators.append("Multi-word business pattern")
    if has_numbers:
        business += 10
        indicators.append("Contains numbers")
    if "&" in raw:
        business += 20
        indicators.append("Contains ampersand")
    if len(raw) > 5 and raw == raw.upper() and any(c.isalpha() for c in raw):
        business += 15
        indicators.append("All caps formatting")
    if len(raw) > 30:
        business += 10
        indicators.append("Long name pattern")

    # 3. Individual structure
    if word_count == 2 and not has_numbers:
        individual += 20
        indicators.append("Two-word personal name pattern")
    if word_count == 3 and not has_numbers:
        individual += 15
        indicators.append("Three-word personal name pattern")
    if _POSSESSIVE.search(raw):
        individual += 25
        indicators.append("Possessive form (individual proprietor)")
    if "," in raw and word_count == 2:
        individual += 20
        indicators.append("Last, First name format")

    # 4. Confidence from the dominant score and its margin
    dominant = max(business, individual)
    margin = dominant - min(business, individual)
    confidence = min(HIGH, max(50, dominant + margin / 2))
    confidence = min(HIGH, confidence + 2 * len(indicators))
    if dominant > 50 and len(indicators) >= 3:
        confidence = min(HIGH, confidence + 10)

    return HeuristicScore(
        classification="Business" if business > individual else "Individual",
        confidence=round(confidence),
        business_score=business,
        individual_score=individual,
        indicators=indicators,
    )
