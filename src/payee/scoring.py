"""Deterministic scoring of feature flags into a classification."""

from __future__ import annotations

from payee.config import ConfidenceConfig, DecisionThresholds, ScoringWeights
from payee.types import Classification, EntitySignals, FeatureFlags


def score(
    features: FeatureFlags,
    signals: EntitySignals,
    weights: ScoringWeights | None = None,
    decision: DecisionThresholds | None = None,
) -> tuple[float, Classification]:
    """Weighted sum of business (+) and individual (-) indicators.

    Returns (raw_score, classification) with raw_score clamped to [-1, 1].
    """
    w = weights or ScoringWeights()
    d = decision or DecisionThresholds()

    # 1. Business indicators
    raw = 0.0
    if features.has_business_suffix:
        raw += w.business_suffix
    if features.has_business_keyword:
        raw += w.business_keyword
    if features.has_ampersand_or_and:
        raw += w.ampersand_or_and
    raw += w.org_probability * features.org_probability
    if features.looks_like_tax_id:
        raw += w.tax_id
    if features.has_government_pattern:
        raw += w.government_pattern
    if features.has_apartment_pattern:
        raw += w.apartment_pattern
    if features.starts_with_article:
        raw += w.starts_with_article

    # 2. Individual indicators
    if features.has_honorific:
        raw -= w.honorific
    if features.has_first_name_match:
        raw -= w.first_name_match
    raw -= w.person_probability * features.person_probability
    if features.has_generation_suffix:
        raw -= w.generation_suffix
    if features.token_count == 2:
        raw -= w.two_tokens
    if features.has_multiple_last_names:
        raw -= w.multiple_last_names

    raw = max(-1.0, min(1.0, raw))

    # 3. Decision
    if raw >= d.band:
        return raw, "Business"
    if raw <= -d.band:
        return raw, "Individual"
    return raw, _resolve_ambiguous(features, signals, d)


def _resolve_ambiguous(
    features: FeatureFlags, signals: EntitySignals, d: DecisionThresholds
) -> Classification:
    """Fallback for scores inside the decision band."""
    org_conf = features.org_probability + (d.label_bonus if signals.label == "Company" else 0.0)
    person_conf = features.person_probability + (d.label_bonus if signals.label == "Person" else 0.0)

    businessy = features.has_business_keyword or features.has_business_suffix
    if abs(org_conf - person_conf) < d.close_margin:
        if features.has_first_name_match and features.token_count <= 3 and not businessy:
            return "Individual"
        if businessy or features.has_government_pattern:
            return "Business"

    # Exact ties go to Individual
    return "Business" if org_conf > person_conf else "Individual"


def strong_signal_count(features: FeatureFlags, signals: EntitySignals, entity_threshold: float = 0.7) -> int:
    """Count fired signals from the strong categories."""
    return sum(
        [
            features.has_business_suffix,
            features.has_business_keyword,
            features.has_first_name_match,
            features.has_honorific,
            features.org_probability > entity_threshold,
            features.person_probability > entity_threshold,
            features.has_government_pattern,
            features.has_generation_suffix,
        ]
    )


def calibrate(
    raw_score: float,
    features: FeatureFlags,
    signals: EntitySignals,
    config: ConfidenceConfig | None = None,
) -> int:
    """Map fired signals and score magnitude to a confidence in [0, 100]."""
    cfg = config or ConfidenceConfig()
    inc = cfg.increments

    confidence = cfg.floor
    if features.has_business_suffix:
        confidence += inc.business_suffix
    if features.has_business_keyword:
        confidence += inc.business_keyword
    if features.has_first_name_match:
        confidence += inc.first_name_match
    if features.has_honorific:
        confidence += inc.honorific
    if features.org_probability > cfg.entity_threshold:
        confidence += inc.org_entity
    if features.person_probability > cfg.entity_threshold:
        confidence += inc.person_entity
    if features.has_government_pattern:
        confidence += inc.government_pattern
    if features.has_generation_suffix:
        confidence += inc.generation_suffix
    if features.has_apartment_pattern:
        confidence += inc.apartment_pattern
    if features.has_ampersand_or_and:
        confidence += inc.ampersand_or_and
    if features.looks_like_tax_id:
        confidence += inc.tax_id
    if features.starts_with_article:
        confidence += inc.starts_with_article
    if features.has_multiple_last_names:
        confidence += inc.multiple_last_names

    confidence += cfg.magnitude_factor * abs(max(-1.0, min(1.0, raw_score)))

    strong = strong_signal_count(features, signals, cfg.entity_threshold)
    if strong >= 2:
        confidence += cfg.two_signal_bonus
    if strong >= 3:
        confidence += cfg.three_signal_bonus

    confidence = max(cfg.floor, min(cfg.ceiling, confidence))
    return max(0, min(100, round(confidence * 100)))
