"""Tests for the scoring engine and confidence calibration."""

import dataclasses

import pytest

from payee.config import RULESETS, ConfidenceConfig, DecisionThresholds, ScoringWeights
from payee.features import extract_features
from payee.scoring import calibrate, score
from payee.types import EntitySignals, FeatureFlags

NAMES = [
    "Apex Plumbing Services LLC",
    "Dr. John A. Smith III",
    "Acme Inc",
    "Jane Smith",
    "Zorblax Quintavious",
    "City of Springfield",
    "The Oakwood Apartments",
    "Smith & Jones",
]


def test_business_name():
    flags, signals = extract_features("Apex Plumbing Services LLC")
    raw, classification = score(flags, signals)
    assert classification == "Business"
    assert raw == pytest.approx(0.92)
    assert calibrate(raw, flags, signals) >= 85


def test_individual_name():
    flags, signals = extract_features("Dr. John A. Smith III")
    raw, classification = score(flags, signals)
    assert classification == "Individual"
    assert raw == -1.0


def test_acme_inc():
    flags, signals = extract_features("Acme Inc")
    raw, classification = score(flags, signals)
    assert classification == "Business"
    assert calibrate(raw, flags, signals) == 92


@pytest.mark.parametrize("name", NAMES)
def test_bounds(name):
    flags, signals = extract_features(name)
    raw, _ = score(flags, signals)
    assert -1.0 <= raw <= 1.0
    assert 0 <= calibrate(raw, flags, signals) <= 100


@pytest.mark.parametrize("name", NAMES)
def test_deterministic(name):
    first = score(*extract_features(name))
    second = score(*extract_features(name))
    assert first == second


def test_band_exact_tie_resolves_to_individual():
    flags = FeatureFlags(token_count=2)
    raw, classification = score(flags, EntitySignals())
    assert raw == pytest.approx(-0.10)
    assert classification == "Individual"


def test_band_close_race_with_first_name():
    flags = FeatureFlags(
        has_first_name_match=True,
        has_ampersand_or_and=True,
        org_probability=1.0,
        person_probability=0.95,
        token_count=3,
    )
    raw, classification = score(flags, EntitySignals(), decision=DecisionThresholds(band=0.5))
    assert abs(raw) < 0.5
    # org_conf beats person_conf, but the race is close and a first name is present
    assert classification == "Individual"


def test_band_close_race_with_keyword():
    flags = FeatureFlags(has_business_keyword=True, has_honorific=True, token_count=4, person_probability=0.5, org_probability=0.5)
    raw, classification = score(flags, EntitySignals(), decision=DecisionThresholds(band=0.5))
    assert abs(raw) < 0.5
    assert classification == "Business"


def test_band_label_bonus_decides():
    flags = FeatureFlags(token_count=3, org_probability=0.3, person_probability=0.3)
    _, classification = score(flags, EntitySignals(label="Company"), decision=DecisionThresholds(band=0.5))
    assert classification == "Business"


def test_custom_weights():
    flags, signals = extract_features("Acme Inc")
    raw, _ = score(flags, signals, ScoringWeights(business_suffix=0.0, org_probability=0.0))
    assert raw == pytest.approx(-0.10)


def test_basic_ruleset():
    weights, decision = RULESETS["basic"]
    flags, signals = extract_features("Jane Smith")
    _, classification = score(flags, signals, weights, decision)
    assert classification == "Individual"
    assert decision.band == 0.15


def test_confidence_floor_and_ceiling():
    cfg = ConfidenceConfig()
    assert calibrate(0.0, FeatureFlags(), EntitySignals(), cfg) == 70
    loaded = FeatureFlags(
        has_business_suffix=True,
        has_business_keyword=True,
        has_government_pattern=True,
        org_probability=0.9,
    )
    assert calibrate(1.0, loaded, EntitySignals(), cfg) == 99


BOOLEAN_SIGNALS = [
    "has_business_suffix",
    "has_honorific",
    "has_generation_suffix",
    "has_ampersand_or_and",
    "has_business_keyword",
    "has_first_name_match",
    "looks_like_tax_id",
    "has_government_pattern",
    "has_apartment_pattern",
    "starts_with_article",
    "has_multiple_last_names",
]


@pytest.mark.parametrize("name", NAMES)
@pytest.mark.parametrize("signal", BOOLEAN_SIGNALS)
def test_adding_a_signal_never_lowers_confidence(name, signal):
    flags, signals = extract_features(name)
    if getattr(flags, signal):
        pytest.skip("signal already fired")
    before = calibrate(score(flags, signals)[0], flags, signals)
    boosted = dataclasses.replace(flags, **{signal: True})
    after = calibrate(score(boosted, signals)[0], boosted, signals)
    assert after >= before
