"""Tests for the keyword exclusion filter."""

import pytest

from payee.exclusion import NO_KEYWORDS, NO_MATCH, check_exclusion, filter_names, validate_keywords
from payee.lexicon import default_exclusion_keywords


def test_no_keywords_never_excludes():
    result = check_exclusion("Test Vendor LLC", [])
    assert not result.is_excluded
    assert result.reasoning == NO_KEYWORDS
    assert check_exclusion("Test Vendor LLC", None).reasoning == NO_KEYWORDS


def test_enhanced_exact_match():
    result = check_exclusion("Test Vendor LLC", ["test"])
    assert result.is_excluded
    assert result.matched_keywords == ["test"]
    assert result.confidence == 100
    assert "Exact matches: test" in result.reasoning


def test_enhanced_diacritics_and_case():
    result = check_exclusion("Dümmy Payee", ["DUMMY"])
    assert result.is_excluded
    assert result.confidence == 100


def test_enhanced_fuzzy_token_match():
    result = check_exclusion("Placeholdr", ["placeholder"])
    assert result.is_excluded
    assert 90 <= result.confidence < 100
    assert "Fuzzy matches" in result.reasoning


def test_enhanced_no_match():
    result = check_exclusion("Acme Inc", ["test", "sample"])
    assert not result.is_excluded
    assert result.confidence == 0
    assert result.reasoning == NO_MATCH


def test_simple_mode_stops_at_first_match():
    result = check_exclusion("Sample Test Co", ["test", "sample"], mode="simple")
    assert result.is_excluded
    assert result.matched_keywords == ["test"]
    assert result.confidence == 100


def test_simple_mode_is_substring():
    assert check_exclusion("Testing Co", ["test"], mode="simple").is_excluded


def test_unknown_mode():
    with pytest.raises(ValueError):
        check_exclusion("Acme", ["test"], mode="regex")


def test_validate_keywords():
    assert validate_keywords(["  Test ", "", None, "test", "SAMPLE"]) == ["test", "sample"]


def test_filter_names():
    filtered = filter_names(["Acme Inc", "Test Account", "Jane Smith"], ["test"])
    assert filtered.kept == ["Acme Inc", "Jane Smith"]
    assert filtered.excluded == [("Test Account", ["test"])]


def test_default_keywords_loaded():
    keywords = default_exclusion_keywords()
    assert "test" in keywords
    assert keywords == sorted(keywords)
