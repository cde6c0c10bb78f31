"""Tests for the structural heuristic scorer."""

from payee.heuristic import structural_score


def test_loaded_business_name():
    result = structural_score("ACME ROOFING & SIDING SERVICES LLC")
    assert result.classification == "Business"
    assert result.confidence == 95
    assert "Contains ampersand" in result.indicators
    assert "All caps formatting" in result.indicators


def test_last_first_format():
    result = structural_score("Smith, John")
    assert result.classification == "Individual"
    assert result.individual_score == 40
    assert result.business_score == 0
    assert result.confidence == 64
    assert "Last, First name format" in result.indicators


def test_possessive():
    result = structural_score("Bob's Garage")
    assert "Possessive form (individual proprietor)" in result.indicators


def test_indicator_tokens_are_whole_words():
    # "CO" inside "COSTA" is not a business indicator
    result = structural_score("Maria Costa")
    assert not any(i.startswith("Business indicator") for i in result.indicators)


def test_confidence_bounds():
    for name in ["x", "Jane Smith", "A B C D E F G H I J K L M N O P", "12345"]:
        result = structural_score(name)
        assert 50 <= result.confidence <= 95


def test_deterministic():
    assert structural_score("Kaspo Wunderlin") == structural_score("Kaspo Wunderlin")


def test_reasoning_lists_scores():
    result = structural_score("Smith, John")
    assert "Business: 0" in result.reasoning
    assert "Individual: 40" in result.reasoning
