"""Tests for the bundled word lists."""

from payee.lexicon import (
    BUSINESS_KEYWORD_PHRASES,
    contains_keyword_phrase,
    default_exclusion_keywords,
    get_available_lists,
    is_business_keyword,
    is_given_name,
    is_legal_suffix,
    load_word_list,
)


def test_available_lists():
    lists = get_available_lists()
    for name in ["business_keywords", "given_names", "honorifics", "legal_suffixes"]:
        assert name in lists


def test_lists_are_upper_case():
    assert "LLC" in load_word_list("legal_suffixes")
    assert all(w == w.upper() for w in load_word_list("honorifics"))


def test_lookups():
    assert is_legal_suffix("LLC")
    assert is_business_keyword("PLUMBING")
    assert is_given_name("JANE")
    assert not is_given_name("ZORBLAX")


def test_keyword_phrases_match_whole_words():
    phrase = next(iter(BUSINESS_KEYWORD_PHRASES))
    assert contains_keyword_phrase(f"ACME {phrase}")
    assert not contains_keyword_phrase(f"ACME{phrase}X")


def test_default_exclusions_lower_case_sorted():
    keywords = default_exclusion_keywords()
    assert "test" in keywords
    assert keywords == sorted(keywords)
    assert all(k == k.lower() for k in keywords)


def test_missing_list_is_empty():
    assert load_word_list("no_such_list") == set()
