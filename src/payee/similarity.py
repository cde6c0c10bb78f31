"""String similarity metrics for near-duplicate detection.

Every metric is commutative and returns a percentage in [0, 100].
"""

from __future__ import annotations

import re

from rapidfuzz.distance import Jaro, Levenshtein

from payee.types import SimilarityScores

COMBINED_WEIGHTS = {
    "levenshtein": 0.25,
    "jaro_winkler": 0.35,
    "dice": 0.25,
    "token_sort": 0.15,
}

_TOKEN_PUNCTUATION = re.compile(r"[^\w\s]")


def levenshtein(a: str, b: str) -> float:
    """Edit-distance similarity: (maxLen - distance) / maxLen * 100."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 100.0
    distance = Levenshtein.distance(a, b)
    return (max_len - distance) / max_len * 100.0


def jaro_winkler(a: str, b: str, prefix_weight: float = 0.1) -> float:
    """Jaro-Winkler similarity with the prefix boost always applied."""
    if a == b:
        return 100.0
    if not a or not b:
        return 0.0
    # Greedy Jaro matching depends on argument order; fix it
    if b < a:
        a, b = b, a
    jaro = Jaro.similarity(a, b)
    prefix = 0
    for ca, cb in zip(a[:4], b[:4]):
        if ca != cb:
            break
        prefix += 1
    return (jaro + prefix_weight * prefix * (1.0 - jaro)) * 100.0


def _bigrams(s: str) -> set[str]:
    return {s[i : i + 2] for i in range(len(s) - 1)}


def dice(a: str, b: str) -> float:
    """Dice coefficient over character bigram sets."""
    if a == b:
        return 100.0
    if len(a) < 2 or len(b) < 2:
        return 0.0
    bigrams_a = _bigrams(a)
    bigrams_b = _bigrams(b)
    return 2 * len(bigrams_a & bigrams_b) / (len(bigrams_a) + len(bigrams_b)) * 100.0


def _sorted_tokens(s: str) -> str:
    tokens = _TOKEN_PUNCTUATION.sub(" ", s.lower()).split()
    return " ".join(sorted(tokens))


def token_sort(a: str, b: str) -> float:
    """Order-insensitive similarity: Levenshtein over alphabetically sorted tokens."""
    return levenshtein(_sorted_tokens(a), _sorted_tokens(b))


def combined_similarity(a: str, b: str) -> SimilarityScores:
    """Run all four metrics and blend them into a single score."""
    lev = levenshtein(a, b)
    jw = jaro_winkler(a, b)
    dc = dice(a, b)
    ts = token_sort(a, b)
    combined = (
        COMBINED_WEIGHTS["levenshtein"] * lev
        + COMBINED_WEIGHTS["jaro_winkler"] * jw
        + COMBINED_WEIGHTS["dice"] * dc
        + COMBINED_WEIGHTS["token_sort"] * ts
    )
    return SimilarityScores(
        levenshtein=lev,
        jaro_winkler=jw,
        dice=dc,
        token_sort=ts,
        combined=min(100.0, max(0.0, combined)),
    )


def find_best_matches(
    target: str, candidates: list[str], threshold: float = 70.0
) -> list[tuple[str, SimilarityScores]]:
    """Candidates at or above ``threshold``, best combined score first."""
    matches = [(c, combined_similarity(target, c)) for c in candidates]
    matches = [(c, s) for c, s in matches if s.combined >= threshold]
    matches.sort(key=lambda m: m[1].combined, reverse=True)
    return matches
