"""Tests for batch deduplication."""

from payee.dedup import Deduplicator, LinearSimilarityIndex


def test_exact_duplicates_reference_first_occurrence():
    result = Deduplicator().deduplicate(["Acme Inc", "Jane Smith", "ACME, Inc.", "acme inc"])
    assert [q.original_index for q in result.work_queue] == [0, 1]
    assert [(d.index, d.source_index, d.kind) for d in result.duplicates] == [(2, 0, "exact"), (3, 0, "exact")]


def test_fuzzy_duplicate():
    result = Deduplicator().deduplicate(["Acme Inc", "Acme Incc"])
    assert len(result.work_queue) == 1
    dup = result.duplicates[0]
    assert dup.kind == "fuzzy"
    assert dup.source_index == 0
    assert dup.similarity >= 90


def test_fuzzy_disabled():
    result = Deduplicator(use_fuzzy_matching=False).deduplicate(["Acme Inc", "Acme Incc"])
    assert len(result.work_queue) == 2
    assert result.duplicates == []


def test_invalid_names():
    result = Deduplicator().deduplicate(["", "  ", "Acme Inc", None])
    assert [q.original_index for q in result.invalid] == [0, 1, 3]
    assert [q.original_index for q in result.work_queue] == [2]


def test_rows_carried_through():
    rows = [{"id": 1}, {"id": 2}, {"id": 3}]
    result = Deduplicator().deduplicate(["Acme Inc", "Jane Smith", "Acme Inc"], rows)
    assert result.work_queue[1].original_data == {"id": 2}
    assert result.duplicates[0].original_data == {"id": 3}


def test_every_index_accounted_for():
    names = ["Acme Inc", "", "Acme Inc", "Acme Incc", "Jane Smith", "  "]
    result = Deduplicator().deduplicate(names)
    indices = (
        [q.original_index for q in result.work_queue]
        + [d.index for d in result.duplicates]
        + [q.original_index for q in result.invalid]
    )
    assert sorted(indices) == list(range(len(names)))


def test_empty_batch():
    result = Deduplicator().deduplicate([])
    assert result.work_queue == [] and result.duplicates == [] and result.invalid == []


def test_linear_index_returns_best_not_first():
    index = LinearSimilarityIndex()
    index.add("acme incorporated", 0)
    index.add("acme inc", 1)
    match = index.best_match("acme inc.", 80)
    assert match is not None
    assert match[0] == 1


def test_custom_index_factory():
    class NeverMatches:
        def add(self, key, index):
            pass

        def best_match(self, key, threshold):
            return None

    result = Deduplicator(index_factory=NeverMatches).deduplicate(["Acme Inc", "Acme Incc"])
    assert len(result.work_queue) == 2
