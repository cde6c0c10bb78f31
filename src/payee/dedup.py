"""Batch-scoped exact and fuzzy deduplication of payee names."""

from __future__ import annotations

from typing import Any, Callable, Protocol

import structlog

from payee.normalize import comparison_key
from payee.similarity import combined_similarity
from payee.types import DedupResult, DuplicateRef, QueueItem

log = structlog.get_logger()


class SimilarityIndex(Protocol):
    """Protocol for near-duplicate lookup over accepted comparison keys."""

    def add(self, key: str, index: int) -> None: ...

    def best_match(self, key: str, threshold: float) -> tuple[int, float] | None: ...


class LinearSimilarityIndex:
    """Compares against every accepted key; O(n * unique)."""

    def __init__(self) -> None:
        self._entries: list[tuple[str, int]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, key: str, index: int) -> None:
        self._entries.append((key, index))

    def best_match(self, key: str, threshold: float) -> tuple[int, float] | None:
        best: tuple[int, float] | None = None
        for accepted, index in self._entries:
            similarity = combined_similarity(key, accepted).combined
            if similarity >= threshold and (best is None or similarity > best[1]):
                best = (index, similarity)
        return best


class Deduplicator:
    """Split a batch into unique work, duplicates and invalid rows."""

    def __init__(
        self,
        use_fuzzy_matching: bool = True,
        similarity_threshold: float = 90.0,
        index_factory: Callable[[], SimilarityIndex] | None = None,
    ) -> None:
        self.use_fuzzy_matching = use_fuzzy_matching
        self.similarity_threshold = similarity_threshold
        self.index_factory = index_factory or LinearSimilarityIndex

    def deduplicate(self, names: list[str], rows: list[Any] | None = None) -> DedupResult:
        result = DedupResult()
        first_seen: dict[str, int] = {}
        index = self.index_factory()

        for i, name in enumerate(names):
            row = rows[i] if rows is not None else None

            if not isinstance(name, str) or not name.strip():
                result.invalid.append(QueueItem(name=name if isinstance(name, str) else "", original_index=i, original_data=row))
                continue

            key = comparison_key(name)

            # 1. Exact duplicate of an accepted name
            if key in first_seen:
                result.duplicates.append(
                    DuplicateRef(index=i, name=name, source_index=first_seen[key], kind="exact", original_data=row)
                )
                continue

            # 2. Fuzzy duplicate
            if self.use_fuzzy_matching:
                match = index.best_match(key, self.similarity_threshold)
                if match is not None:
                    source_index, similarity = match
                    log.debug("fuzzy_duplicate", name=name, source_index=source_index, similarity=round(similarity, 1))
                    result.duplicates.append(
                        DuplicateRef(
                            index=i,
                            name=name,
                            source_index=source_index,
                            kind="fuzzy",
                            similarity=similarity,
                            original_data=row,
                        )
                    )
                    continue

            # 3. New unique name
            first_seen[key] = i
            index.add(key, i)
            result.work_queue.append(QueueItem(name=name, original_index=i, original_data=row))

        log.debug(
            "dedup_complete",
            total=len(names),
            unique=len(result.work_queue),
            duplicates=len(result.duplicates),
            invalid=len(result.invalid),
        )
        return result
