"""Process-wide store of prior classifications, used by the fuzzy-match tier."""

from __future__ import annotations

import json
import time
from collections import OrderedDict
from dataclasses import asdict
from pathlib import Path
from typing import Callable

import structlog

from payee.config import CacheConfig
from payee.normalize import comparison_key
from payee.similarity import combined_similarity
from payee.types import ClassificationResult, ExclusionResult, SimilarityScores

log = structlog.get_logger()


class ClassificationCache:
    """TTL-bounded store keyed by comparison key, evicting oldest first."""

    def __init__(self, config: CacheConfig | None = None, clock: Callable[[], float] = time.time) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        # key -> (original name, result, stored_at)
        self._entries: OrderedDict[str, tuple[str, ClassificationResult, float]] = OrderedDict()

    def __len__(self) -> int:
        self._expire()
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def get(self, name: str) -> ClassificationResult | None:
        key = comparison_key(name)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry[2]):
            del self._entries[key]
            return None
        return entry[1]

    def put(self, name: str, result: ClassificationResult) -> None:
        key = comparison_key(name)
        if not key:
            return
        self._entries.pop(key, None)
        self._entries[key] = (name, result, self._clock())
        while len(self._entries) > self.config.max_size:
            evicted, _ = self._entries.popitem(last=False)
            log.debug("cache_evicted", key=evicted)

    def clear(self) -> None:
        self._entries.clear()

    def best_match(self, name: str, threshold: float) -> tuple[str, ClassificationResult, SimilarityScores] | None:
        """Most similar cached name with combined similarity >= threshold."""
        key = comparison_key(name)
        if not key:
            return None
        best: tuple[str, ClassificationResult, SimilarityScores] | None = None
        for cached_key, (cached_name, result, stored_at) in list(self._entries.items()):
            if self._is_expired(stored_at):
                continue
            scores = combined_similarity(key, cached_key)
            if scores.combined >= threshold and (best is None or scores.combined > best[2].combined):
                best = (cached_name, result, scores)
        return best

    def _is_expired(self, stored_at: float) -> bool:
        return self._clock() - stored_at > self.config.ttl

    def _expire(self) -> None:
        expired = [k for k, (_, _, stored_at) in self._entries.items() if self._is_expired(stored_at)]
        for key in expired:
            del self._entries[key]

    def save(self, path: str | Path | None = None) -> None:
        """Persist live entries as JSON."""
        if not (path or self.config.path):
            raise ValueError("No cache path configured")
        target = Path(path or self.config.path)
        self._expire()
        payload = [
            {"name": name, "stored_at": stored_at, "result": asdict(result)}
            for name, result, stored_at in self._entries.values()
        ]
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(payload, indent=2))
        log.info("cache_saved", path=str(target), entries=len(payload))

    def load(self, path: str | Path | None = None) -> int:
        """Load entries saved by :meth:`save`, skipping expired ones."""
        if not (path or self.config.path):
            return 0
        source = Path(path or self.config.path)
        if not source.exists():
            return 0
        with open(source) as f:
            payload = json.load(f)
        loaded = 0
        for entry in payload:
            stored_at = float(entry.get("stored_at", 0.0))
            if self._is_expired(stored_at):
                continue
            key = comparison_key(entry["name"])
            if not key:
                continue
            self._entries[key] = (entry["name"], result_from_dict(entry["result"]), stored_at)
            loaded += 1
        while len(self._entries) > self.config.max_size:
            self._entries.popitem(last=False)
        log.info("cache_loaded", path=str(source), entries=loaded)
        return loaded


def result_from_dict(data: dict) -> ClassificationResult:
    """Rebuild a ClassificationResult from its ``asdict`` form."""
    scores = data.get("similarity_scores")
    exclusion = data.get("exclusion")
    return ClassificationResult(
        classification=data["classification"],
        confidence=int(data["confidence"]),
        reasoning=data.get("reasoning", ""),
        processing_tier=data["processing_tier"],
        matching_rules=list(data.get("matching_rules") or []),
        similarity_scores=SimilarityScores(**scores) if scores else None,
        exclusion=ExclusionResult(**exclusion) if exclusion else None,
        metadata=dict(data.get("metadata") or {}),
    )
