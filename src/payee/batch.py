"""Bounded-concurrency batch classification with order-preserving output."""

from __future__ import annotations

import asyncio
import copy
import inspect
import time
from typing import Any, Awaitable, Callable

import structlog

from payee.cache import ClassificationCache
from payee.config import ClassifierConfig, TierThresholds
from payee.dedup import Deduplicator
from payee.errors import AlignmentError, BatchCancelledError
from payee.escalation import EscalationPolicy, Resolution, invalid_result
from payee.normalize import normalize
from payee.types import (
    BatchItem,
    BatchResult,
    BatchStats,
    ClassificationResult,
    DedupResult,
    QueueItem,
)

log = structlog.get_logger()

ProgressCallback = Callable[[int, int, float, dict[str, Any]], Any]

EMERGENCY_CONFIDENCE = 51


def emergency_fallback(name: str) -> ClassificationResult:
    """Last-resort answer when an item failed twice."""
    tokens = normalize(name).tokens
    classification = "Individual" if len(tokens) <= 2 else "Business"
    return ClassificationResult(
        classification=classification,
        confidence=EMERGENCY_CONFIDENCE,
        reasoning=f"Emergency fallback after repeated failures ({len(tokens)} tokens)",
        processing_tier="Heuristic",
        metadata={"emergency_fallback": True},
    )


class BatchProcessor:
    """Classify many names with dedup, bounded concurrency and retries.

    Output always has one item per input name, in input order.
    """

    def __init__(
        self,
        policy: EscalationPolicy,
        config: ClassifierConfig | None = None,
        cache: ClassificationCache | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.policy = policy
        self.config = config or policy.config
        self.cache = cache if cache is not None else policy.cache
        self._sleep = sleep

    async def process_batch(
        self,
        names: list[str],
        rows: list[Any] | None = None,
        progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> BatchResult:
        start = time.perf_counter()
        if rows is not None and len(rows) != len(names):
            raise ValueError(f"rows has {len(rows)} entries but names has {len(names)}")

        total = len(names)
        ai_calls_before = self._ai_calls()
        log.info("batch_start", total=total)

        # 1. Deduplicate
        dedup = Deduplicator(
            use_fuzzy_matching=self.config.use_fuzzy_matching,
            similarity_threshold=self.config.similarity_threshold,
        ).deduplicate(names, rows)

        slots: list[BatchItem | None] = [None] * total
        for item in dedup.invalid:
            slots[item.original_index] = BatchItem(
                row_index=item.original_index,
                payee_name=item.name,
                result=invalid_result(),
                original_data=item.original_data,
            )

        # 2. Chunks under the semaphore
        size = max(1, self.config.max_batch_size)
        queue = dedup.work_queue
        chunks = [queue[i : i + size] for i in range(0, len(queue), size)]
        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrency))
        processed = 0
        cancelled = False

        async def run_chunk(number: int, chunk: list[QueueItem]) -> list[QueueItem]:
            nonlocal processed, cancelled
            async with semaphore:
                if cancel is not None and cancel.is_set():
                    cancelled = True
                    return []
                failed = await self._classify_chunk(chunk, slots)
                processed += len(chunk)
                log.debug("chunk_done", chunk=number, chunks=len(chunks), failed=len(failed))
                await self._report(
                    progress,
                    processed,
                    len(queue),
                    {"phase": "classifying", "chunk": number, "chunks": len(chunks)},
                )
                return failed

        failed_lists = await asyncio.gather(*(run_chunk(i, c) for i, c in enumerate(chunks, 1)))
        if cancelled:
            log.warning("batch_cancelled", processed=processed, total=len(queue))
            raise BatchCancelledError(f"Batch cancelled after {processed} of {len(queue)} names")

        # 3. Retries through the offline policy
        retry_queue = [item for failed in failed_lists for item in failed]
        await self._retry(retry_queue, slots)

        # 4. Duplicates reuse their source's result
        self._materialize_duplicates(dedup, slots)

        # 5. Alignment
        results = self._align(names, slots)

        # 6. Cache and statistics
        self._update_cache(results)
        elapsed = time.perf_counter() - start
        stats = compute_stats(
            results, dedup, len(retry_queue), self._ai_calls() - ai_calls_before, elapsed, self.config.tiers
        )
        log.info(
            "batch_complete",
            total=stats.total,
            unique=stats.unique,
            business=stats.business_count,
            individual=stats.individual_count,
            excluded=stats.excluded_count,
            average_confidence=round(stats.average_confidence, 1),
            retries=stats.retry_count,
            ai_calls=stats.ai_calls,
            seconds=round(elapsed, 3),
        )
        await self._report(
            progress,
            total,
            total,
            {"phase": "complete", "chunk": len(chunks), "chunks": len(chunks)},
        )
        return BatchResult(results=results, stats=stats, processing_time=elapsed)

    async def _classify_chunk(self, chunk: list[QueueItem], slots: list[BatchItem | None]) -> list[QueueItem]:
        """Resolve a chunk locally, then one shared AI call. Returns failed items."""
        failed: list[QueueItem] = []
        resolved: list[tuple[QueueItem, Resolution]] = []
        for item in chunk:
            try:
                resolved.append((item, self.policy.resolve_local(item.name)))
            except Exception as e:
                log.warning("item_failed", name=item.name, index=item.original_index, error=str(e))
                failed.append(item)

        try:
            results = await self.policy.escalate([r for _, r in resolved])
        except Exception as e:
            log.warning("chunk_escalation_failed", size=len(resolved), error=str(e))
            return failed + [item for item, _ in resolved]

        for (item, _), result in zip(resolved, results):
            slots[item.original_index] = BatchItem(
                row_index=item.original_index,
                payee_name=item.name,
                result=result,
                original_data=item.original_data,
            )
        return failed

    async def _retry(self, retry_queue: list[QueueItem], slots: list[BatchItem | None]) -> None:
        if not retry_queue:
            return
        offline = self.policy.offline()
        log.info("retry_start", items=len(retry_queue))

        # Retries start together, staggered by position
        async def retry_one(position: int, item: QueueItem) -> None:
            await self._sleep(self.config.batch.retry_delay * position)
            try:
                result = await offline.classify(item.name)
            except Exception as e:
                log.warning("retry_failed", name=item.name, index=item.original_index, error=str(e))
                result = emergency_fallback(item.name)
            slots[item.original_index] = BatchItem(
                row_index=item.original_index,
                payee_name=item.name,
                result=result,
                original_data=item.original_data,
                retried=True,
            )

        await asyncio.gather(*(retry_one(p, item) for p, item in enumerate(retry_queue)))

    def _materialize_duplicates(self, dedup: DedupResult, slots: list[BatchItem | None]) -> None:
        for dup in dedup.duplicates:
            source = slots[dup.source_index]
            if source is None:
                raise AlignmentError(f"Duplicate at row {dup.index} points to unfilled row {dup.source_index}")
            result = copy.deepcopy(source.result)
            if dup.kind == "fuzzy":
                result.reasoning = f"{result.reasoning} (Fuzzy match with {dup.similarity:.1f}% similarity)"
                result.metadata["duplicate_similarity"] = round(dup.similarity, 1)
            slots[dup.index] = BatchItem(
                row_index=dup.index,
                payee_name=dup.name,
                result=result,
                original_data=dup.original_data,
                duplicate_of=dup.source_index,
                duplicate_kind=dup.kind,
                retried=source.retried,
            )

    def _align(self, names: list[str], slots: list[BatchItem | None]) -> list[BatchItem]:
        missing = [i for i, slot in enumerate(slots) if slot is None]
        if missing:
            raise AlignmentError(f"No result for rows {missing[:10]}")
        results = sorted((s for s in slots if s is not None), key=lambda s: s.row_index)
        if len(results) != len(names):
            raise AlignmentError(f"Expected {len(names)} results, got {len(results)}")
        for i, item in enumerate(results):
            if item.row_index != i:
                raise AlignmentError(f"Result at position {i} has row_index {item.row_index}")
            expected = names[i] if isinstance(names[i], str) else ""
            if item.payee_name != expected:
                raise AlignmentError(f"Row {i} name mismatch: {item.payee_name!r} != {expected!r}")
        return results

    def _update_cache(self, results: list[BatchItem]) -> None:
        if self.cache is None:
            return
        for item in results:
            result = item.result
            if item.duplicate_of is not None or result.metadata.get("invalid"):
                continue
            if result.processing_tier == "Excluded" or result.metadata.get("degraded"):
                continue
            if result.metadata.get("emergency_fallback"):
                continue
            self.cache.put(item.payee_name, result)

    def _ai_calls(self) -> int:
        ai = self.policy.ai
        return ai.calls_made if ai is not None else 0

    async def _report(self, progress: ProgressCallback | None, done: int, total: int, meta: dict[str, Any]) -> None:
        if progress is None:
            return
        percentage = 100.0 if total == 0 else done / total * 100.0
        outcome = progress(done, total, percentage, meta)
        if inspect.isawaitable(outcome):
            await outcome


def compute_stats(
    results: list[BatchItem],
    dedup: DedupResult,
    retry_count: int,
    ai_calls: int,
    processing_time: float,
    tiers: TierThresholds | None = None,
) -> BatchStats:
    tiers = tiers or TierThresholds()
    stats = BatchStats(
        total=len(results),
        unique=len(dedup.work_queue),
        invalid_count=len(dedup.invalid),
        exact_duplicates=sum(1 for d in dedup.duplicates if d.kind == "exact"),
        fuzzy_duplicates=sum(1 for d in dedup.duplicates if d.kind == "fuzzy"),
        deduplication_savings=len(dedup.duplicates),
        retry_count=retry_count,
        ai_calls=ai_calls,
        processing_time=processing_time,
    )
    for item in results:
        r = item.result
        if r.classification == "Business":
            stats.business_count += 1
        else:
            stats.individual_count += 1
        if r.processing_tier == "Excluded":
            stats.excluded_count += 1
        if r.confidence >= tiers.medium:
            stats.high_confidence_count += 1
        elif r.confidence >= tiers.review:
            stats.medium_confidence_count += 1
        else:
            stats.low_confidence_count += 1
        stats.tier_counts[r.processing_tier] = stats.tier_counts.get(r.processing_tier, 0) + 1
    if results:
        stats.average_confidence = sum(i.result.confidence for i in results) / len(results)
    return stats
