"""Main entry point: single-name and batch classification."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from payee.ai import AIClassifier, LLMProvider
from payee.batch import BatchProcessor, ProgressCallback
from payee.cache import ClassificationCache
from payee.config import ClassifierConfig
from payee.escalation import EscalationPolicy
from payee.features import EntitySignalProvider
from payee.types import BatchResult, ClassificationResult

log = structlog.get_logger()


class PayeeClassifier:
    """Payee classifier wiring the tiers, cache, AI provider and batch processor."""

    def __init__(
        self,
        config: ClassifierConfig | None = None,
        llm_provider: LLMProvider | None = None,
        entity_provider: EntitySignalProvider | None = None,
        cache: ClassificationCache | None = None,
    ) -> None:
        self.config = config or ClassifierConfig()
        self.cache = cache if cache is not None else ClassificationCache(self.config.cache)
        if self.config.cache.path:
            self.cache.load()
        self.ai = AIClassifier(self.config.ai, llm_provider)
        self.policy = EscalationPolicy(
            config=self.config,
            cache=self.cache,
            ai=self.ai,
            entity_provider=entity_provider,
        )
        self.batch = BatchProcessor(self.policy, self.config, self.cache)
        log.debug(
            "classifier_ready",
            ai=self.ai.available,
            offline=self.config.offline_mode,
            exclusions=len(self.config.exclusion.keywords),
        )

    async def classify(self, name: str) -> ClassificationResult:
        return await self.policy.classify(name)

    async def process_batch(
        self,
        names: list[str],
        rows: list[Any] | None = None,
        progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> BatchResult:
        result = await self.batch.process_batch(names, rows, progress=progress, cancel=cancel)
        if self.config.cache.path:
            self.cache.save()
        return result

    def classify_sync(self, name: str) -> ClassificationResult:
        return asyncio.run(self.classify(name))

    def process_batch_sync(self, names: list[str], rows: list[Any] | None = None) -> BatchResult:
        return asyncio.run(self.process_batch(names, rows))


def classify(name: str, config: ClassifierConfig | None = None) -> ClassificationResult:
    """Classify one name with a fresh, provider-less classifier."""
    return PayeeClassifier(config).classify_sync(name)


def process_batch(
    names: list[str],
    config: ClassifierConfig | None = None,
    rows: list[Any] | None = None,
) -> BatchResult:
    """Classify a list of names; result i always corresponds to name i."""
    return PayeeClassifier(config).process_batch_sync(names, rows)

