"""Batched AI classification with caching, timeouts and retries."""

from __future__ import annotations

import asyncio
import hashlib
import json
import random
import re
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Literal, Protocol

import structlog
from pydantic import BaseModel, Field, ValidationError

from payee.config import AIConfig
from payee.errors import (
    AuthenticationError,
    ExternalServiceError,
    MalformedResponseError,
    RateLimitError,
    ServiceTimeoutError,
)
from payee.normalize import comparison_key

log = structlog.get_logger()

_FENCE = re.compile(r"```(?:json)?\s*")
_WRAPPER_KEYS = ("results", "payees", "classifications", "data")


class LLMProvider(Protocol):
    """Protocol for LLM providers."""

    async def query(self, prompt: str) -> str: ...


class AIClassification(BaseModel):
    """One classification returned by the AI service."""

    name: str = ""
    classification: Literal["Business", "Individual"]
    confidence: float = Field(ge=0, le=100)
    reasoning: str = "No reasoning provided"
    fallback: bool = False


def fallback_classification(name: str, reason: str) -> AIClassification:
    return AIClassification(
        name=name,
        classification="Individual",
        confidence=0,
        reasoning=reason,
        fallback=True,
    )


def build_prompt(names: list[str]) -> str:
    listing = "\n".join(f'{i}. {json.dumps(name)}' for i, name in enumerate(names, 1))
    return (
        'Classify each payee name as "Business" or "Individual". '
        "Return ONLY a JSON array with one object per name, in the same order:\n"
        "[\n"
        '  {"name": "payee_name", "classification": "Business", "confidence": 95, "reasoning": "brief reason"},\n'
        '  {"name": "next_payee", "classification": "Individual", "confidence": 90, "reasoning": "brief reason"}\n'
        "]\n\n"
        f"Names to classify:\n{listing}"
    )


def parse_response(raw: str, names: list[str]) -> list[AIClassification]:
    """Parse a JSON answer, aligned with ``names``.

    Accepts a bare list or one wrapped under a known key, tolerating markdown
    fences. Missing or invalid entries become fallbacks.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise MalformedResponseError("Empty response from AI service")

    cleaned = _FENCE.sub("", raw).strip()
    try:
        parsed: Any = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Response is not valid JSON: {e}") from e

    if isinstance(parsed, dict):
        items = next((parsed[k] for k in _WRAPPER_KEYS if isinstance(parsed.get(k), list)), None)
    else:
        items = parsed
    if not isinstance(items, list):
        raise MalformedResponseError("No classification list found in response")

    results: list[AIClassification] = []
    for i, name in enumerate(names):
        if i >= len(items):
            results.append(fallback_classification(name, "No result returned for this name"))
            continue
        item = items[i]
        try:
            parsed_item = AIClassification.model_validate(item)
        except ValidationError as e:
            log.warning("ai_item_invalid", name=name, index=i, error=str(e).splitlines()[0])
            results.append(fallback_classification(name, "Invalid result returned for this name"))
            continue
        # Results are positional; keep the name we asked about
        results.append(parsed_item.model_copy(update={"name": name}))

    if len(items) != len(names):
        log.warning("ai_result_count_mismatch", expected=len(names), received=len(items))
    return results


class AIClassifier:
    """Batched AI classification with a result cache and bounded retries."""

    def __init__(
        self,
        config: AIConfig | None = None,
        provider: LLMProvider | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config or AIConfig()
        self.provider = provider
        self._sleep = sleep
        self._cache: OrderedDict[str, AIClassification] = OrderedDict()
        self._calls = 0
        self._consecutive_rate_limits = 0

    @property
    def available(self) -> bool:
        return self.provider is not None

    @property
    def calls_made(self) -> int:
        return self._calls

    def current_timeout(self) -> float:
        timeout = self.config.timeout * self.config.timeout_growth ** self._consecutive_rate_limits
        return min(timeout, self.config.max_timeout)

    async def classify_batch(self, names: list[str]) -> list[AIClassification]:
        """Classify names, returning one result per name in input order.

        Raises an ExternalServiceError subclass when the service fails.
        """
        if not names:
            return []
        if self.provider is None:
            raise ExternalServiceError("No AI provider configured")

        results: list[AIClassification | None] = [None] * len(names)
        pending: list[int] = []
        for i, name in enumerate(names):
            cached = self._cache.get(self._cache_key(name))
            if cached is not None:
                results[i] = cached.model_copy(update={"name": name})
            else:
                pending.append(i)

        log.debug("ai_cache_lookup", hits=len(names) - len(pending), misses=len(pending))

        size = max(1, self.config.batch_size)
        for start in range(0, len(pending), size):
            chunk = pending[start : start + size]
            chunk_names = [names[i] for i in chunk]
            raw = await self._query_with_retry(build_prompt(chunk_names))
            parsed = parse_response(raw, chunk_names)
            for i, item in zip(chunk, parsed):
                results[i] = item
                if not item.fallback:
                    self._remember(names[i], item)

        return [r for r in results if r is not None]

    async def _query_with_retry(self, prompt: str) -> str:
        # 1 initial attempt + max_retries
        last_error: ExternalServiceError | None = None
        for attempt in range(self.config.max_retries + 1):
            try:
                raw = await asyncio.wait_for(self.provider.query(prompt), timeout=self.current_timeout())
            except AuthenticationError:
                log.error("ai_auth_failed")
                raise
            except asyncio.TimeoutError:
                last_error = ServiceTimeoutError(f"AI request timed out after {self.current_timeout():.0f}s")
                self._consecutive_rate_limits = 0
            except RateLimitError as e:
                last_error = e
                self._consecutive_rate_limits += 1
            except ExternalServiceError as e:
                last_error = e
                self._consecutive_rate_limits = 0
            else:
                self._calls += 1
                self._consecutive_rate_limits = 0
                return raw

            if attempt >= self.config.max_retries:
                break
            delay = self.config.retry_delay * 2**attempt
            if isinstance(last_error, RateLimitError):
                delay = max(delay, self.config.rate_limit_delay)
            delay *= random.uniform(0.8, 1.2)
            log.warning(
                "ai_call_retry",
                attempt=attempt + 1,
                error=str(last_error),
                delay=round(delay, 2),
            )
            await self._sleep(delay)

        assert last_error is not None
        raise last_error

    def _cache_key(self, name: str) -> str:
        return hashlib.sha256(comparison_key(name).encode()).hexdigest()[:16]

    def _remember(self, name: str, item: AIClassification) -> None:
        key = self._cache_key(name)
        self._cache.pop(key, None)
        self._cache[key] = item
        while len(self._cache) > self.config.cache_size:
            self._cache.popitem(last=False)
