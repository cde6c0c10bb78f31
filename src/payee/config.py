"""Configuration for the payee classification system."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field

import structlog


@dataclass
class ScoringWeights:
    # Business indicators
    business_suffix: float = 0.45
    business_keyword: float = 0.30
    ampersand_or_and: float = 0.15
    org_probability: float = 0.20
    tax_id: float = 0.10
    government_pattern: float = 0.25
    apartment_pattern: float = 0.20
    starts_with_article: float = 0.10
    # Individual indicators (subtracted)
    honorific: float = 0.40
    first_name_match: float = 0.35
    person_probability: float = 0.25
    generation_suffix: float = 0.15
    two_tokens: float = 0.10
    multiple_last_names: float = 0.05


@dataclass
class DecisionThresholds:
    band: float = 0.12
    label_bonus: float = 0.20
    close_margin: float = 0.10


@dataclass
class ConfidenceIncrements:
    business_suffix: float = 0.10
    business_keyword: float = 0.08
    first_name_match: float = 0.08
    honorific: float = 0.07
    org_entity: float = 0.06
    person_entity: float = 0.06
    government_pattern: float = 0.05
    generation_suffix: float = 0.04
    apartment_pattern: float = 0.03
    ampersand_or_and: float = 0.02
    tax_id: float = 0.02
    starts_with_article: float = 0.01
    multiple_last_names: float = 0.01


@dataclass
class ConfidenceConfig:
    floor: float = 0.70
    ceiling: float = 0.99
    magnitude_factor: float = 0.05
    entity_threshold: float = 0.70
    two_signal_bonus: float = 0.03
    three_signal_bonus: float = 0.02
    increments: ConfidenceIncrements = field(default_factory=ConfidenceIncrements)


@dataclass
class TierThresholds:
    high: int = 95
    medium: int = 85
    review: int = 75
    minimum: int = 51


@dataclass
class ExclusionConfig:
    keywords: list[str] = field(default_factory=list)
    mode: str = "enhanced"  # "simple" or "enhanced"
    name_similarity: float = 85.0
    token_similarity: float = 90.0


@dataclass
class AIConfig:
    model: str = "gemini-2.0-flash"
    batch_size: int = 15
    timeout: float = 30.0
    max_timeout: float = 60.0
    timeout_growth: float = 1.5
    max_retries: int = 2
    retry_delay: float = 1.0
    rate_limit_delay: float = 10.0
    cache_size: int = 1000


@dataclass
class BatchConfig:
    max_concurrency: int = 3
    max_batch_size: int = 15
    retry_delay: float = 0.2


@dataclass
class CacheConfig:
    ttl: float = 30 * 60
    max_size: int = 1000
    path: str | None = None


@dataclass
class ClassifierConfig:
    ai_threshold: int = 75
    bypass_rule_nlp: bool = False
    offline_mode: bool = False
    use_fuzzy_matching: bool = True
    similarity_threshold: float = 90.0
    rationale_signals: int = 4
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    decision: DecisionThresholds = field(default_factory=DecisionThresholds)
    confidence: ConfidenceConfig = field(default_factory=ConfidenceConfig)
    tiers: TierThresholds = field(default_factory=TierThresholds)
    exclusion: ExclusionConfig = field(default_factory=ExclusionConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    # Shortcuts onto the batch section; declared last so ``batch`` exists
    # when __init__ assigns them. None keeps the nested value.
    max_concurrency: int | None = None
    max_batch_size: int | None = None

    @classmethod
    def for_ruleset(cls, name: str) -> ClassifierConfig:
        """Build a config whose scoring tables come from a named ruleset."""
        if name not in RULESETS:
            raise ValueError(f"Unknown ruleset '{name}'. Available: {', '.join(sorted(RULESETS))}")
        weights, decision = RULESETS[name]
        return cls(weights=copy.deepcopy(weights), decision=copy.deepcopy(decision))

    @classmethod
    def from_env(cls, base: ClassifierConfig | None = None) -> ClassifierConfig:
        """Apply PAYEE_* environment overrides on top of ``base``."""
        config = base or cls()
        max_concurrency = _env_int("PAYEE_MAX_CONCURRENCY")
        if max_concurrency is not None:
            config.max_concurrency = max_concurrency
        max_batch_size = _env_int("PAYEE_MAX_BATCH_SIZE")
        if max_batch_size is not None:
            config.max_batch_size = max_batch_size
        ai_threshold = _env_int("PAYEE_AI_THRESHOLD")
        if ai_threshold is not None:
            config.ai_threshold = min(ai_threshold, 100)
        offline = os.environ.get("PAYEE_OFFLINE")
        if offline is not None:
            config.offline_mode = offline.strip().lower() in ("1", "true", "yes", "on")
        return config


def _get_max_concurrency(self: ClassifierConfig) -> int:
    return self.batch.max_concurrency


def _set_max_concurrency(self: ClassifierConfig, value: int | None) -> None:
    if value is not None:
        self.batch.max_concurrency = value


def _get_max_batch_size(self: ClassifierConfig) -> int:
    return self.batch.max_batch_size


def _set_max_batch_size(self: ClassifierConfig, value: int | None) -> None:
    # One AI request per chunk
    if value is not None:
        self.batch.max_batch_size = value
        self.ai.batch_size = value


ClassifierConfig.max_concurrency = property(_get_max_concurrency, _set_max_concurrency)  # type: ignore[assignment]
ClassifierConfig.max_batch_size = property(_get_max_batch_size, _set_max_batch_size)  # type: ignore[assignment]


def _env_int(key: str) -> int | None:
    """Read a positive integer from the environment, ignoring junk."""
    raw = os.environ.get(key)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        structlog.get_logger().warning("config_env_invalid", key=key, value=raw)
        return None
    if value <= 0:
        structlog.get_logger().warning("config_env_invalid", key=key, value=raw)
        return None
    return value


RULESETS: dict[str, tuple[ScoringWeights, DecisionThresholds]] = {
    "enhanced": (ScoringWeights(), DecisionThresholds()),
    "basic": (
        ScoringWeights(
            business_suffix=0.50,
            business_keyword=0.35,
            ampersand_or_and=0.20,
            org_probability=0.15,
            tax_id=0.10,
            government_pattern=0.0,
            apartment_pattern=0.0,
            starts_with_article=0.0,
            honorific=0.35,
            first_name_match=0.45,
            person_probability=0.25,
            generation_suffix=0.15,
            two_tokens=0.10,
            multiple_last_names=0.0,
        ),
        DecisionThresholds(band=0.15),
    ),
}
