"""Core types for the payee classification system."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Classification = Literal["Business", "Individual"]

ProcessingTier = Literal["Excluded", "RuleBased", "FuzzyMatch", "Heuristic", "AIAssisted"]

EntityLabel = Literal["Person", "Company", "Unknown"]

DuplicateKind = Literal["exact", "fuzzy"]


@dataclass
class NormalizedName:
    original: str
    text: str
    tokens: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text


@dataclass
class EntitySignals:
    """Person-vs-organization probabilities from an entity-signal provider."""

    org_probability: float = 0.0
    person_probability: float = 0.0
    label: EntityLabel = "Unknown"
    label_confidence: float = 0.0


@dataclass
class FeatureFlags:
    has_business_suffix: bool = False
    has_honorific: bool = False
    has_generation_suffix: bool = False
    has_ampersand_or_and: bool = False
    has_business_keyword: bool = False
    has_first_name_match: bool = False
    looks_like_tax_id: bool = False
    token_count: int = 0
    has_government_pattern: bool = False
    has_apartment_pattern: bool = False
    starts_with_article: bool = False
    has_multiple_last_names: bool = False
    org_probability: float = 0.0
    person_probability: float = 0.0


@dataclass
class SimilarityScores:
    levenshtein: float
    jaro_winkler: float
    dice: float
    token_sort: float
    combined: float


@dataclass
class ExclusionResult:
    is_excluded: bool
    matched_keywords: list[str] = field(default_factory=list)
    confidence: int = 0
    reasoning: str = ""


@dataclass
class ClassificationResult:
    classification: Classification
    confidence: int
    reasoning: str
    processing_tier: ProcessingTier
    matching_rules: list[str] = field(default_factory=list)
    similarity_scores: SimilarityScores | None = None
    exclusion: ExclusionResult | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class QueueItem:
    name: str
    original_index: int
    original_data: Any = None


@dataclass
class DuplicateRef:
    """A row whose result is reused from an earlier unique row."""

    index: int
    name: str
    source_index: int
    kind: DuplicateKind
    similarity: float = 100.0
    original_data: Any = None


@dataclass
class DedupResult:
    work_queue: list[QueueItem] = field(default_factory=list)
    duplicates: list[DuplicateRef] = field(default_factory=list)
    invalid: list[QueueItem] = field(default_factory=list)


@dataclass
class BatchItem:
    row_index: int
    payee_name: str
    result: ClassificationResult
    original_data: Any = None
    duplicate_of: int | None = None
    duplicate_kind: DuplicateKind | None = None
    retried: bool = False


@dataclass
class BatchStats:
    total: int = 0
    unique: int = 0
    business_count: int = 0
    individual_count: int = 0
    excluded_count: int = 0
    invalid_count: int = 0
    failed_count: int = 0
    average_confidence: float = 0.0
    high_confidence_count: int = 0
    medium_confidence_count: int = 0
    low_confidence_count: int = 0
    tier_counts: dict[str, int] = field(default_factory=dict)
    exact_duplicates: int = 0
    fuzzy_duplicates: int = 0
    deduplication_savings: int = 0
    retry_count: int = 0
    ai_calls: int = 0
    processing_time: float = 0.0


@dataclass
class BatchResult:
    results: list[BatchItem] = field(default_factory=list)
    stats: BatchStats = field(default_factory=BatchStats)
    processing_time: float = 0.0
