"""Ordered escalation through classification tiers."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Callable

import structlog

from payee.ai import AIClassifier
from payee.cache import ClassificationCache
from payee.config import ClassifierConfig
from payee.exclusion import check_exclusion
from payee.features import EntitySignalProvider, extract_features
from payee.heuristic import structural_score
from payee.normalize import normalize
from payee.rationale import explain, fired_signals
from payee.scoring import calibrate, score
from payee.types import ClassificationResult

log = structlog.get_logger()

INVALID_REASONING = "Invalid/empty name"


@dataclass
class TierOutcome:
    result: ClassificationResult
    terminal: bool


Tier = Callable[[str], "TierOutcome | None"]


@dataclass
class Resolution:
    """Local (tiers 1-4) outcome for one name."""

    name: str
    result: ClassificationResult | None = None
    best: ClassificationResult | None = None
    candidates: list[ClassificationResult] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.result is not None


def invalid_result() -> ClassificationResult:
    return ClassificationResult(
        classification="Individual",
        confidence=0,
        reasoning=INVALID_REASONING,
        processing_tier="RuleBased",
        metadata={"invalid": True},
    )


class EscalationPolicy:
    """Runs a name through the tiers in order until one is confident enough.

    Tiers 1-4 are pure computation; only the AI tier performs I/O and it
    degrades to the best local result instead of raising.
    """

    def __init__(
        self,
        config: ClassifierConfig | None = None,
        cache: ClassificationCache | None = None,
        ai: AIClassifier | None = None,
        entity_provider: EntitySignalProvider | None = None,
    ) -> None:
        self.config = config or ClassifierConfig()
        self.cache = cache
        self.ai = ai
        self.entity_provider = entity_provider
        # Degradation reason when AI is switched off on purpose
        self.offline_reason: str | None = None
        self.tiers = self._build_tiers()

    def _build_tiers(self) -> list[Tier]:
        return [self.excluded_tier, self.rule_based_tier, self.fuzzy_match_tier, self.heuristic_tier]

    @property
    def ai_enabled(self) -> bool:
        return self.ai is not None and self.ai.available and not self.config.offline_mode

    def offline(self, reason: str = "offline retry") -> EscalationPolicy:
        """Copy of this policy with the AI tier disabled."""
        clone = copy.copy(self)
        clone.ai = None
        clone.offline_reason = reason
        clone.tiers = clone._build_tiers()
        return clone

    # Tiers

    def excluded_tier(self, name: str) -> TierOutcome | None:
        keywords = self.config.exclusion.keywords
        if not keywords:
            return None
        exclusion = check_exclusion(name, keywords, self.config.exclusion.mode, self.config.exclusion)
        if not exclusion.is_excluded:
            return None
        result = ClassificationResult(
            classification="Business",
            confidence=max(exclusion.confidence, self.config.tiers.medium),
            reasoning=exclusion.reasoning,
            processing_tier="Excluded",
            matching_rules=[f"excluded:{k}" for k in exclusion.matched_keywords],
            exclusion=exclusion,
        )
        return TierOutcome(result=result, terminal=True)

    def rule_based_tier(self, name: str) -> TierOutcome | None:
        normalized = normalize(name)
        features, signals = extract_features(normalized, self.entity_provider)
        raw, classification = score(features, signals, self.config.weights, self.config.decision)
        confidence = calibrate(raw, features, signals, self.config.confidence)
        result = ClassificationResult(
            classification=classification,
            confidence=confidence,
            reasoning=explain(features, signals, self.config.rationale_signals),
            processing_tier="RuleBased",
            matching_rules=fired_signals(features, signals),
            metadata={
                "raw_score": round(raw, 4),
                "entity_label": signals.label,
                "normalized": normalized.text,
            },
        )
        return TierOutcome(result=result, terminal=confidence >= self.config.tiers.medium)

    def fuzzy_match_tier(self, name: str) -> TierOutcome | None:
        if not self.config.use_fuzzy_matching or self.cache is None:
            return None
        match = self.cache.best_match(name, self.config.tiers.review)
        if match is None:
            return None
        cached_name, cached, scores = match
        result = ClassificationResult(
            classification=cached.classification,
            confidence=min(round(scores.combined), self.config.tiers.high),
            reasoning=f'Fuzzy match with "{cached_name}" ({scores.combined:.1f}% similarity)',
            processing_tier="FuzzyMatch",
            matching_rules=["fuzzy_match"],
            similarity_scores=scores,
            metadata={"matched_name": cached_name},
        )
        return TierOutcome(result=result, terminal=scores.combined >= self.config.tiers.medium)

    def heuristic_tier(self, name: str) -> TierOutcome | None:
        heuristic = structural_score(name)
        result = ClassificationResult(
            classification=heuristic.classification,
            confidence=heuristic.confidence,
            reasoning=heuristic.reasoning,
            processing_tier="Heuristic",
            matching_rules=heuristic.indicators,
            metadata={
                "business_score": heuristic.business_score,
                "individual_score": heuristic.individual_score,
            },
        )
        return TierOutcome(result=result, terminal=heuristic.confidence >= self.config.tiers.medium)

    # Resolution

    def resolve_local(self, name: str) -> Resolution:
        """Run tiers 1-4; the result is set when a tier settles the name."""
        if not isinstance(name, str) or not name.strip():
            return Resolution(name=name if isinstance(name, str) else "", result=invalid_result())

        resolution = Resolution(name=name)
        for tier in self.tiers:
            outcome = tier(name)
            if outcome is None:
                continue
            resolution.candidates.append(outcome.result)
            if resolution.best is None or outcome.result.confidence > resolution.best.confidence:
                resolution.best = outcome.result
            if outcome.result.processing_tier == "Excluded":
                resolution.result = outcome.result
                return resolution
            if outcome.terminal and not self.config.bypass_rule_nlp:
                resolution.result = outcome.result
                return resolution

        # No tier was terminal; skip AI when the best local answer clears the threshold
        best = resolution.best
        if (
            best is not None
            and not self.config.bypass_rule_nlp
            and best.confidence >= self.config.ai_threshold
        ):
            resolution.result = best
        return resolution

    async def escalate(self, resolutions: list[Resolution]) -> list[ClassificationResult]:
        """Finish resolutions, sending the unresolved ones to the AI tier in one call."""
        pending = [r for r in resolutions if not r.resolved]
        if pending:
            await self._run_ai(pending)
        return [r.result for r in resolutions]  # type: ignore[misc]

    async def _run_ai(self, pending: list[Resolution]) -> None:
        if not self.ai_enabled:
            if self.offline_reason is not None:
                reason = self.offline_reason
            elif self.config.offline_mode:
                reason = "offline mode"
            else:
                reason = "no AI provider"
            for r in pending:
                r.result = self._degrade(r, reason)
            return

        names = [r.name for r in pending]
        try:
            answers = await self.ai.classify_batch(names)
        except Exception as e:
            log.warning("ai_call_failed", names=len(names), error=str(e), error_type=type(e).__name__)
            for r in pending:
                r.result = self._degrade(r, f"AI failed: {type(e).__name__}")
            return

        for r, answer in zip(pending, answers):
            if answer.fallback:
                r.result = self._degrade(r, answer.reasoning)
                continue
            local = r.best.confidence if r.best is not None else None
            r.result = ClassificationResult(
                classification=answer.classification,
                confidence=max(0, min(100, round(answer.confidence))),
                reasoning=f"AI classification: {answer.reasoning}",
                processing_tier="AIAssisted",
                matching_rules=["ai_classification"],
                metadata={"local_confidence": local},
            )
        log.debug("ai_tier_done", names=len(names))

    def _degrade(self, resolution: Resolution, reason: str) -> ClassificationResult:
        """Best local result floored at the minimum confidence."""
        best = resolution.best
        minimum = self.config.tiers.minimum
        if best is None:
            return ClassificationResult(
                classification="Individual",
                confidence=minimum,
                reasoning=f"No local signals ({reason})",
                processing_tier="Heuristic",
                metadata={"degraded": True},
            )
        return ClassificationResult(
            classification=best.classification,
            confidence=max(best.confidence, minimum),
            reasoning=f"{best.reasoning} ({reason}, using local result)",
            processing_tier=best.processing_tier,
            matching_rules=list(best.matching_rules),
            similarity_scores=best.similarity_scores,
            exclusion=best.exclusion,
            metadata={**best.metadata, "degraded": True},
        )

    async def classify(self, name: str) -> ClassificationResult:
        return (await self.escalate([self.resolve_local(name)]))[0]

    async def classify_many(self, names: list[str]) -> list[ClassificationResult]:
        return await self.escalate([self.resolve_local(n) for n in names])
