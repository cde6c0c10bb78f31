"""Tests for the public classifier entry points."""

import asyncio
import json
import re

from payee import ClassifierConfig, PayeeClassifier, classify, process_batch

_NUMBERED = re.compile(r'^\d+\. "(.*)"$', re.MULTILINE)


class MockLLMProvider:
    def __init__(self):
        self.calls = 0

    async def query(self, prompt: str) -> str:
        self.calls += 1
        names = _NUMBERED.findall(prompt)
        return json.dumps([{"classification": "Business", "confidence": 82, "reasoning": "mock"} for _ in names])


def test_classify_business():
    result = classify("Apex Plumbing Services LLC")
    assert result.classification == "Business"
    assert result.confidence >= 85
    assert result.processing_tier == "RuleBased"


def test_classify_individual():
    result = classify("Jane Smith")
    assert result.classification == "Individual"
    assert result.confidence == 90


def test_classify_invalid():
    result = classify("")
    assert result.confidence == 0
    assert result.classification == "Individual"


def test_classify_with_exclusions():
    config = ClassifierConfig()
    config.exclusion.keywords = ["bank"]
    result = classify("First National Bank", config)
    assert result.processing_tier == "Excluded"
    assert result.classification == "Business"


def test_process_batch_alignment():
    names = ["", "  ", "Acme Inc", "Jane Smith", "Acme Inc"]
    batch = process_batch(names, rows=[{"n": i} for i in range(5)])
    assert len(batch.results) == 5
    assert [item.payee_name for item in batch.results] == names
    assert [item.original_data["n"] for item in batch.results] == [0, 1, 2, 3, 4]
    assert batch.results[4].duplicate_of == 2


def test_classifier_uses_provider_for_unknown_names():
    provider = MockLLMProvider()
    classifier = PayeeClassifier(llm_provider=provider)
    result = classifier.classify_sync("Zorblax Quintavious")
    assert result.processing_tier == "AIAssisted"
    assert result.confidence == 82
    assert provider.calls == 1


def test_offline_config_ignores_provider():
    provider = MockLLMProvider()
    classifier = PayeeClassifier(ClassifierConfig(offline_mode=True), llm_provider=provider)
    result = classifier.classify_sync("Zorblax Quintavious")
    assert result.processing_tier != "AIAssisted"
    assert provider.calls == 0


def test_batch_results_feed_fuzzy_tier():
    provider = MockLLMProvider()
    classifier = PayeeClassifier(llm_provider=provider)
    classifier.process_batch_sync(["Zorblax Quintavious"])
    assert provider.calls == 1
    result = classifier.classify_sync("Zorblax Quintavius")
    assert result.processing_tier == "FuzzyMatch"
    assert result.classification == "Business"
    assert provider.calls == 1


def test_cache_persisted_between_runs(tmp_path):
    path = tmp_path / "cache.json"
    config = ClassifierConfig()
    config.cache.path = str(path)
    PayeeClassifier(config).process_batch_sync(["Acme Inc", "Jane Smith"])
    assert path.exists()

    restored = PayeeClassifier(config)
    assert len(restored.cache) == 2
    assert restored.cache.get("Jane Smith").classification == "Individual"


def test_async_entry_points():
    classifier = PayeeClassifier()

    async def go():
        single = await classifier.classify("Acme Inc")
        batch = await classifier.process_batch(["Acme Inc", "Jane Smith"])
        return single, batch

    single, batch = asyncio.run(go())
    assert single.classification == "Business"
    assert [item.result.classification for item in batch.results] == ["Business", "Individual"]
