"""payee - Payee name classification (Business vs Individual)."""

from payee.classifier import PayeeClassifier, classify, process_batch
from payee.config import ClassifierConfig
from payee.gemini import GeminiLLMProvider
from payee.similarity import combined_similarity
from payee.types import BatchItem, BatchResult, ClassificationResult, SimilarityScores

__all__ = [
    "BatchItem",
    "BatchResult",
    "ClassificationResult",
    "ClassifierConfig",
    "GeminiLLMProvider",
    "PayeeClassifier",
    "SimilarityScores",
    "classify",
    "combined_similarity",
    "process_batch",
]
