"""FastAPI JSON service for payee classification."""

from dataclasses import asdict
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from payee.classifier import PayeeClassifier
from payee.errors import AlignmentError
from payee.lexicon import get_available_lists
from payee.similarity import combined_similarity
from payee.types import BatchItem, ClassificationResult

log = structlog.get_logger()


class ClassifyRequest(BaseModel):
    """Request body for a single classification."""

    name: str


class BatchRequest(BaseModel):
    """Request body for a batch; rows are echoed back per result."""

    names: list[str]
    rows: list[Any] | None = None


class SimilarityRequest(BaseModel):
    a: str
    b: str


class ResultResponse(BaseModel):
    classification: str
    confidence: int
    reasoning: str
    processing_tier: str
    matching_rules: list[str] = []
    similarity_scores: dict[str, float] | None = None
    exclusion: dict[str, Any] | None = None
    metadata: dict[str, Any] = {}


class BatchItemResponse(BaseModel):
    row_index: int
    payee_name: str
    result: ResultResponse
    original_data: Any = None
    duplicate_of: int | None = None
    duplicate_kind: str | None = None
    retried: bool = False


class BatchResponse(BaseModel):
    results: list[BatchItemResponse]
    stats: dict[str, Any]
    processing_time: float


class SimilarityResponse(BaseModel):
    levenshtein: float
    jaro_winkler: float
    dice: float
    token_sort: float
    combined: float


def _result_response(result: ClassificationResult) -> ResultResponse:
    return ResultResponse.model_validate(asdict(result))


def _item_response(item: BatchItem) -> BatchItemResponse:
    return BatchItemResponse(
        row_index=item.row_index,
        payee_name=item.payee_name,
        result=_result_response(item.result),
        original_data=item.original_data,
        duplicate_of=item.duplicate_of,
        duplicate_kind=item.duplicate_kind,
        retried=item.retried,
    )


def create_app(classifier: PayeeClassifier | None = None) -> FastAPI:
    """Create the FastAPI application around a shared classifier."""
    app = FastAPI(title="Payee Classifier")
    classifier = classifier or PayeeClassifier()

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "ai_available": classifier.ai.available and not classifier.config.offline_mode,
            "cache_entries": len(classifier.cache),
            "word_lists": get_available_lists(),
        }

    @app.post("/api/classify")
    async def classify_name(req: ClassifyRequest) -> ResultResponse:
        result = await classifier.classify(req.name)
        log.debug("api_classify", name=req.name, classification=result.classification)
        return _result_response(result)

    @app.post("/api/batch")
    async def classify_batch(req: BatchRequest) -> BatchResponse:
        try:
            batch = await classifier.process_batch(req.names, req.rows)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except AlignmentError as e:
            log.error("api_batch_misaligned", error=str(e))
            raise HTTPException(status_code=500, detail=str(e))
        return BatchResponse(
            results=[_item_response(item) for item in batch.results],
            stats=asdict(batch.stats),
            processing_time=batch.processing_time,
        )

    @app.post("/api/similarity")
    async def similarity(req: SimilarityRequest) -> SimilarityResponse:
        return SimilarityResponse.model_validate(asdict(combined_similarity(req.a, req.b)))

    return app
