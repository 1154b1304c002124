"""Administrative routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from leavebot.api.dependencies import get_ingest_pipeline
from leavebot.core.metrics import metrics_response
from leavebot.ingest.pipeline import IngestPipeline

router = APIRouter()


@router.get("/health", summary="Liveness check")
def health(pipeline: IngestPipeline = Depends(get_ingest_pipeline)) -> dict[str, object]:
    return {"ok": True, "documents": pipeline.document_count()}


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
