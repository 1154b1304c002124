"""Ingest API routes."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends

from leavebot.api.dependencies import get_ingest_pipeline
from leavebot.ingest.pipeline import IngestPipeline
from leavebot.models.dto import IngestRequest, IngestResponse

router = APIRouter()


@router.post("", response_model=IngestResponse, summary="Index files or directories from disk")
def trigger_ingest(
    request: IngestRequest,
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> IngestResponse:
    paths = [Path(path).expanduser() for path in request.paths]
    payload = pipeline.ingest_paths(paths, country_code=request.country_code)
    return IngestResponse(**payload)


__all__ = ["router"]
