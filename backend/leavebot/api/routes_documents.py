"""Document indexing routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from leavebot.api.dependencies import get_ingest_pipeline
from leavebot.core.errors import DuplicateDocumentError
from leavebot.ingest.pipeline import IngestPipeline
from leavebot.models.dto import (
    DeleteResponse,
    DocumentCreateRequest,
    DocumentCreateResponse,
    DuplicateDocumentResponse,
)

router = APIRouter()


@router.post(
    "/documents",
    response_model=DocumentCreateResponse,
    responses={409: {"model": DuplicateDocumentResponse}},
    summary="Index a policy document",
)
def create_document(
    request: DocumentCreateRequest,
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
):
    try:
        result = pipeline.index_document(
            name=request.name,
            text=request.text,
            country_code=request.country_code,
            metadata={
                "original_filename": request.original_filename,
                "file_type": request.file_type,
                "language": request.language,
                "source": "api",
            },
        )
    except DuplicateDocumentError as exc:
        body = DuplicateDocumentResponse(
            message="A document with identical content already exists",
            existing_document_id=exc.existing_id,
            existing_document_name=exc.existing_name,
        )
        return JSONResponse(status_code=409, content=body.model_dump())
    return DocumentCreateResponse(
        document_id=result.document_id,
        chunk_count=result.chunk_count,
        content_hash=result.content_hash,
    )


@router.delete("/documents/{document_id}", response_model=DeleteResponse, summary="Delete a document and its chunks")
def delete_document(document_id: str, pipeline: IngestPipeline = Depends(get_ingest_pipeline)) -> DeleteResponse:
    if not pipeline.delete_document(document_id):
        raise HTTPException(status_code=404, detail="Document not found")
    return DeleteResponse(status="ok", deleted=1)


__all__ = ["router"]
