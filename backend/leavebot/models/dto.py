"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class DocumentCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    text: str
    country_code: str | None = None
    original_filename: str | None = None
    file_type: str | None = None
    language: str = "en"


class DocumentCreateResponse(BaseModel):
    document_id: str
    chunk_count: int
    content_hash: str


class DuplicateDocumentResponse(BaseModel):
    error: Literal["duplicate_document"] = "duplicate_document"
    message: str
    existing_document_id: str | None = None
    existing_document_name: str | None = None


class DeleteResponse(BaseModel):
    status: Literal["ok"]
    deleted: int


class IngestRequest(BaseModel):
    paths: list[str] = Field(min_length=1, description="Files or directories to index")
    country_code: str | None = None


class IngestResponse(BaseModel):
    stats: dict[str, int]
    results: list[dict[str, Any]]


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    country_code: str | None = None
    top_k: int | None = Field(default=None, ge=1, le=50)


class ChunkResult(BaseModel):
    chunk_id: str
    document_id: str
    country_code: str | None
    content: str
    similarity: float


class SearchResponse(BaseModel):
    query: str
    classification: str | None
    results: list[ChunkResult]


class AskRequest(BaseModel):
    question: str
    country_code: str | None = None
    user_id: str | None = Field(default=None, description="Requester key for rate limiting and history")


class AskResponse(BaseModel):
    question: str
    answer: str
    status: str
    sources: list[str]


__all__ = [
    "DocumentCreateRequest",
    "DocumentCreateResponse",
    "DuplicateDocumentResponse",
    "DeleteResponse",
    "IngestRequest",
    "IngestResponse",
    "SearchRequest",
    "SearchResponse",
    "ChunkResult",
    "AskRequest",
    "AskResponse",
]
