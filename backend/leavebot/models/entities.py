"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

GLOBAL_PARTITION = "global"

DocumentStatus = Literal["active", "inactive", "processing", "error"]
VectorStatus = Literal["pending", "processing", "indexed", "error"]


@dataclass(slots=True)
class Document:
    id: str
    name: str
    original_filename: str | None
    file_size: int | None
    file_type: str | None
    language: str
    embedding_model: str | None
    embedding_version: str | None
    status: DocumentStatus
    vector_status: VectorStatus
    country_code: str | None
    content_hash: str
    created_at: int
    updated_at: int


@dataclass(slots=True)
class Chunk:
    id: str
    document_id: str
    ordinal: int
    country_code: str | None
    content: str
    embedding: bytes
    embedding_dim: int
    created_at: int


@dataclass(slots=True)
class RetrievedChunk:
    """A search hit, best-first within a result list."""

    chunk_id: str
    document_id: str
    country_code: str | None
    content: str
    similarity: float
    distance: float


__all__ = [
    "GLOBAL_PARTITION",
    "Document",
    "Chunk",
    "RetrievedChunk",
    "DocumentStatus",
    "VectorStatus",
]
