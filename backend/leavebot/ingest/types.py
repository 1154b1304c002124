"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class LoadedDocument:
    """Represents a policy document extracted from a file."""

    path: Path
    text: str
    metadata: dict[str, Any]
    file_type: str
    title: str
    language: str
    size_bytes: int


@dataclass(slots=True)
class IndexResult:
    document_id: str
    chunk_count: int
    content_hash: str


@dataclass(slots=True)
class IngestStats:
    """Aggregated ingest statistics."""

    processed: int = 0
    skipped: int = 0
    failed: int = 0
    chunks: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "chunks": self.chunks,
        }


@dataclass(slots=True)
class IngestResult:
    """Outcome for a single file."""

    path: str
    status: str
    document_id: str | None = None
    chunks: int = 0
    detail: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


__all__ = ["LoadedDocument", "IndexResult", "IngestStats", "IngestResult"]
