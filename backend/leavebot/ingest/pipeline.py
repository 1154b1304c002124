"""Document indexing pipeline."""

from __future__ import annotations

import sqlite3
import time
from dataclasses import asdict
from pathlib import Path
from typing import Any, Sequence

from leavebot.core.config import Settings
from leavebot.core.errors import DuplicateDocumentError, IngestionError
from leavebot.core.logging import get_logger
from leavebot.core.metrics import INDEX_SIZE, INGEST_DURATION
from leavebot.db.sqlite import SQLiteDatabase
from leavebot.ingest.chunker import chunk_text
from leavebot.ingest.dedupe import content_hash
from leavebot.ingest.embeddings import EmbeddingModel
from leavebot.ingest.loaders import LoaderRegistry
from leavebot.ingest.types import IndexResult, IngestResult, IngestStats
from leavebot.models.entities import Chunk, Document
from leavebot.retrieval.search import partitions_for
from leavebot.retrieval.vector_index import to_vector_literal
from leavebot.utils import ids
from leavebot.utils.time import now_ms

logger = get_logger(__name__)

_DOCUMENT_COLUMNS = (
    "id, name, original_filename, file_size, file_type, language, embedding_model, "
    "embedding_version, status, vector_status, country_code, content_hash, created_at, updated_at"
)


class IngestPipeline:
    """Coordinate chunking, embeddings, and persistence."""

    def __init__(
        self,
        database: SQLiteDatabase,
        settings: Settings,
        embedding_model: EmbeddingModel,
        loader_registry: LoaderRegistry | None = None,
    ) -> None:
        self.db = database
        self.settings = settings
        self.embedding_model = embedding_model
        self.loader_registry = loader_registry or LoaderRegistry()

    def index_document(
        self,
        name: str,
        text: str,
        country_code: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> IndexResult:
        """Persist one document and its chunks as a single transaction.

        Raises DuplicateDocumentError when identical text is already indexed.
        """
        metadata = metadata or {}
        started = time.perf_counter()
        digest = content_hash(text)
        existing = self.find_by_hash(digest)
        if existing is not None:
            raise DuplicateDocumentError(digest, existing_id=existing.id, existing_name=existing.name)

        texts = chunk_text(text, chunk_size=self.settings.chunk_size, overlap=self.settings.chunk_overlap)
        batch = self.embedding_model.encode(texts)
        if len(batch.vectors) != len(texts):
            raise IngestionError(f"Embedder returned {len(batch.vectors)} vectors for {len(texts)} chunks")

        document_id = ids.document_id()
        now = now_ms()
        chunks = [
            Chunk(
                id=ids.chunk_id(),
                document_id=document_id,
                ordinal=ordinal,
                country_code=country_code,
                content=content,
                embedding=to_vector_literal(vector),
                embedding_dim=len(vector),
                created_at=now,
            )
            for ordinal, (content, vector) in enumerate(zip(texts, batch.vectors))
        ]

        try:
            with self.db.transaction() as cursor:
                cursor.execute(
                    """
                    INSERT INTO documents (
                      id, name, original_filename, file_size, file_type, language,
                      embedding_model, embedding_version, status, vector_status,
                      country_code, content_hash, text, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'active', 'processing', ?, ?, ?, ?, ?)
                    """,
                    [
                        document_id,
                        name,
                        metadata.get("original_filename"),
                        metadata.get("file_size", len(text.encode("utf-8"))),
                        metadata.get("file_type"),
                        metadata.get("language", "en"),
                        batch.model,
                        self.settings.embedding_version,
                        country_code,
                        digest,
                        text,
                        now,
                        now,
                    ],
                )
                cursor.executemany(
                    """
                    INSERT INTO chunks (id, document_id, ordinal, country_code, content, embedding, embedding_dim, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            chunk.id,
                            chunk.document_id,
                            chunk.ordinal,
                            chunk.country_code,
                            chunk.content,
                            chunk.embedding,
                            chunk.embedding_dim,
                            chunk.created_at,
                        )
                        for chunk in chunks
                    ],
                )
                cursor.execute(
                    "UPDATE documents SET vector_status = 'indexed', updated_at = ? WHERE id = ?",
                    [now_ms(), document_id],
                )
        except sqlite3.IntegrityError as exc:
            # A concurrent upload of the same content won the UNIQUE constraint.
            winner = self.find_by_hash(digest)
            if winner is None:
                raise
            raise DuplicateDocumentError(digest, existing_id=winner.id, existing_name=winner.name) from exc

        INGEST_DURATION.labels(source=metadata.get("source", "api")).observe(time.perf_counter() - started)
        self._update_index_metric()
        logger.info(
            "Indexed document %s with %s chunks",
            name,
            len(chunks),
            extra={"ctx_document_id": document_id, "ctx_country_code": country_code},
        )
        return IndexResult(document_id=document_id, chunk_count=len(chunks), content_hash=digest)

    def ingest_paths(self, paths: Sequence[Path], country_code: str | None = None) -> dict[str, object]:
        """Index every supported file under the given paths, one result per file."""
        stats = IngestStats()
        results: list[IngestResult] = []
        for root in paths:
            root = root.expanduser()
            if not root.exists():
                results.append(IngestResult(path=str(root), status="error", detail="path does not exist"))
                stats.failed += 1
                continue
            for path in self.loader_registry.iter_files(root):
                if not self.loader_registry.supports(path):
                    logger.info("Skipping unsupported file %s", path)
                    continue
                outcome = self._ingest_file(path, country_code)
                results.append(outcome)
                _update_stats(stats, outcome)
        return {"stats": stats.to_dict(), "results": [asdict(result) for result in results]}

    def _ingest_file(self, path: Path, country_code: str | None) -> IngestResult:
        try:
            loaded = self.loader_registry.load(path)
            result = self.index_document(
                name=loaded.title,
                text=loaded.text,
                country_code=country_code,
                metadata={
                    "original_filename": path.name,
                    "file_size": loaded.size_bytes,
                    "file_type": loaded.file_type,
                    "language": loaded.language,
                    "source": "file",
                },
            )
        except DuplicateDocumentError as exc:
            logger.info("Skipping duplicate document %s", path)
            return IngestResult(path=str(path), status="skipped", document_id=exc.existing_id, detail="duplicate")
        except IngestionError as exc:
            logger.warning("Failed to load %s: %s", path, exc)
            return IngestResult(path=str(path), status="error", detail=str(exc))
        except Exception as exc:
            logger.exception("Failed to index %s", path)
            return IngestResult(path=str(path), status="error", detail=str(exc))
        return IngestResult(
            path=str(path),
            status="processed",
            document_id=result.document_id,
            chunks=result.chunk_count,
        )

    def find_by_hash(self, digest: str) -> Document | None:
        row = self.db.query_one(f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE content_hash = ?", [digest])
        return _row_to_document(row) if row else None

    def get_document(self, document_id: str) -> Document | None:
        row = self.db.query_one(f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?", [document_id])
        return _row_to_document(row) if row else None

    def chunk_count(self, document_id: str) -> int:
        row = self.db.query_one("SELECT COUNT(*) AS count FROM chunks WHERE document_id = ?", [document_id])
        return int(row["count"]) if row else 0

    def document_count(self) -> int:
        row = self.db.query_one("SELECT COUNT(*) AS count FROM documents WHERE status = 'active'")
        return int(row["count"]) if row else 0

    def delete_document(self, document_id: str) -> bool:
        """Delete a document; its chunks go with it through the foreign key cascade."""
        deleted = self.db.execute("DELETE FROM documents WHERE id = ?", [document_id])
        if deleted:
            logger.info("Deleted document %s", document_id)
            self._update_index_metric()
        return bool(deleted)

    def policy_text(self, country_code: str | None = None) -> str:
        """Concatenated raw text of the active documents visible to a partition."""
        partitions = partitions_for(country_code)
        placeholders = ",".join("?" for _ in partitions)
        rows = self.db.query(
            f"""
            SELECT name, text FROM documents
            WHERE status = 'active' AND vector_status = 'indexed'
              AND (country_code IN ({placeholders}) OR country_code IS NULL)
            ORDER BY created_at, rowid
            """,
            sorted(partitions),
        )
        return "".join(f"\n--- {row['name']} ---\n{row['text'] or ''}" for row in rows)

    def _update_index_metric(self) -> None:
        row = self.db.query_one("SELECT COUNT(*) AS count FROM chunks")
        INDEX_SIZE.set(int(row["count"]) if row else 0)


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        name=row["name"],
        original_filename=row["original_filename"],
        file_size=row["file_size"],
        file_type=row["file_type"],
        language=row["language"],
        embedding_model=row["embedding_model"],
        embedding_version=row["embedding_version"],
        status=row["status"],
        vector_status=row["vector_status"],
        country_code=row["country_code"],
        content_hash=row["content_hash"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _update_stats(stats: IngestStats, result: IngestResult) -> None:
    if result.status == "processed":
        stats.processed += 1
        stats.chunks += result.chunks
    elif result.status == "skipped":
        stats.skipped += 1
    elif result.status == "error":
        stats.failed += 1


__all__ = ["IngestPipeline"]
