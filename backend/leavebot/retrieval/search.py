"""Search orchestration."""

from __future__ import annotations

import sqlite3
import time
from dataclasses import dataclass
from typing import Sequence

from leavebot.core.config import Settings
from leavebot.core.errors import RetrievalError
from leavebot.core.logging import get_logger
from leavebot.core.metrics import REQUEST_LATENCY
from leavebot.ingest.embeddings import EmbeddingModel
from leavebot.models.entities import GLOBAL_PARTITION, RetrievedChunk
from leavebot.retrieval.rerank import DEFAULT_CLASSES, QueryClass, classify, fetch_size, rerank
from leavebot.retrieval.vector_index import VectorIndex

logger = get_logger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"


@dataclass(slots=True)
class SearchOutcome:
    query: str
    classification: str | None
    results: list[RetrievedChunk]


class QueryService:
    """Embeds a question, fetches neighbours and applies query-class boosts."""

    def __init__(
        self,
        settings: Settings,
        vector_index: VectorIndex,
        embedding_model: EmbeddingModel,
        classes: Sequence[QueryClass] = DEFAULT_CLASSES,
    ) -> None:
        self.settings = settings
        self.vector_index = vector_index
        self.embedding_model = embedding_model
        self.classes = classes

    def search(self, query: str, country_code: str | None = None, top_k: int | None = None) -> list[RetrievedChunk]:
        return self.run(query, country_code=country_code, top_k=top_k).results

    def run(self, query: str, country_code: str | None = None, top_k: int | None = None) -> SearchOutcome:
        start_time = time.perf_counter()
        limit = top_k or self.settings.top_k
        partitions = partitions_for(country_code)
        query_class = classify(query, self.classes)

        try:
            vector = self.embedding_model.encode([query]).vectors[0]
            candidates = self.vector_index.search(vector, top_k=fetch_size(limit, query_class), partitions=partitions)
        except sqlite3.Error as exc:
            raise RetrievalError(f"Similarity search failed: {exc}") from exc
        except Exception as exc:
            # Embedding backends raise their own client error types.
            raise RetrievalError(f"Query embedding failed: {exc}") from exc

        ranked = rerank(candidates, query_class)[:limit]
        results = [
            RetrievedChunk(
                chunk_id=item.chunk_id,
                document_id=item.document_id,
                country_code=item.country_code,
                content=item.content,
                similarity=item.similarity,
                distance=item.distance,
            )
            for item in ranked
        ]

        REQUEST_LATENCY.labels(endpoint="search", method="internal").observe(time.perf_counter() - start_time)
        logger.info(
            "Search returned %s of %s candidates",
            len(results),
            len(candidates),
            extra={
                "ctx_partitions": sorted(partitions),
                "ctx_classification": query_class.name if query_class else None,
            },
        )
        return SearchOutcome(
            query=query,
            classification=query_class.name if query_class else None,
            results=results,
        )


def partitions_for(country_code: str | None) -> set[str]:
    """Partition tags visible to a query; untagged chunks are always visible too."""
    if country_code:
        return {country_code, GLOBAL_PARTITION}
    return {GLOBAL_PARTITION}


def build_context(chunks: Sequence[RetrievedChunk]) -> str:
    return CONTEXT_SEPARATOR.join(chunk.content for chunk in chunks)


__all__ = ["QueryService", "SearchOutcome", "partitions_for", "build_context", "CONTEXT_SEPARATOR"]
