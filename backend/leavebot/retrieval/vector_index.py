"""Vector literals and nearest-neighbour search over stored chunks."""

from __future__ import annotations

from array import array
from dataclasses import dataclass
from typing import Iterable, Sequence

from leavebot.db.sqlite import SQLiteDatabase


@dataclass(slots=True)
class SearchResult:
    chunk_id: str
    document_id: str
    country_code: str | None
    content: str
    distance: float

    @property
    def similarity(self) -> float:
        return 1.0 - self.distance


def to_vector_literal(vector: Sequence[float]) -> bytes:
    """Serialize a vector the way the chunks table stores it (float32 array)."""
    return array("f", [float(value) for value in vector]).tobytes()


def from_vector_literal(blob: bytes) -> list[float]:
    floats = array("f")
    floats.frombytes(blob)
    return list(floats)


class VectorIndex:
    """Nearest-neighbour queries against the chunks table.

    Distance is ``1 - dot(a, b)``, the cosine distance for unit vectors, so
    candidates come back in ascending-distance order.
    """

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    @property
    def size(self) -> int:
        row = self.db.query_one("SELECT COUNT(*) AS count FROM chunks")
        return int(row["count"]) if row else 0

    def search(
        self,
        vector: Sequence[float],
        top_k: int,
        partitions: Iterable[str],
    ) -> list[SearchResult]:
        if top_k <= 0:
            return []
        partition_list = sorted(set(partitions))
        placeholders = ",".join("?" for _ in partition_list)
        rows = self.db.query(
            f"""
            SELECT chunks.id, chunks.document_id, chunks.country_code, chunks.content, chunks.embedding
            FROM chunks
            WHERE (chunks.country_code IN ({placeholders}) OR chunks.country_code IS NULL)
              AND chunks.embedding_dim = ?
            ORDER BY chunks.rowid
            """,
            [*partition_list, len(vector)],
        )
        scored = [
            SearchResult(
                chunk_id=row["id"],
                document_id=row["document_id"],
                country_code=row["country_code"],
                content=row["content"],
                distance=1.0 - _dot(from_vector_literal(row["embedding"]), vector),
            )
            for row in rows
        ]
        scored.sort(key=lambda item: item.distance)
        return scored[:top_k]


def _dot(a: Sequence[float], b: Sequence[float]) -> float:
    return sum(x * y for x, y in zip(a, b))


__all__ = ["VectorIndex", "SearchResult", "to_vector_literal", "from_vector_literal"]
