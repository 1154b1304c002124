"""Retrieval orchestration components."""

from .vector_index import VectorIndex
from .search import QueryService, build_context, partitions_for
from .rerank import DEFAULT_CLASSES, QueryClass, classify, fetch_size, rerank

__all__ = [
    "VectorIndex",
    "QueryService",
    "build_context",
    "partitions_for",
    "DEFAULT_CLASSES",
    "QueryClass",
    "classify",
    "fetch_size",
    "rerank",
]
