"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "leavebot_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "leavebot_request_latency_seconds",
    "Latency of HTTP requests",
    labelnames=("endpoint", "method"),
    registry=REGISTRY,
)

INGEST_DURATION = Histogram(
    "leavebot_ingest_duration_seconds",
    "Document indexing duration",
    labelnames=("source",),
    registry=REGISTRY,
)

INDEX_SIZE = Gauge(
    "leavebot_index_chunks",
    "Number of chunks stored in the document store",
    registry=REGISTRY,
)

ANSWER_LATENCY = Histogram(
    "leavebot_answer_latency_seconds",
    "End-to-end latency of answered questions",
    labelnames=("channel",),
    registry=REGISTRY,
)

ANSWER_OUTCOMES = Counter(
    "leavebot_answers_total",
    "Question outcomes",
    labelnames=("channel", "status"),
    registry=REGISTRY,
)

LLM_TOKENS = Counter(
    "leavebot_llm_tokens_total",
    "Tokens consumed by the language model",
    labelnames=("kind",),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "INGEST_DURATION",
    "INDEX_SIZE",
    "ANSWER_LATENCY",
    "ANSWER_OUTCOMES",
    "LLM_TOKENS",
    "metrics_response",
]
