"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from leavebot.core.config import Settings, get_settings
from leavebot.db.sqlite import SQLiteDatabase
from leavebot.ingest.embeddings import EmbeddingModel, get_embedding_model as load_embedding_model
from leavebot.ingest.pipeline import IngestPipeline
from leavebot.qa.answerer import Answerer, OpenAIAnswerer
from leavebot.qa.concurrency import AdmissionGate, SlidingWindowRateLimiter
from leavebot.qa.conversations import ConversationStore
from leavebot.qa.events import EventBus
from leavebot.qa.service import PolicyQAService
from leavebot.retrieval import QueryService, VectorIndex
from leavebot.slack.client import SlackClient
from leavebot.slack.handler import SlackHandler

_DB: SQLiteDatabase | None = None
_VECTOR_INDEX: VectorIndex | None = None
_PIPELINE: IngestPipeline | None = None
_QUERY_SERVICE: QueryService | None = None
_ANSWERER: Answerer | None = None
_GATE: AdmissionGate | None = None
_RATE_LIMITER: SlidingWindowRateLimiter | None = None
_CONVERSATIONS: ConversationStore | None = None
_EVENTS: EventBus | None = None
_QA_SERVICE: PolicyQAService | None = None
_SLACK_CLIENT: SlackClient | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        db = SQLiteDatabase(settings.db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_embedding_model() -> EmbeddingModel:
    return load_embedding_model(get_app_settings())


def get_vector_index() -> VectorIndex:
    global _VECTOR_INDEX
    if _VECTOR_INDEX is None:
        _VECTOR_INDEX = VectorIndex(get_database())
    return _VECTOR_INDEX


def get_ingest_pipeline() -> IngestPipeline:
    global _PIPELINE
    if _PIPELINE is None:
        _PIPELINE = IngestPipeline(
            database=get_database(),
            settings=get_app_settings(),
            embedding_model=get_embedding_model(),
        )
    return _PIPELINE


def get_query_service() -> QueryService:
    global _QUERY_SERVICE
    if _QUERY_SERVICE is None:
        _QUERY_SERVICE = QueryService(
            settings=get_app_settings(),
            vector_index=get_vector_index(),
            embedding_model=get_embedding_model(),
        )
    return _QUERY_SERVICE


def get_answerer() -> Answerer:
    global _ANSWERER
    if _ANSWERER is None:
        _ANSWERER = OpenAIAnswerer(get_app_settings())
    return _ANSWERER


def get_admission_gate() -> AdmissionGate:
    global _GATE
    if _GATE is None:
        settings = get_app_settings()
        _GATE = AdmissionGate(settings.max_concurrent_answers, max_waiting=settings.max_queued_answers)
    return _GATE


def get_rate_limiter() -> SlidingWindowRateLimiter:
    global _RATE_LIMITER
    if _RATE_LIMITER is None:
        settings = get_app_settings()
        _RATE_LIMITER = SlidingWindowRateLimiter(
            settings.rate_limit_requests,
            settings.rate_limit_window_seconds,
        )
    return _RATE_LIMITER


def get_conversations() -> ConversationStore:
    global _CONVERSATIONS
    if _CONVERSATIONS is None:
        settings = get_app_settings()
        _CONVERSATIONS = ConversationStore(
            capacity=settings.conversation_capacity,
            history=settings.conversation_history,
        )
    return _CONVERSATIONS


def get_event_bus() -> EventBus:
    global _EVENTS
    if _EVENTS is None:
        _EVENTS = EventBus()
    return _EVENTS


def get_qa_service() -> PolicyQAService:
    global _QA_SERVICE
    if _QA_SERVICE is None:
        _QA_SERVICE = PolicyQAService(
            query_service=get_query_service(),
            pipeline=get_ingest_pipeline(),
            answerer=get_answerer(),
            gate=get_admission_gate(),
            rate_limiter=get_rate_limiter(),
            events=get_event_bus(),
        )
    return _QA_SERVICE


def get_slack_handler() -> SlackHandler:
    return SlackHandler(signing_secret=get_app_settings().slack_signing_secret or "")


def get_slack_client() -> SlackClient:
    global _SLACK_CLIENT
    if _SLACK_CLIENT is None:
        _SLACK_CLIENT = SlackClient(get_app_settings().slack_bot_token)
    return _SLACK_CLIENT


def reset_dependencies() -> None:
    """Drop every cached singleton so the next request rebuilds them."""
    global _DB, _VECTOR_INDEX, _PIPELINE, _QUERY_SERVICE, _ANSWERER, _GATE
    global _RATE_LIMITER, _CONVERSATIONS, _EVENTS, _QA_SERVICE, _SLACK_CLIENT
    get_app_settings.cache_clear()
    get_settings.cache_clear()
    _DB = None
    _VECTOR_INDEX = None
    _PIPELINE = None
    _QUERY_SERVICE = None
    _ANSWERER = None
    _GATE = None
    _RATE_LIMITER = None
    _CONVERSATIONS = None
    _EVENTS = None
    _QA_SERVICE = None
    _SLACK_CLIENT = None


__all__ = [
    "get_app_settings",
    "get_database",
    "get_embedding_model",
    "get_vector_index",
    "get_ingest_pipeline",
    "get_query_service",
    "get_answerer",
    "get_admission_gate",
    "get_rate_limiter",
    "get_conversations",
    "get_event_bus",
    "get_qa_service",
    "get_slack_handler",
    "get_slack_client",
    "reset_dependencies",
]
