"""Question answering: retrieval, fallback context, gated LLM call."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from starlette.concurrency import run_in_threadpool

from leavebot.core.errors import AdmissionRejectedError, AnswererError, RateLimitedError, RetrievalError
from leavebot.core.logging import get_logger
from leavebot.core.metrics import ANSWER_LATENCY, ANSWER_OUTCOMES, LLM_TOKENS
from leavebot.ingest.pipeline import IngestPipeline
from leavebot.qa.answerer import Answerer, Usage
from leavebot.qa.concurrency import AdmissionGate, SlidingWindowRateLimiter
from leavebot.qa.conversations import Conversation
from leavebot.qa.events import EventBus
from leavebot.retrieval.search import QueryService, build_context
from leavebot.utils.time import utc_now_iso

logger = get_logger(__name__)

GREETING = (
    "Hi! I'm your leave policy assistant. Ask me anything about vacation days, sick leave, "
    "maternity/paternity leave, holidays, or other time-off policies."
)
OFF_TOPIC = (
    "I can only help with questions related to leave policies, vacation time, sick leave, "
    "and other time-off policies. Please ask a question about these topics."
)
NO_DOCUMENTS = (
    "I don't have access to any policy documents at the moment. "
    "Please make sure policy documents have been uploaded."
)
FAILURE = "I'm sorry, I encountered an error while processing your question. Please try again later."
RATE_LIMITED = "You're sending questions a little too quickly. Please wait a moment and try again."

POLICY_KEYWORDS = (
    "leave", "vacation", "sick", "holiday", "time off", "pto", "maternity", "paternity",
    "bereavement", "annual", "policy", "days", "hours", "total", "number", "how many",
    "casual", "earned", "marriage", "paw", "tenure", "calendar", "year", "get", "entitled",
)
FOLLOW_UP_PHRASES = (
    "total number", "just give me", "how much", "what is the", "tell me the",
    "give me the", "what are the", "how many total",
)
NON_POLICY_KEYWORDS = ("weather", "password", "lunch", "time now", "date today")


@dataclass(slots=True)
class QAResult:
    question: str
    answer: str
    status: str
    sources: list[str] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)
    context_source: str | None = None


def is_off_topic(question: str) -> bool:
    """True only for questions that are clearly about something other than leave."""
    lowered = question.lower()
    if any(keyword in lowered for keyword in POLICY_KEYWORDS):
        return False
    if any(phrase in lowered for phrase in FOLLOW_UP_PHRASES):
        return False
    return any(keyword in lowered for keyword in NON_POLICY_KEYWORDS)


class PolicyQAService:
    def __init__(
        self,
        query_service: QueryService,
        pipeline: IngestPipeline,
        answerer: Answerer,
        gate: AdmissionGate,
        rate_limiter: SlidingWindowRateLimiter,
        events: EventBus | None = None,
    ) -> None:
        self.query_service = query_service
        self.pipeline = pipeline
        self.answerer = answerer
        self.gate = gate
        self.rate_limiter = rate_limiter
        self.events = events

    async def ask(
        self,
        question: str,
        requester: str,
        country_code: str | None = None,
        conversation: Conversation | None = None,
        channel: str = "api",
    ) -> QAResult:
        """Answer a question; never raises except for rate limiting.

        Any failure after the rate-limit check becomes the FAILURE reply.

        RateLimitedError propagates so the HTTP layer can answer 429; chat
        integrations catch it and reply with RATE_LIMITED.
        """
        started = time.perf_counter()
        question = question.strip()
        if not question:
            return self._finish(QAResult(question, GREETING, "greeting"), channel, started)
        if is_off_topic(question):
            return self._finish(QAResult(question, OFF_TOPIC, "rejected"), channel, started)

        try:
            self.rate_limiter.check(requester)
        except RateLimitedError:
            ANSWER_OUTCOMES.labels(channel=channel, status="rate_limited").inc()
            raise

        prompt = conversation.contextualize(question) if conversation else question
        sources: list[str] = []
        try:
            context, sources, context_source = await self._gather_context(question, country_code)
            if not context.strip():
                return self._finish(QAResult(question, NO_DOCUMENTS, "no_documents"), channel, started)
            async with self.gate:
                answer = await self.answerer.answer(prompt, context)
        except AdmissionRejectedError as exc:
            logger.warning("Answer queue full: %s", exc)
            return self._finish(QAResult(question, FAILURE, "error", sources), channel, started)
        except AnswererError as exc:
            logger.error(
                "Answerer failed: %s",
                exc,
                extra={"ctx_transient": exc.transient, "ctx_requester": requester},
            )
            return self._finish(QAResult(question, FAILURE, "error", sources), channel, started)
        except Exception:
            logger.exception("Unexpected failure answering question", extra={"ctx_requester": requester})
            return self._finish(QAResult(question, FAILURE, "error", sources), channel, started)

        LLM_TOKENS.labels(kind="prompt").inc(answer.usage.prompt_tokens)
        LLM_TOKENS.labels(kind="completion").inc(answer.usage.completion_tokens)
        if conversation is not None:
            conversation.record(question, answer.text)
        result = QAResult(
            question=question,
            answer=answer.text,
            status="ok" if context_source == "retrieval" else "fallback",
            sources=sources,
            usage=answer.usage,
            context_source=context_source,
        )
        self._publish(result, requester, channel, answer.model, started)
        return self._finish(result, channel, started)

    async def _gather_context(self, question: str, country_code: str | None) -> tuple[str, list[str], str]:
        try:
            chunks = await run_in_threadpool(self.query_service.search, question, country_code)
        except RetrievalError as exc:
            logger.warning("Retrieval failed, using full policy text: %s", exc)
            chunks = []
        if chunks:
            sources = list(dict.fromkeys(chunk.document_id for chunk in chunks))
            return build_context(chunks), sources, "retrieval"
        text = await run_in_threadpool(self.pipeline.policy_text, country_code)
        return text, [], "full_text"

    def _publish(self, result: QAResult, requester: str, channel: str, model: str, started: float) -> None:
        if self.events is None:
            return
        event: dict[str, Any] = {
            "channel": channel,
            "requester": requester,
            "question": result.question,
            "answer": result.answer,
            "status": result.status,
            "model": model,
            "prompt_tokens": result.usage.prompt_tokens,
            "completion_tokens": result.usage.completion_tokens,
            "latency_ms": int((time.perf_counter() - started) * 1000),
            "created_at": utc_now_iso(),
        }
        self.events.publish(event)

    def _finish(self, result: QAResult, channel: str, started: float) -> QAResult:
        ANSWER_OUTCOMES.labels(channel=channel, status=result.status).inc()
        ANSWER_LATENCY.labels(channel=channel).observe(time.perf_counter() - started)
        return result


__all__ = [
    "PolicyQAService",
    "QAResult",
    "is_off_topic",
    "GREETING",
    "OFF_TOPIC",
    "NO_DOCUMENTS",
    "FAILURE",
    "RATE_LIMITED",
]
