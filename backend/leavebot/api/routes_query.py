"""Search, question answering and live event routes."""

from __future__ import annotations

import math
from typing import AsyncIterator

import orjson
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse

from leavebot.api.dependencies import (
    get_conversations,
    get_event_bus,
    get_qa_service,
    get_query_service,
)
from leavebot.core.errors import RateLimitedError, RetrievalError
from leavebot.models.dto import AskRequest, AskResponse, ChunkResult, SearchRequest, SearchResponse
from leavebot.qa.conversations import ConversationStore
from leavebot.qa.events import EventBus
from leavebot.qa.service import RATE_LIMITED, PolicyQAService
from leavebot.retrieval.search import QueryService

router = APIRouter()


@router.post("/search", response_model=SearchResponse, summary="Retrieve policy chunks for a query")
def run_search(
    request: SearchRequest,
    service: QueryService = Depends(get_query_service),
) -> SearchResponse:
    try:
        outcome = service.run(request.query, country_code=request.country_code, top_k=request.top_k)
    except RetrievalError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return SearchResponse(
        query=outcome.query,
        classification=outcome.classification,
        results=[
            ChunkResult(
                chunk_id=chunk.chunk_id,
                document_id=chunk.document_id,
                country_code=chunk.country_code,
                content=chunk.content,
                similarity=chunk.similarity,
            )
            for chunk in outcome.results
        ],
    )


@router.post("/ask", response_model=AskResponse, summary="Answer a leave policy question")
async def ask(
    request: AskRequest,
    http_request: Request,
    service: PolicyQAService = Depends(get_qa_service),
    conversations: ConversationStore = Depends(get_conversations),
):
    requester = request.user_id or (http_request.client.host if http_request.client else "anonymous")
    conversation = conversations.get("api", request.user_id) if request.user_id else None
    try:
        result = await service.ask(
            request.question,
            requester=requester,
            country_code=request.country_code,
            conversation=conversation,
            channel="api",
        )
    except RateLimitedError as exc:
        return JSONResponse(
            status_code=429,
            content={"detail": RATE_LIMITED, "retry_after": round(exc.retry_after, 3)},
            headers={"Retry-After": str(max(1, math.ceil(exc.retry_after)))},
        )
    return AskResponse(
        question=result.question,
        answer=result.answer,
        status=result.status,
        sources=result.sources,
    )


@router.get("/events", summary="Stream answered questions as server-sent events")
async def stream_events(bus: EventBus = Depends(get_event_bus)) -> StreamingResponse:
    return StreamingResponse(event_stream(bus), media_type="text/event-stream")


async def event_stream(bus: EventBus) -> AsyncIterator[bytes]:
    """Subscribe on first iteration and unsubscribe when the stream ends."""
    async with bus.listen() as subscription:
        async for event in subscription:
            yield b"event: message\ndata: " + orjson.dumps(event) + b"\n\n"


__all__ = ["router"]
