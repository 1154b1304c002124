"""Slack Events API and slash command routes.

Slack expects an acknowledgement within three seconds, so answers are
computed in background tasks and posted back through the Web API.
"""

from __future__ import annotations

from typing import Optional

import orjson
import requests
from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from leavebot.api.dependencies import (
    get_app_settings,
    get_conversations,
    get_qa_service,
    get_slack_client,
    get_slack_handler,
)
from leavebot.core.config import Settings
from leavebot.core.errors import RateLimitedError
from leavebot.core.logging import get_logger
from leavebot.qa.conversations import ConversationStore
from leavebot.qa.service import RATE_LIMITED, PolicyQAService
from leavebot.slack.client import SlackAPIError, SlackClient
from leavebot.slack.handler import SlackHandler, SlackQuestion
from leavebot.utils.text import preview

logger = get_logger(__name__)

router = APIRouter()

COMMAND_ACK = "Looking that up in the leave policies..."


@router.post("/events", summary="Slack Events API webhook")
async def slack_events(
    request: Request,
    background_tasks: BackgroundTasks,
    x_slack_signature: Optional[str] = Header(None),
    x_slack_request_timestamp: Optional[str] = Header(None),
    x_slack_retry_num: Optional[str] = Header(None),
    handler: SlackHandler = Depends(get_slack_handler),
    service: PolicyQAService = Depends(get_qa_service),
    conversations: ConversationStore = Depends(get_conversations),
    client: SlackClient = Depends(get_slack_client),
    settings: Settings = Depends(get_app_settings),
):
    body = await request.body()
    if not handler.verify_signature(body, x_slack_signature or "", x_slack_request_timestamp or ""):
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    if handler.is_url_verification(data):
        return JSONResponse({"challenge": handler.get_challenge(data)})

    if x_slack_retry_num:
        # The first delivery is already being answered.
        logger.info("Ignoring Slack retry %s", x_slack_retry_num)
        return JSONResponse({"ok": True})

    question = handler.parse_event(data)
    if question is not None:
        background_tasks.add_task(
            answer_question, question, service, conversations, client, settings.default_country_code
        )
    return JSONResponse({"ok": True})


@router.post("/commands", summary="Slack slash command webhook")
async def slack_commands(
    request: Request,
    background_tasks: BackgroundTasks,
    x_slack_signature: Optional[str] = Header(None),
    x_slack_request_timestamp: Optional[str] = Header(None),
    handler: SlackHandler = Depends(get_slack_handler),
    service: PolicyQAService = Depends(get_qa_service),
    conversations: ConversationStore = Depends(get_conversations),
    client: SlackClient = Depends(get_slack_client),
    settings: Settings = Depends(get_app_settings),
):
    body = await request.body()
    if not handler.verify_signature(body, x_slack_signature or "", x_slack_request_timestamp or ""):
        raise HTTPException(status_code=401, detail="Invalid signature")

    question = handler.parse_command(body)
    if question is None:
        return JSONResponse({"response_type": "ephemeral", "text": "Unknown command"})
    background_tasks.add_task(
        answer_question, question, service, conversations, client, settings.default_country_code
    )
    return JSONResponse({"response_type": "ephemeral", "text": COMMAND_ACK})


async def answer_question(
    question: SlackQuestion,
    service: PolicyQAService,
    conversations: ConversationStore,
    client: SlackClient,
    country_code: str | None,
) -> None:
    """Answer one Slack question and deliver the reply where it was asked."""
    logger.info(
        "Slack %s from %s: %s",
        question.kind,
        question.user,
        preview(question.text),
        extra={"ctx_channel": question.channel},
    )
    conversation = conversations.get(question.channel, question.user)
    try:
        result = await service.ask(
            question.text,
            requester=question.user,
            country_code=country_code,
            conversation=conversation,
            channel="slack",
        )
        text = result.answer
    except RateLimitedError:
        text = RATE_LIMITED

    try:
        if question.response_url:
            await run_in_threadpool(client.respond, question.response_url, text)
        else:
            await run_in_threadpool(client.post_message, question.channel, text, question.thread_ts)
    except (SlackAPIError, requests.RequestException) as exc:
        logger.error(
            "Failed to deliver Slack reply: %s",
            exc,
            extra={"ctx_channel": question.channel, "ctx_kind": question.kind},
        )


__all__ = ["router", "answer_question"]
