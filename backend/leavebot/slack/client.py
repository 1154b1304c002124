"""Outbound Slack Web API calls."""

from __future__ import annotations

from typing import Any

import requests

from leavebot.core.logging import get_logger

logger = get_logger(__name__)

SLACK_API_BASE = "https://slack.com/api"


class SlackAPIError(RuntimeError):
    pass


class SlackClient:
    def __init__(self, bot_token: str | None, timeout: float = 10.0, session: requests.Session | None = None) -> None:
        self.bot_token = bot_token
        self.timeout = timeout
        self.session = session or requests.Session()

    def post_message(self, channel: str, text: str, thread_ts: str | None = None) -> dict[str, Any]:
        if not self.bot_token:
            raise SlackAPIError("Slack bot token is not configured")
        payload: dict[str, Any] = {"channel": channel, "text": text}
        if thread_ts:
            payload["thread_ts"] = thread_ts
        resp = self.session.post(
            f"{SLACK_API_BASE}/chat.postMessage",
            json=payload,
            headers={"Authorization": f"Bearer {self.bot_token}"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        data = resp.json()
        if not data.get("ok"):
            raise SlackAPIError(f"chat.postMessage failed: {data.get('error')}")
        return data

    def respond(self, response_url: str, text: str, response_type: str = "in_channel") -> None:
        """Reply to a slash command through its response_url."""
        resp = self.session.post(
            response_url,
            json={"text": text, "response_type": response_type},
            timeout=self.timeout,
        )
        resp.raise_for_status()


__all__ = ["SlackClient", "SlackAPIError"]
