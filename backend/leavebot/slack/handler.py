"""
Slack Handler

Verifies Slack requests and turns Events API payloads and slash commands
into questions for the policy bot.
"""

from __future__ import annotations

import hmac
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs

from leavebot.utils.hashing import hmac_sha256
from leavebot.utils.text import normalize, strip_mentions

MAX_REQUEST_AGE_SECONDS = 300
SLASH_COMMAND = "/leave-policy"


@dataclass(slots=True)
class SlackQuestion:
    """A question addressed to the bot, with where to send the reply."""

    text: str
    user: str
    channel: str
    kind: str  # "mention", "direct_message" or "command"
    ts: Optional[str] = None
    thread_ts: Optional[str] = None
    response_url: Optional[str] = None
    team_id: Optional[str] = None


class SlackHandler:
    """
    Handler for Slack Events API webhooks and slash commands.

    Processes:
    - app_mention events (mention markup is stripped)
    - message events in direct-message channels

    Ignores:
    - Bot messages and message subtypes (edits, joins, deletions)
    - Everything else
    """

    def __init__(self, signing_secret: str = "", clock: Callable[[], float] = time.time):
        self._signing_secret = signing_secret
        self._clock = clock

    def verify_signature(self, body: bytes, signature: str, timestamp: str) -> bool:
        """
        Verify Slack request signature.

        Args:
            body: Raw request body
            signature: X-Slack-Signature header
            timestamp: X-Slack-Request-Timestamp header

        Returns:
            True if signature is valid
        """
        if not self._signing_secret:
            # Verification disabled when no secret is configured (local development).
            return True

        if not signature or not timestamp:
            return False

        try:
            ts = int(timestamp)
        except ValueError:
            return False
        if abs(self._clock() - ts) > MAX_REQUEST_AGE_SECONDS:
            return False

        basestring = f"v0:{timestamp}:{body.decode('utf-8')}"
        expected = "v0=" + hmac_sha256(self._signing_secret, basestring)
        return hmac.compare_digest(expected, signature)

    def is_url_verification(self, raw_data: Dict[str, Any]) -> bool:
        return raw_data.get("type") == "url_verification"

    def get_challenge(self, raw_data: Dict[str, Any]) -> Optional[str]:
        if self.is_url_verification(raw_data):
            return raw_data.get("challenge")
        return None

    def parse_event(self, raw_data: Dict[str, Any]) -> Optional[SlackQuestion]:
        """
        Parse an event callback into a question.

        Returns:
            SlackQuestion, or None if the event should be ignored
        """
        if raw_data.get("type") != "event_callback":
            return None

        event = raw_data.get("event", {})
        if event.get("bot_id") or event.get("subtype"):
            return None

        event_type = event.get("type")
        if event_type == "app_mention":
            kind = "mention"
        elif event_type == "message" and event.get("channel_type") == "im":
            kind = "direct_message"
        else:
            return None

        ts = event.get("ts")
        thread_ts = event.get("thread_ts")
        if kind == "mention" and not thread_ts:
            # Mentions are answered in a thread; DMs reply inline.
            thread_ts = ts
        return SlackQuestion(
            text=strip_mentions(event.get("text", "")),
            user=event.get("user", ""),
            channel=event.get("channel", ""),
            kind=kind,
            ts=ts,
            thread_ts=thread_ts,
            team_id=raw_data.get("team_id"),
        )

    def parse_command(self, body: bytes) -> Optional[SlackQuestion]:
        """Parse a form-encoded slash command body."""
        form = {key: values[0] for key, values in parse_qs(body.decode("utf-8")).items() if values}
        if form.get("command") != SLASH_COMMAND:
            return None
        return SlackQuestion(
            text=normalize(form.get("text", "")),
            user=form.get("user_id", ""),
            channel=form.get("channel_id", ""),
            kind="command",
            response_url=form.get("response_url"),
            team_id=form.get("team_id"),
        )


__all__ = ["SlackHandler", "SlackQuestion", "SLASH_COMMAND"]
