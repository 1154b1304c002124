"""Text processing helpers."""

from __future__ import annotations

import re

WHITESPACE_RE = re.compile(r"\s+")
SLACK_MENTION_RE = re.compile(r"<@[^>]+>")


def normalize(text: str) -> str:
    """Collapse whitespace and strip."""
    return WHITESPACE_RE.sub(" ", text).strip()


def strip_mentions(text: str) -> str:
    """Remove Slack ``<@U123>`` mention markup and tidy whitespace."""
    return normalize(SLACK_MENTION_RE.sub("", text))


def preview(text: str, limit: int = 100) -> str:
    flat = normalize(text)
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."
