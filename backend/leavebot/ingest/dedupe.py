"""Deduplication helpers."""

from __future__ import annotations

from leavebot.utils.hashing import sha256_bytes


def content_hash(text: str) -> str:
    """Stable de-duplication key for a document's text."""
    return sha256_bytes(text.encode("utf-8"))


__all__ = ["content_hash"]
