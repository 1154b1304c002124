"""Hashing utilities."""

from __future__ import annotations

import hashlib
import hmac


def sha256_bytes(data: bytes) -> str:
    """Return hex digest for bytes input."""
    return hashlib.sha256(data).hexdigest()


def hmac_sha256(secret: str, message: str) -> str:
    """Return hex HMAC-SHA256 of ``message`` keyed with ``secret``."""
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()
