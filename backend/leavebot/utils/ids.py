"""Identifier helpers for stored rows."""

from __future__ import annotations

import uuid

DOCUMENT_PREFIX = "doc"
CHUNK_PREFIX = "chk"


def new_id(prefix: str) -> str:
    """Random identifier of the form ``<prefix>_<uuid4 hex>``."""
    return f"{prefix}_{uuid.uuid4().hex}"


def document_id() -> str:
    return new_id(DOCUMENT_PREFIX)


def chunk_id() -> str:
    return new_id(CHUNK_PREFIX)
