"""Chunking utilities."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 2000
DEFAULT_CHUNK_OVERLAP = 300

# Priority order; the first pattern that matches anywhere in the text wins.
HOLIDAY_SECTION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"LIST OF MANDATORY HOLIDAYS.*?Optional Holidays List", re.DOTALL),
    re.compile(r"Mandatory Public Holidays.*?Optional Holidays List", re.DOTALL),
    re.compile(r"Optional Holidays List.*?## Summary", re.DOTALL),
    re.compile(r"Optional Holidays List.*?## Leave Policy Details", re.DOTALL),
)


@dataclass(slots=True)
class Span:
    start: int
    end: int


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Split text into overlapping windows, keeping a holiday list in one piece.

    The holiday span is emitted verbatim even when it is longer than
    ``chunk_size``.
    """
    _check_window(chunk_size, overlap)
    if not text:
        return []

    span = find_holiday_span(text)
    if span is None:
        logger.debug("No holiday section found; chunking %s chars by size", len(text))
        return chunk_by_size(text, chunk_size, overlap)

    chunks: list[str] = []
    chunks.extend(chunk_by_size(text[: span.start], chunk_size, overlap))
    chunks.append(text[span.start : span.end])
    chunks.extend(chunk_by_size(text[span.end :], chunk_size, overlap))
    logger.debug(
        "Kept holiday section of %s chars as one chunk; %s chunks total",
        span.end - span.start,
        len(chunks),
    )
    return chunks


def find_holiday_span(text: str) -> Span | None:
    for pattern in HOLIDAY_SECTION_PATTERNS:
        match = pattern.search(text)
        if match:
            return Span(start=match.start(), end=match.end())
    return None


def chunk_by_size(text: str, chunk_size: int, overlap: int) -> list[str]:
    """Fixed-size sliding window; the last window ends exactly at the text end."""
    _check_window(chunk_size, overlap)
    chunks: list[str] = []
    start = 0
    length = len(text)
    while start < length:
        end = min(length, start + chunk_size)
        chunks.append(text[start:end])
        if end == length:
            break
        start = max(0, end - overlap)
    return chunks


def _check_window(chunk_size: int, overlap: int) -> None:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0:
        raise ValueError("overlap must not be negative")
    if overlap >= chunk_size:
        raise ValueError("overlap must be smaller than chunk_size")


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_CHUNK_OVERLAP",
    "HOLIDAY_SECTION_PATTERNS",
    "Span",
    "chunk_text",
    "chunk_by_size",
    "find_holiday_span",
]
