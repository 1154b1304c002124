"""Error types shared across ingestion, retrieval and answering."""

from __future__ import annotations


class LeaveBotError(Exception):
    """Base class for recoverable leavebot errors."""


class IngestionError(LeaveBotError):
    """Source text could not be read or parsed; nothing was persisted."""


class DuplicateDocumentError(LeaveBotError):
    """A document with byte-identical content is already indexed."""

    def __init__(self, content_hash: str, existing_id: str | None = None, existing_name: str | None = None) -> None:
        super().__init__(f"Document with content hash {content_hash} already exists")
        self.content_hash = content_hash
        self.existing_id = existing_id
        self.existing_name = existing_name


class RetrievalError(LeaveBotError):
    """Embedding or store failure while searching."""


class AnswererError(LeaveBotError):
    """The language model call failed."""

    def __init__(self, message: str, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class RateLimitedError(LeaveBotError):
    """Requester exceeded the rolling request window."""

    def __init__(self, key: str, retry_after: float) -> None:
        super().__init__(f"Rate limit exceeded for {key}; retry in {retry_after:.1f}s")
        self.key = key
        self.retry_after = retry_after


class AdmissionRejectedError(LeaveBotError):
    """The answer queue is full."""


__all__ = [
    "LeaveBotError",
    "IngestionError",
    "DuplicateDocumentError",
    "RetrievalError",
    "AnswererError",
    "RateLimitedError",
    "AdmissionRejectedError",
]
