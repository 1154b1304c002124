"""Logging utilities for leavebot.

Log lines are single JSON objects on stdout. Any ``extra`` key prefixed with
``ctx_`` is copied into the object without the prefix, e.g.
``extra={"ctx_document_id": ...}`` becomes ``"document_id"``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import orjson

_DEFAULT_LEVEL = os.environ.get("LEAVEBOT_LOG_LEVEL", "INFO")
_DEFAULT_FORMAT = os.environ.get("LEAVEBOT_LOG_FORMAT", "json")
_CONTEXT_PREFIX = "ctx_"

# HTTP clients log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key.startswith(_CONTEXT_PREFIX):
                payload[key[len(_CONTEXT_PREFIX) :]] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode("utf-8")


def configure_logging(level: str | int = _DEFAULT_LEVEL, use_json: bool | None = None) -> None:
    """Install one stdout handler on the root logger."""
    if use_json is None:
        use_json = _DEFAULT_FORMAT.lower() != "text"
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    if use_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.handlers = [handler]
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = "leavebot") -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "configure_logging", "get_logger"]
