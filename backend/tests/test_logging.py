"""Tests for the JSON log formatter."""

from __future__ import annotations

import logging

import orjson

from leavebot.core.logging import JsonFormatter


def test_context_extras_are_flattened() -> None:
    record = logging.LogRecord("leavebot.test", logging.INFO, __file__, 1, "Indexed %s", ("policy",), None)
    record.ctx_document_id = "doc_1"
    payload = orjson.loads(JsonFormatter().format(record))
    assert payload["message"] == "Indexed policy"
    assert payload["logger"] == "leavebot.test"
    assert payload["document_id"] == "doc_1"
    assert "ctx_document_id" not in payload
