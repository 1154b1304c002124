"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from leavebot.core.config import Settings


def test_defaults_match_policy_bot(tmp_path: Path) -> None:
    settings = Settings.from_yaml(tmp_path / "absent.yaml")
    assert settings.chunk_size == 2000
    assert settings.chunk_overlap == 300
    assert settings.top_k == 10
    assert settings.llm_model == "gpt-4o-mini"
    assert settings.db_path == tmp_path / "leavebot.db"


def test_yaml_sections_and_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        "chunking:\n  size: 1000\n  overlap: 100\n"
        "retrieval:\n  top_k: 5\n"
        "rate_limit:\n  requests: 3\n"
        "slack:\n  signing_secret: from-yaml\n"
    )
    monkeypatch.setenv("LEAVEBOT_CONFIG", str(config))
    monkeypatch.setenv("LEAVEBOT_TOP_K", "7")

    settings = Settings.from_yaml()

    assert settings.chunk_size == 1000
    assert settings.chunk_overlap == 100
    assert settings.top_k == 7
    assert settings.rate_limit_requests == 3
    assert settings.slack_signing_secret == "from-yaml"


def test_overlap_must_be_smaller_than_size(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        Settings(db_path=tmp_path / "x.db", chunk_size=100, chunk_overlap=100)
