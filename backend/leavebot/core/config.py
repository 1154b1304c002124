"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

ENV_PREFIX = "LEAVEBOT_"
DEFAULT_CONFIG_PATH = Path("~/.config/leavebot/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("embeddings", "backend"): "embedding_backend",
    ("embeddings", "model"): "embedding_model",
    ("embeddings", "dim"): "embedding_dim",
    ("embeddings", "version"): "embedding_version",
    ("chunking", "size"): "chunk_size",
    ("chunking", "overlap"): "chunk_overlap",
    ("retrieval", "top_k"): "top_k",
    ("llm", "model"): "llm_model",
    ("llm", "max_tokens"): "llm_max_tokens",
    ("llm", "temperature"): "llm_temperature",
    ("llm", "timeout_seconds"): "llm_timeout_seconds",
    ("llm", "max_concurrent"): "max_concurrent_answers",
    ("llm", "max_queued"): "max_queued_answers",
    ("rate_limit", "requests"): "rate_limit_requests",
    ("rate_limit", "window_seconds"): "rate_limit_window_seconds",
    ("conversations", "capacity"): "conversation_capacity",
    ("conversations", "history"): "conversation_history",
    ("slack", "bot_token"): "slack_bot_token",
    ("slack", "signing_secret"): "slack_signing_secret",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".leavebot" / "leavebot.db")
    embedding_backend: Literal["hashed", "openai"] = "hashed"
    embedding_model: str = "text-embedding-3-small"
    embedding_dim: int = Field(default=384, gt=0)
    embedding_version: str = "v2.1"
    chunk_size: int = Field(default=2000, gt=0)
    chunk_overlap: int = Field(default=300, ge=0)
    top_k: int = Field(default=10, ge=1)
    default_country_code: str = "IN"
    openai_api_key: str | None = None
    llm_model: str = "gpt-4o-mini"
    llm_max_tokens: int = 1000
    llm_temperature: float = 0.3
    llm_timeout_seconds: float = 30.0
    max_concurrent_answers: int = Field(default=4, ge=1)
    max_queued_answers: int = Field(default=32, ge=0)
    rate_limit_requests: int = Field(default=10, ge=1)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    conversation_capacity: int = Field(default=1000, ge=1)
    conversation_history: int = Field(default=10, ge=2)
    slack_bot_token: str | None = None
    slack_signing_secret: str | None = None

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("db_path must be a path or string")

    @model_validator(mode="after")
    def _check_overlap(self) -> "Settings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with LEAVEBOT_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
