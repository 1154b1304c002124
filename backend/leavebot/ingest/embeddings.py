"""Embedding utilities."""

from __future__ import annotations

import hashlib
import logging
import math
import re
from dataclasses import dataclass
from typing import Sequence

from openai import OpenAI

from leavebot.core.config import Settings

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+")

# Known output sizes of the OpenAI embedding models.
_OPENAI_DIMS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


@dataclass(slots=True)
class EmbeddingBatch:
    vectors: list[list[float]]
    model: str
    dim: int
    backend: str


class EmbeddingModel:
    """Maps texts to fixed-length vectors, one per input, order preserved."""

    backend = "base"

    def __init__(self, model_name: str, dim: int) -> None:
        self.model_name = model_name
        self._dim = dim

    @property
    def dim(self) -> int:
        return self._dim

    def encode(self, texts: Sequence[str]) -> EmbeddingBatch:  # pragma: no cover - interface
        raise NotImplementedError


class HashedEmbeddingModel(EmbeddingModel):
    """Lightweight hashed bag-of-words embedding with deterministic output."""

    backend = "hashed"

    def encode(self, texts: Sequence[str]) -> EmbeddingBatch:
        vectors: list[list[float]] = []
        for text in texts:
            vector = [0.0] * self._dim
            for token in _tokenize(text):
                vector[_hash_token(token, self._dim)] += 1.0
            _normalize(vector)
            vectors.append(vector)
        return EmbeddingBatch(vectors=vectors, model=self.model_name, dim=self._dim, backend=self.backend)


class OpenAIEmbeddingModel(EmbeddingModel):
    """OpenAI embeddings API, called in batches."""

    backend = "openai"

    def __init__(
        self,
        model_name: str,
        api_key: str | None = None,
        batch_size: int = 100,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(model_name, dim=_OPENAI_DIMS.get(model_name, 1536))
        self.batch_size = batch_size
        self.timeout = timeout
        self._api_key = api_key
        self._client: OpenAI | None = None

    def encode(self, texts: Sequence[str]) -> EmbeddingBatch:
        vectors: list[list[float]] = []
        items = list(texts)
        if not items:
            return EmbeddingBatch(vectors=vectors, model=self.model_name, dim=self._dim, backend=self.backend)
        client = self._get_client()
        for offset in range(0, len(items), self.batch_size):
            batch = items[offset : offset + self.batch_size]
            response = client.embeddings.create(model=self.model_name, input=batch, timeout=self.timeout)
            ordered = sorted(response.data, key=lambda item: item.index)
            vectors.extend(list(item.embedding) for item in ordered)
        if vectors:
            self._dim = len(vectors[0])
        logger.debug("Embedded %s texts with %s", len(items), self.model_name)
        return EmbeddingBatch(vectors=vectors, model=self.model_name, dim=self._dim, backend=self.backend)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key)
        return self._client


_INSTANCES: dict[tuple[str, str], EmbeddingModel] = {}


def get_embedding_model(settings: Settings) -> EmbeddingModel:
    """Return a cached embedding model for the configured backend."""
    key = (settings.embedding_backend, settings.embedding_model)
    if key not in _INSTANCES:
        if settings.embedding_backend == "openai":
            _INSTANCES[key] = OpenAIEmbeddingModel(
                settings.embedding_model,
                api_key=settings.openai_api_key,
                timeout=settings.llm_timeout_seconds,
            )
        else:
            _INSTANCES[key] = HashedEmbeddingModel(settings.embedding_model, dim=settings.embedding_dim)
        logger.info("Loaded %s embedding model %s", settings.embedding_backend, settings.embedding_model)
    return _INSTANCES[key]


def clear_embedding_models() -> None:
    _INSTANCES.clear()


def _tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, "big")
    return value % dim


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = [
    "EmbeddingModel",
    "EmbeddingBatch",
    "HashedEmbeddingModel",
    "OpenAIEmbeddingModel",
    "get_embedding_model",
    "clear_embedding_models",
]
