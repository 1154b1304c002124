"""Tests for embedding utilities."""

from types import SimpleNamespace

from leavebot.core.config import Settings
from leavebot.ingest.embeddings import (
    HashedEmbeddingModel,
    OpenAIEmbeddingModel,
    clear_embedding_models,
    get_embedding_model,
)


def test_hashed_embedding_unit_vectors() -> None:
    model = HashedEmbeddingModel("dummy-model", dim=64)
    vectors = model.encode(["hello", "world"]).vectors
    assert len(vectors) == 2
    assert all(len(vec) == model.dim for vec in vectors)
    assert abs(sum(value * value for value in vectors[0]) - 1.0) < 1e-6


def test_hashed_embedding_is_deterministic() -> None:
    model = HashedEmbeddingModel("dummy-model", dim=64)
    first = model.encode(["Casual leave: 12 days"]).vectors[0]
    second = model.encode(["casual LEAVE 12 days"]).vectors[0]
    assert first == second


def test_empty_text_embeds_to_zero_vector() -> None:
    batch = HashedEmbeddingModel("dummy-model", dim=8).encode([""])
    assert batch.vectors == [[0.0] * 8]
    assert batch.backend == "hashed"


def test_model_cache_per_backend(tmp_path) -> None:
    settings = Settings(db_path=tmp_path / "x.db")
    assert get_embedding_model(settings) is get_embedding_model(settings)
    openai_settings = settings.model_copy(update={"embedding_backend": "openai", "openai_api_key": "sk-test"})
    model = get_embedding_model(openai_settings)
    assert isinstance(model, OpenAIEmbeddingModel)
    assert model.dim == 1536
    clear_embedding_models()
    assert get_embedding_model(settings) is not None


class StubEmbeddings:
    def __init__(self) -> None:
        self.batches: list[list[str]] = []

    def create(self, model: str, input: list[str], timeout: float):
        self.batches.append(list(input))
        data = [SimpleNamespace(index=idx, embedding=[float(len(text)), float(idx)]) for idx, text in enumerate(input)]
        # Out of index order.
        return SimpleNamespace(data=list(reversed(data)))


def test_openai_embeddings_batched_and_ordered_by_index() -> None:
    model = OpenAIEmbeddingModel("text-embedding-3-small", api_key="sk-test", batch_size=2)
    stub = StubEmbeddings()
    model._client = SimpleNamespace(embeddings=stub)

    batch = model.encode(["a", "bb", "ccc"])

    assert stub.batches == [["a", "bb"], ["ccc"]]
    assert batch.vectors == [[1.0, 0.0], [2.0, 1.0], [3.0, 0.0]]
    assert batch.dim == 2
    assert batch.backend == "openai"


def test_openai_embeddings_skip_client_for_no_texts(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    model = OpenAIEmbeddingModel("text-embedding-3-small")

    batch = model.encode([])

    assert batch.vectors == []
    assert batch.dim == 1536
    assert model._client is None
