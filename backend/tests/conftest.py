"""Test fixtures for leavebot."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from leavebot.core.config import Settings  # noqa: E402
from leavebot.db.sqlite import SQLiteDatabase  # noqa: E402
from leavebot.ingest.embeddings import HashedEmbeddingModel  # noqa: E402
from leavebot.ingest.pipeline import IngestPipeline  # noqa: E402
from leavebot.qa.answerer import Answer, Answerer, Usage  # noqa: E402


class FakeAnswerer(Answerer):
    """Answerer double that records its inputs and echoes a fixed reply."""

    model = "fake-model"

    def __init__(self, reply: str = "Earned leave: 15 days", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def answer(self, question: str, context: str) -> Answer:
        self.calls.append((question, context))
        if self.error is not None:
            raise self.error
        return Answer(text=self.reply, usage=Usage(prompt_tokens=12, completion_tokens=5), model=self.model)


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("LEAVEBOT_DB_PATH", str(tmp_path / "leavebot.db"))
    monkeypatch.delenv("LEAVEBOT_CONFIG", raising=False)
    monkeypatch.delenv("LEAVEBOT_SLACK_SIGNING_SECRET", raising=False)

    from leavebot.api import dependencies as deps
    from leavebot.ingest.embeddings import clear_embedding_models

    clear_embedding_models()
    deps.reset_dependencies()
    yield
    clear_embedding_models()
    deps.reset_dependencies()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(db_path=tmp_path / "unit.db", chunk_size=200, chunk_overlap=20)


@pytest.fixture
def database(settings: Settings) -> SQLiteDatabase:
    db = SQLiteDatabase(settings.db_path)
    db.ensure_schema()
    return db


@pytest.fixture
def embedding_model(settings: Settings) -> HashedEmbeddingModel:
    return HashedEmbeddingModel("test-embedding", dim=settings.embedding_dim)


@pytest.fixture
def pipeline(database: SQLiteDatabase, settings: Settings, embedding_model: HashedEmbeddingModel) -> IngestPipeline:
    return IngestPipeline(database=database, settings=settings, embedding_model=embedding_model)


@pytest.fixture
def fake_answerer() -> FakeAnswerer:
    return FakeAnswerer()


@pytest.fixture(scope="session")
def sample_policy() -> str:
    return (
        "# Leave Policy\n\n"
        "Earned leave: 15 days per calendar year.\n"
        "Casual leave: 12 days per calendar year.\n"
        "Sick leave requires a medical certificate after 3 days.\n"
    )
