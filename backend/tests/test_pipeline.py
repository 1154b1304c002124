"""Tests for document indexing and file ingestion."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from leavebot.core.errors import DuplicateDocumentError, IngestionError
from leavebot.ingest.dedupe import content_hash
from leavebot.ingest.loaders import LoaderRegistry
from leavebot.ingest.pipeline import IngestPipeline


def test_index_document_persists_chunks(pipeline: IngestPipeline, sample_policy: str) -> None:
    result = pipeline.index_document("India policy", sample_policy * 3, country_code="IN")

    assert result.chunk_count > 1
    assert result.content_hash == content_hash(sample_policy * 3)
    assert pipeline.chunk_count(result.document_id) == result.chunk_count
    document = pipeline.get_document(result.document_id)
    assert document is not None
    assert document.status == "active"
    assert document.vector_status == "indexed"
    assert document.country_code == "IN"

    rows = pipeline.db.query(
        "SELECT ordinal, country_code FROM chunks WHERE document_id = ? ORDER BY ordinal",
        [result.document_id],
    )
    assert [row["ordinal"] for row in rows] == list(range(result.chunk_count))
    assert {row["country_code"] for row in rows} == {"IN"}


def test_duplicate_content_is_rejected(pipeline: IngestPipeline, sample_policy: str) -> None:
    first = pipeline.index_document("policy", sample_policy)
    with pytest.raises(DuplicateDocumentError) as excinfo:
        pipeline.index_document("policy copy", sample_policy, country_code="US")
    assert excinfo.value.existing_id == first.document_id
    assert pipeline.document_count() == 1


def test_racing_duplicate_maps_unique_violation(
    pipeline: IngestPipeline, sample_policy: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    first = pipeline.index_document("policy", sample_policy)
    real_find = pipeline.find_by_hash
    calls = {"count": 0}

    def stale_then_real(digest: str):
        calls["count"] += 1
        return None if calls["count"] == 1 else real_find(digest)

    monkeypatch.setattr(pipeline, "find_by_hash", stale_then_real)
    with pytest.raises(DuplicateDocumentError) as excinfo:
        pipeline.index_document("policy again", sample_policy)
    assert excinfo.value.existing_id == first.document_id
    assert pipeline.document_count() == 1


def test_failed_chunk_insert_rolls_back_document(pipeline: IngestPipeline, sample_policy: str) -> None:
    pipeline.db.executescript(
        "CREATE TRIGGER reject_chunks BEFORE INSERT ON chunks BEGIN SELECT RAISE(ABORT, 'disk full'); END;"
    )
    with pytest.raises(sqlite3.DatabaseError):
        pipeline.index_document("policy", sample_policy)
    assert pipeline.find_by_hash(content_hash(sample_policy)) is None
    assert pipeline.db.query_one("SELECT COUNT(*) AS count FROM documents")["count"] == 0
    assert pipeline.db.query_one("SELECT COUNT(*) AS count FROM chunks")["count"] == 0


def test_empty_document_has_no_chunks(pipeline: IngestPipeline) -> None:
    result = pipeline.index_document("blank", "")
    assert result.chunk_count == 0
    assert pipeline.get_document(result.document_id).vector_status == "indexed"


def test_delete_cascades_to_chunks(pipeline: IngestPipeline, sample_policy: str) -> None:
    result = pipeline.index_document("policy", sample_policy * 2)
    assert pipeline.delete_document(result.document_id) is True
    assert pipeline.chunk_count(result.document_id) == 0
    assert pipeline.get_document(result.document_id) is None
    assert pipeline.delete_document(result.document_id) is False


def test_policy_text_respects_partitions(pipeline: IngestPipeline) -> None:
    pipeline.index_document("India", "Casual leave: 12 days.", country_code="IN")
    pipeline.index_document("United States", "PTO: 20 days.", country_code="US")
    pipeline.index_document("Everyone", "Holidays follow the regional calendar.")

    text = pipeline.policy_text("IN")

    assert "\n--- India ---\nCasual leave: 12 days." in text
    assert "\n--- Everyone ---\n" in text
    assert "PTO" not in text
    assert pipeline.policy_text("US").count("--- ") == 2


def test_ingest_paths_reports_each_file(pipeline: IngestPipeline, tmp_path: Path) -> None:
    docs = tmp_path / "policies"
    docs.mkdir()
    (docs / "a.md").write_text("---\ntitle: Leave Handbook\n---\n# Leave\n\nEarned leave: 15 days.\n")
    (docs / "b.txt").write_text("Sick leave: 10 days.")
    (docs / "c.csv").write_text("type,days\nsick,10\n")
    (docs / "dup.txt").write_text("Sick leave: 10 days.")
    (docs / ".hidden.md").write_text("# Hidden\n")

    payload = pipeline.ingest_paths([docs, tmp_path / "missing"], country_code="IN")

    assert payload["stats"] == {"processed": 2, "skipped": 1, "failed": 1, "chunks": 2}
    statuses = {Path(item["path"]).name: item["status"] for item in payload["results"]}
    assert statuses == {"a.md": "processed", "b.txt": "processed", "dup.txt": "skipped", "missing": "error"}
    names = {row["name"] for row in pipeline.db.query("SELECT name FROM documents")}
    assert names == {"Leave Handbook", "b"}


def test_markdown_loader_keeps_raw_body(tmp_path: Path) -> None:
    path = tmp_path / "policy.md"
    path.write_text("# Holidays\n\nOptional Holidays List\n- Diwali\n\n## Summary\n12 days\n")
    loaded = LoaderRegistry().load(path)
    assert loaded.title == "Holidays"
    assert "## Summary" in loaded.text
    assert loaded.file_type == ".md"


def test_unsupported_file_raises_ingestion_error(tmp_path: Path) -> None:
    path = tmp_path / "policy.xlsx"
    path.write_bytes(b"\x00\x01")
    with pytest.raises(IngestionError):
        LoaderRegistry().load(path)


def test_corrupt_pdf_raises_ingestion_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"not really a pdf")
    with pytest.raises(IngestionError):
        LoaderRegistry().load(path)
