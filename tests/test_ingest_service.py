"""
Tests for discovery and index rebuilds.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeVectorStore
from legacylens.core.chunking import DocumentChunker, make_chunk_id
from legacylens.core.errors import ValidationError
from legacylens.core.models.document import Chunk, ChunkType, SourceDocument
from legacylens.core.services.ingest_service import IngestService, build_embedding_input
from legacylens.infrastructure.document_loaders import SourceLoader

COBOL = "\n".join(
    [
        "       IDENTIFICATION DIVISION.",
        "       PROGRAM-ID. PAYROLL.",
        "       PROCEDURE DIVISION.",
        "       MAIN-PARA.",
        "           PERFORM CALC-PARA.",
        "       CALC-PARA.",
        "           COMPUTE WS-NET = WS-GROSS - WS-TAX.",
    ]
)


class StaticLoader:
    def __init__(self, documents: list[SourceDocument]):
        self.documents = documents

    def discover(self, root: Path) -> list[SourceDocument]:
        return self.documents


@pytest.fixture
def documents() -> list[SourceDocument]:
    return [
        SourceDocument(path="src/payroll.cob", content=COBOL),
        SourceDocument(path="libcob/common.c", content="\n".join(f"int v{i};" for i in range(40))),
    ]


def _service(embedder, store, documents, tmp_path, **kwargs) -> IngestService:
    return IngestService(
        embedder=embedder,
        vector_store=store,
        chunker=DocumentChunker(max_chunk_size=100),
        codebase_path=str(tmp_path),
        loader=StaticLoader(documents),
        **kwargs,
    )


def test_embedding_input_carries_structure_labels():
    chunk = Chunk(
        id="x",
        content="       CALC-PARA.",
        file_path="src/payroll.cob",
        start_line=6,
        end_line=7,
        chunk_type=ChunkType.PARAGRAPH,
        name="CALC-PARA",
        parent_section="PROCEDURE DIVISION",
        program_id="PAYROLL",
    )
    assert build_embedding_input(chunk).split("\n") == [
        "Program: PAYROLL",
        "Section: PROCEDURE DIVISION",
        "paragraph: CALC-PARA",
        "File: src/payroll.cob (lines 6-7)",
        "       CALC-PARA.",
    ]

    bare = Chunk("y", "int v;", "a.c", 1, 1, ChunkType.FIXED, "a.c (part 1)")
    assert build_embedding_input(bare).startswith("fixed: a.c (part 1)\nFile: a.c (lines 1-1)")


def test_run_rebuilds_index_in_batches(embedder, documents, tmp_path):
    store = FakeVectorStore()
    store.records["stale"] = None
    service = _service(embedder, store, documents, tmp_path, embed_batch_size=3, upsert_batch_size=2)

    stats = service.run()

    assert store.reset_calls == 1
    assert "stale" not in store.records
    assert stats.files == 2
    assert stats.structured_files == 1
    assert stats.other_files == 1
    assert stats.lines == 47
    assert stats.chunks == len(store.records)
    assert all(len(batch) <= 2 for batch in store.upsert_batches)
    assert sum(len(batch) for batch in store.upsert_batches) == stats.chunks
    assert len(embedder.inputs) == stats.chunks
    assert all(text.startswith("passage: ") for text in embedder.inputs)
    assert stats.estimated_tokens > 0


def test_records_store_flat_metadata_and_truncated_content(embedder, documents, tmp_path):
    store = FakeVectorStore()
    _service(embedder, store, documents, tmp_path, content_limit=20).run()

    record = store.records[make_chunk_id("src/payroll.cob", 6)]
    assert record.document == "       CALC-PARA.\n  "
    assert record.metadata == {
        "file_path": "src/payroll.cob",
        "start_line": 6,
        "end_line": 7,
        "chunk_type": "paragraph",
        "name": "CALC-PARA",
        "parent_section": "PROCEDURE DIVISION",
        "program_id": "PAYROLL",
    }
    assert len(record.embedding) == embedder.dimension


def test_dry_run_leaves_index_untouched(embedder, documents, tmp_path):
    store = FakeVectorStore()
    stats = _service(embedder, store, documents, tmp_path).run(dry_run=True)

    assert stats.dry_run
    assert stats.chunks > 0
    assert store.reset_calls == 0
    assert store.upsert_batches == []
    assert embedder.inputs == []


def test_empty_discovery_keeps_existing_index(embedder, tmp_path):
    store = FakeVectorStore()
    stats = _service(embedder, store, [], tmp_path).run()

    assert stats.files == 0
    assert store.reset_calls == 0


def test_missing_codebase_path(embedder, tmp_path):
    service = IngestService(embedder, FakeVectorStore(), DocumentChunker(), codebase_path=str(tmp_path / "nope"))
    with pytest.raises(ValidationError, match="not found"):
        service.discover()
    with pytest.raises(ValidationError):
        service.run()


def test_validate_reports_no_gaps(embedder, documents, tmp_path):
    assert _service(embedder, FakeVectorStore(), documents, tmp_path).validate() == {}


def test_source_loader_walks_codebase(tmp_path):
    (tmp_path / "cobol").mkdir()
    (tmp_path / "cobol" / "b.cbl").write_text(COBOL)
    (tmp_path / "cobol" / "a.cpy").write_text("       01 REC.")
    (tmp_path / "libcob").mkdir()
    (tmp_path / "libcob" / "util.c").write_text("int x;")
    (tmp_path / "README.md").write_text("# docs")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "hook.cob").write_text("x")
    (tmp_path / "big.cob").write_text("x" * 2000)
    (tmp_path / "latin1.cob").write_bytes(b"\xff\xfe bad")

    documents = SourceLoader(max_file_bytes=1000).discover(tmp_path)

    assert [d.path for d in documents] == ["cobol/a.cpy", "cobol/b.cbl", "libcob/util.c"]
    assert documents[1].line_count == 7

    cobol_only = SourceLoader(cobol_only=True).discover(tmp_path)
    assert "libcob/util.c" not in [d.path for d in cobol_only]
