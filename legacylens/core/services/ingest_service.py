"""Ingest service - full rebuild of the chunk index."""

import logging
import math
import time
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..chunking import DocumentChunker, uncovered_lines
from ..errors import ValidationError
from ..models.document import Chunk, IndexRecord, IngestStats, SourceDocument
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorStoreProtocol

if TYPE_CHECKING:
    from legacylens.infrastructure.document_loaders import SourceLoader

logger = logging.getLogger(__name__)


def build_embedding_input(chunk: Chunk) -> str:
    """Chunk text with its structural labels, as sent to the embedder."""
    parts = []
    if chunk.program_id:
        parts.append(f"Program: {chunk.program_id}")
    if chunk.parent_section:
        parts.append(f"Section: {chunk.parent_section}")
    parts.append(f"{chunk.chunk_type.value}: {chunk.name}")
    parts.append(f"File: {chunk.file_path} (lines {chunk.start_line}-{chunk.end_line})")
    parts.append(chunk.content)
    return "\n".join(parts)


class IngestService:
    """Service for indexing a codebase into the vector store."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        chunker: DocumentChunker,
        codebase_path: str = "./target-codebase",
        loader: Optional["SourceLoader"] = None,
        passage_prefix: str = "passage: ",
        embed_batch_size: int = 100,
        upsert_batch_size: int = 100,
        content_limit: int = 10_000,
    ):
        """Initialize ingest service.

        Args:
            embedder: Embedding service.
            vector_store: Vector store.
            chunker: Document chunker.
            codebase_path: Root folder of the codebase.
            loader: Source discovery (default loader if omitted).
            passage_prefix: Embedding-model marker for indexed passages.
            embed_batch_size: Texts per embedding call.
            upsert_batch_size: Records per upsert call.
            content_limit: Max characters of chunk content stored.
        """
        self._embedder = embedder
        self._vector_store = vector_store
        self._chunker = chunker
        self._codebase_path = Path(codebase_path)
        self._loader = loader
        self._passage_prefix = passage_prefix
        self._embed_batch_size = embed_batch_size
        self._upsert_batch_size = upsert_batch_size
        self._content_limit = content_limit

    @property
    def loader(self) -> "SourceLoader":
        """Lazy load source loader."""
        if self._loader is None:
            from legacylens.infrastructure.document_loaders import SourceLoader

            self._loader = SourceLoader()
        return self._loader

    def discover(self, path: Optional[str] = None) -> list[SourceDocument]:
        root = Path(path) if path else self._codebase_path
        if not root.exists():
            raise ValidationError(f"Codebase path not found: {root}")
        return self.loader.discover(root)

    def run(self, path: Optional[str] = None, dry_run: bool = False) -> IngestStats:
        """Rebuild the index from scratch.

        Args:
            path: Codebase root (configured path if omitted).
            dry_run: Discover and chunk only.

        Returns:
            Counters and timings.
        """
        stats = IngestStats(dry_run=dry_run)

        t0 = time.perf_counter()
        documents = self.discover(path)
        stats.discovery_ms = _elapsed_ms(t0)

        if not documents:
            logger.warning("No source files found, index left untouched")
            return stats

        t0 = time.perf_counter()
        chunks: list[Chunk] = []
        for document in documents:
            chunks.extend(self._chunker.chunk(document))
            if self._chunker.is_structured(document):
                stats.structured_files += 1
            else:
                stats.other_files += 1
            stats.lines += document.line_count
        stats.chunking_ms = _elapsed_ms(t0)

        stats.files = len(documents)
        stats.chunks = len(chunks)
        texts = [build_embedding_input(c) for c in chunks]
        stats.estimated_tokens = sum(math.ceil(len(t) / 4) for t in texts)

        logger.info(
            f"Chunked {stats.files} files ({stats.structured_files} structured, "
            f"{stats.other_files} fixed-size) into {stats.chunks} chunks"
        )

        if dry_run:
            return stats

        t0 = time.perf_counter()
        embeddings = self._embed(texts)
        stats.embedding_ms = _elapsed_ms(t0)

        t0 = time.perf_counter()
        self._vector_store.reset()
        self._upsert(chunks, embeddings)
        stats.upsert_ms = _elapsed_ms(t0)

        logger.info(
            f"Indexing complete: {stats.chunks} chunks from {stats.files} files "
            f"in {stats.total_ms / 1000:.1f}s"
        )
        return stats

    def validate(self, path: Optional[str] = None) -> dict[str, list[int]]:
        """Chunk every file and report lines left uncovered.

        Returns:
            File path -> uncovered line numbers, for files with gaps only.
        """
        gaps: dict[str, list[int]] = {}
        for document in self.discover(path):
            missing = uncovered_lines(self._chunker.chunk(document), document.line_count)
            if missing:
                gaps[document.path] = missing
                logger.warning(f"{document.path}: {len(missing)} uncovered lines")
        return gaps

    def _embed(self, texts: list[str]) -> list[list[float]]:
        embeddings: list[list[float]] = []
        for i in range(0, len(texts), self._embed_batch_size):
            batch = texts[i : i + self._embed_batch_size]
            vectors = self._embedder.encode([f"{self._passage_prefix}{t}" for t in batch])
            embeddings.extend(vectors.tolist())
            logger.info(f"Embedded {min(i + self._embed_batch_size, len(texts))}/{len(texts)} chunks")
        return embeddings

    def _upsert(self, chunks: list[Chunk], embeddings: list[list[float]]) -> None:
        for i in range(0, len(chunks), self._upsert_batch_size):
            batch = chunks[i : i + self._upsert_batch_size]
            records = [
                IndexRecord(
                    id=c.id,
                    embedding=embeddings[i + j],
                    document=c.content[: self._content_limit],
                    metadata=c.to_metadata(),
                )
                for j, c in enumerate(batch)
            ]
            self._vector_store.upsert(records)
            logger.info(f"Upserted {min(i + self._upsert_batch_size, len(chunks))}/{len(chunks)} vectors")


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
