"""Search service - candidate retrieval from the vector index."""

import logging

from ..errors import ValidationError
from ..models.document import Chunk, SearchResult, VectorMatch
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorStoreProtocol

logger = logging.getLogger(__name__)


class SearchService:
    """Embed a query and over-fetch nearest chunks for reranking."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        fetch_factor: int = 2,
        query_prefix: str = "query: ",
        file_context_limit: int = 200,
    ):
        """Initialize search service.

        Args:
            embedder: Embedding service.
            vector_store: Vector store.
            fetch_factor: Candidates fetched per requested result.
            query_prefix: Embedding-model marker for query inputs.
            file_context_limit: Max chunks returned for one file.
        """
        self._embedder = embedder
        self._vector_store = vector_store
        self._fetch_factor = fetch_factor
        self._query_prefix = query_prefix
        self._file_context_limit = file_context_limit

    def search(self, query: str, top_k: int) -> list[SearchResult]:
        """Search candidates by similarity.

        Args:
            query: Search text (may carry a mode prefix).
            top_k: Number of results the caller ultimately wants.

        Returns:
            Up to ``fetch_factor * top_k`` candidates, most similar first.
        """
        if top_k <= 0:
            raise ValidationError("top_k must be positive")

        query_embedding = self._embedder.encode(f"{self._query_prefix}{query}").tolist()

        matches = self._vector_store.query(
            query_embedding=query_embedding, n_results=top_k * self._fetch_factor
        )
        candidates = [self._to_result(m) for m in matches]
        candidates.sort(key=lambda r: r.vector_score, reverse=True)

        logger.info(f"Search: {len(candidates)} candidates for '{query[:50]}...'")
        return candidates

    def file_chunks(self, file_path: str) -> list[Chunk]:
        """All indexed chunks of one file, in reading order.

        Args:
            file_path: Relative path as stored at ingestion.

        Returns:
            Chunks sorted by start line.
        """
        if not file_path:
            raise ValidationError("file_path is required")

        neutral = [0.0] * self._embedder.dimension
        matches = self._vector_store.query(
            query_embedding=neutral,
            n_results=self._file_context_limit,
            where={"file_path": {"$eq": file_path}},
        )
        chunks = [Chunk.from_metadata(m.id, m.metadata, m.document) for m in matches]
        chunks.sort(key=lambda c: c.start_line)

        logger.info(f"File context: {len(chunks)} chunks for {file_path}")
        return chunks

    @staticmethod
    def _to_result(match: VectorMatch) -> SearchResult:
        return SearchResult(
            chunk=Chunk.from_metadata(match.id, match.metadata, match.document),
            vector_score=match.score,
        )
