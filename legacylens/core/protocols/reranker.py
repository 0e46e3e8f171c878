"""Reranker protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.document import SearchResult


@runtime_checkable
class RerankerProtocol(Protocol):
    """Protocol for reranking service."""

    async def rerank(
        self,
        query: str,
        results: list[SearchResult],
        top_k: int,
    ) -> list[SearchResult]:
        """Rerank search results by relevance.

        Args:
            query: Literal user query.
            results: Candidates in similarity order.
            top_k: Number of results to keep.

        Returns:
            At most top_k results, best first.
        """
        ...
