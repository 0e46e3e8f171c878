"""Vector store protocol for dependency injection."""
from typing import Any, Optional, Protocol, runtime_checkable

from ..models.document import IndexRecord, VectorMatch


@runtime_checkable
class VectorStoreProtocol(Protocol):
    """Protocol for vector storage."""

    def upsert(self, records: list[IndexRecord]) -> None:
        """Insert or replace records by id.

        Args:
            records: Vectors with their document text and metadata.
        """
        ...

    def query(
        self,
        query_embedding: list[float],
        n_results: int = 5,
        where: Optional[dict[str, Any]] = None,
    ) -> list[VectorMatch]:
        """Search by embedding.

        Args:
            query_embedding: Query vector.
            n_results: Number of results to return.
            where: Equality filter on metadata fields.

        Returns:
            Matches ordered by descending similarity.
        """
        ...

    def count(self) -> int:
        """Get record count."""
        ...

    def reset(self) -> None:
        """Drop every record (full rebuild)."""
        ...
