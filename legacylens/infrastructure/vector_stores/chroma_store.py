import logging
from typing import Any, Optional

import requests

from legacylens.core.errors import UpstreamServiceError
from legacylens.core.models.document import IndexRecord, VectorMatch

logger = logging.getLogger(__name__)


class ChromaVectorStore:
    """Vector store using ChromaDB HTTP API."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8001,
        collection_name: str = "legacylens",
        tenant: str = "default_tenant",
        database: str = "default_database",
        timeout: float = 30.0,
    ):
        """Initialize ChromaDB client.

        Args:
            host: ChromaDB host.
            port: ChromaDB port.
            collection_name: Collection name.
            tenant: Tenant name.
            database: Database name.
            timeout: Request timeout in seconds.
        """
        self._base_url = f"http://{host}:{port}/api/v2"
        self._tenant = tenant
        self._database = database
        self._collection_name = collection_name
        self._collection_id: Optional[str] = None
        self._timeout = timeout

    @property
    def _collections_url(self) -> str:
        return f"{self._base_url}/tenants/{self._tenant}/databases/{self._database}/collections"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            resp = requests.request(method, url, timeout=self._timeout, **kwargs)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise UpstreamServiceError("vector index", str(e)) from e
        return resp

    def _ensure_collection(self) -> str:
        """Get or create collection, return ID."""
        if self._collection_id:
            return self._collection_id

        for col in self._request("GET", self._collections_url).json():
            if col["name"] == self._collection_name:
                self._collection_id = col["id"]
                return self._collection_id

        resp = self._request(
            "POST",
            self._collections_url,
            json={"name": self._collection_name, "metadata": {"hnsw:space": "cosine"}},
        )
        self._collection_id = resp.json()["id"]
        logger.info(f"Created collection: {self._collection_name}")
        return self._collection_id

    def upsert(self, records: list[IndexRecord]) -> None:
        """Insert or replace records by id."""
        if not records:
            return
        col_id = self._ensure_collection()
        self._request(
            "POST",
            f"{self._collections_url}/{col_id}/upsert",
            json={
                "ids": [r.id for r in records],
                "embeddings": [r.embedding for r in records],
                "documents": [r.document for r in records],
                "metadatas": [r.metadata for r in records],
            },
        )

    def query(
        self,
        query_embedding: list[float],
        n_results: int = 5,
        where: Optional[dict[str, Any]] = None,
    ) -> list[VectorMatch]:
        """Search by embedding.

        An all-zero vector carries no ranking signal, so it is served as a
        filtered get with similarity 0.0.
        """
        if not any(query_embedding):
            return self._get(n_results, where)

        col_id = self._ensure_collection()
        payload: dict[str, Any] = {
            "query_embeddings": [query_embedding],
            "n_results": n_results,
            "include": ["documents", "metadatas", "distances"],
        }
        if where:
            payload["where"] = where
        data = self._request("POST", f"{self._collections_url}/{col_id}/query", json=payload).json()

        results = []
        if data.get("ids") and data["ids"][0]:
            documents = (data.get("documents") or [[]])[0] or []
            metadatas = (data.get("metadatas") or [[]])[0] or []
            for i, chunk_id in enumerate(data["ids"][0]):
                distance = data["distances"][0][i]
                results.append(
                    VectorMatch(
                        id=chunk_id,
                        score=1.0 - distance,
                        document=documents[i] if i < len(documents) else None,
                        metadata=(metadatas[i] if i < len(metadatas) else None) or {},
                    )
                )

        return results

    def _get(self, limit: int, where: Optional[dict[str, Any]]) -> list[VectorMatch]:
        col_id = self._ensure_collection()
        payload: dict[str, Any] = {"limit": limit, "include": ["documents", "metadatas"]}
        if where:
            payload["where"] = where
        data = self._request("POST", f"{self._collections_url}/{col_id}/get", json=payload).json()

        documents = data.get("documents") or []
        metadatas = data.get("metadatas") or []
        return [
            VectorMatch(
                id=chunk_id,
                score=0.0,
                document=documents[i] if i < len(documents) else None,
                metadata=(metadatas[i] if i < len(metadatas) else None) or {},
            )
            for i, chunk_id in enumerate(data.get("ids") or [])
        ]

    def count(self) -> int:
        """Get record count."""
        col_id = self._ensure_collection()
        return int(self._request("GET", f"{self._collections_url}/{col_id}/count").json())

    def reset(self) -> None:
        """Drop and recreate the collection."""
        try:
            resp = requests.delete(
                f"{self._collections_url}/{self._collection_name}", timeout=self._timeout
            )
        except requests.RequestException as e:
            raise UpstreamServiceError("vector index", str(e)) from e
        if resp.status_code not in (200, 404):
            raise UpstreamServiceError("vector index", f"delete failed: {resp.status_code} {resp.text}")
        self._collection_id = None
        self._ensure_collection()
        logger.info(f"Reset collection: {self._collection_name}")
