"""
Request and response models for the LegacyLens API.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from legacylens.core.models.document import Chunk, SearchResult


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case keys; serializes camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QueryRequest(CamelModel):
    """Request body for POST /api/search, /api/query and /api/query/stream."""

    query: str = Field(..., min_length=1, description="User question")
    top_k: Optional[int] = Field(None, ge=1, le=50)


class AnalyzeRequest(QueryRequest):
    """Request body for POST /api/analyze/stream."""

    mode: str = Field(..., min_length=1, description="Analysis mode id")


class FileContextRequest(CamelModel):
    """Request body for POST /api/file-context."""

    file_path: str = Field(..., min_length=1)


class ChunkOut(CamelModel):
    """Chunk as returned to clients."""

    id: str
    content: str
    file_path: str
    start_line: int
    end_line: int
    chunk_type: str
    name: str
    parent_section: Optional[str] = None
    program_id: Optional[str] = None

    @classmethod
    def from_chunk(cls, chunk: Chunk) -> ChunkOut:
        return cls(
            id=chunk.id,
            content=chunk.content,
            file_path=chunk.file_path,
            start_line=chunk.start_line,
            end_line=chunk.end_line,
            chunk_type=chunk.chunk_type.value,
            name=chunk.name,
            parent_section=chunk.parent_section,
            program_id=chunk.program_id,
        )


class SearchResultOut(CamelModel):
    """Ranked result: similarity score plus rerank score when graded."""

    chunk: ChunkOut
    score: float
    rerank_score: Optional[int] = None

    @classmethod
    def from_result(cls, result: SearchResult) -> SearchResultOut:
        return cls(
            chunk=ChunkOut.from_chunk(result.chunk),
            score=result.vector_score,
            rerank_score=result.rerank_score,
        )


class SearchResponse(CamelModel):
    """Response for POST /api/search."""

    query: str
    results: List[SearchResultOut] = Field(default_factory=list)


class QueryResponse(CamelModel):
    """Response for POST /api/query."""

    answer: str
    results: List[SearchResultOut] = Field(default_factory=list)
    latency_ms: int = 0


class FileContextResponse(CamelModel):
    """Response for POST /api/file-context."""

    chunks: List[ChunkOut] = Field(default_factory=list)


class HealthResponse(CamelModel):
    """Response for GET /api/health."""

    status: str = "ok"
    chunks_indexed: int = 0
