"""Document domain models."""
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Optional


class ChunkType(str, Enum):
    """Structural role of a chunk."""
    DIVISION = "division"
    SECTION = "section"
    PARAGRAPH = "paragraph"
    DATA = "data"
    FIXED = "fixed"


@dataclass(frozen=True)
class LineRecord:
    """One source line (1-based)."""
    line_number: int
    text: str


@dataclass(frozen=True)
class SourceDocument:
    """Source file discovered for ingestion."""
    path: str  # relative to the codebase root, POSIX separators
    content: str
    line_count: int = field(default=0)

    def __post_init__(self) -> None:
        if not self.line_count:
            object.__setattr__(self, "line_count", len(self.content.split("\n")))

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix.lower()

    def lines(self) -> list[LineRecord]:
        """Split content into numbered lines."""
        return [
            LineRecord(line_number=i, text=text)
            for i, text in enumerate(self.content.split("\n"), 1)
        ]


@dataclass(frozen=True)
class Chunk:
    """Citeable, line-addressable slice of a source document."""
    id: str
    content: str
    file_path: str
    start_line: int
    end_line: int  # inclusive
    chunk_type: ChunkType
    name: str
    parent_section: Optional[str] = None
    program_id: Optional[str] = None

    @property
    def citation(self) -> str:
        return f"{self.file_path}:{self.start_line}-{self.end_line}"

    def to_metadata(self) -> dict[str, Any]:
        """Flat metadata stored alongside the vector."""
        return {
            "file_path": self.file_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "chunk_type": self.chunk_type.value,
            "name": self.name,
            "parent_section": self.parent_section or "",
            "program_id": self.program_id or "",
        }

    @classmethod
    def from_metadata(
        cls, chunk_id: str, metadata: Optional[dict[str, Any]], content: Optional[str]
    ) -> "Chunk":
        """Rebuild a chunk from an index record.

        The vector index is not trusted to return a complete record: missing
        fields fall back to empty values, unknown chunk types to ``fixed`` and
        empty optional labels to ``None``.
        """
        meta = metadata or {}
        try:
            chunk_type = ChunkType(meta.get("chunk_type") or ChunkType.FIXED.value)
        except ValueError:
            chunk_type = ChunkType.FIXED

        return cls(
            id=chunk_id,
            content=content if isinstance(content, str) else str(meta.get("content") or ""),
            file_path=str(meta.get("file_path") or ""),
            start_line=_as_int(meta.get("start_line")),
            end_line=_as_int(meta.get("end_line")),
            chunk_type=chunk_type,
            name=str(meta.get("name") or ""),
            parent_section=meta.get("parent_section") or None,
            program_id=meta.get("program_id") or None,
        )


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class IndexRecord:
    """Vector plus metadata, as upserted into the vector index."""
    id: str
    embedding: list[float]
    document: str
    metadata: dict[str, Any]


@dataclass(frozen=True)
class VectorMatch:
    """Raw match returned by the vector index."""
    id: str
    score: float
    document: Optional[str]
    metadata: dict[str, Any]


@dataclass(frozen=True)
class SearchResult:
    """Retrieved chunk with its scores."""
    chunk: Chunk
    vector_score: float
    rerank_score: Optional[int] = None

    @property
    def score(self) -> float:
        """Final score (rerank if available, else vector)."""
        return self.rerank_score if self.rerank_score is not None else self.vector_score

    def with_rerank_score(self, rerank_score: int) -> "SearchResult":
        return replace(self, rerank_score=rerank_score)


@dataclass
class SearchResponse:
    """Search response for presentation layer."""
    results: list[SearchResult]
    context: str
    sources: list[str]


@dataclass
class QueryResponse:
    """Non-streaming answer."""
    answer: str
    results: list[SearchResult]
    latency_ms: int


@dataclass
class IngestStats:
    """Counters and timings of one ingestion run."""
    files: int = 0
    structured_files: int = 0
    other_files: int = 0
    lines: int = 0
    chunks: int = 0
    estimated_tokens: int = 0
    discovery_ms: int = 0
    chunking_ms: int = 0
    embedding_ms: int = 0
    upsert_ms: int = 0
    dry_run: bool = False

    @property
    def total_ms(self) -> int:
        return self.discovery_ms + self.chunking_ms + self.embedding_ms + self.upsert_ms
