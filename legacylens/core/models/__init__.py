"""Domain models."""
from .document import (
    Chunk,
    ChunkType,
    IndexRecord,
    IngestStats,
    LineRecord,
    QueryResponse,
    SearchResponse,
    SearchResult,
    SourceDocument,
    VectorMatch,
)
from .evaluation import EvalCase, EvalReport, EvalResult, EvalTargets, LatencySummary, ModeStats
from .events import DoneEvent, SourcesEvent, StreamEvent, StreamState, TokenEvent
from .mode import ModeConfig

__all__ = [
    "Chunk",
    "ChunkType",
    "IndexRecord",
    "IngestStats",
    "LineRecord",
    "QueryResponse",
    "SearchResponse",
    "SearchResult",
    "SourceDocument",
    "VectorMatch",
    "EvalCase",
    "EvalReport",
    "EvalResult",
    "EvalTargets",
    "LatencySummary",
    "ModeStats",
    "DoneEvent",
    "SourcesEvent",
    "StreamEvent",
    "StreamState",
    "TokenEvent",
    "ModeConfig",
]
