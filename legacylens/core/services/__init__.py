"""Core business services."""
from .answer_service import AnswerService
from .answer_stream import AnswerStream
from .evaluation_service import EvaluationService
from .ingest_service import IngestService
from .search_service import SearchService

__all__ = [
    "AnswerService",
    "AnswerStream",
    "EvaluationService",
    "IngestService",
    "SearchService",
]
