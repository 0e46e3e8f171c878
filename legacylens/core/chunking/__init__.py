"""Structural chunking of source documents."""
from .chunker import STRUCTURED_EXTENSIONS, DocumentChunker, make_chunk_id
from .coverage import uncovered_lines
from .scanner import extract_program_id, is_comment_line, scan
from .windowing import window_lines

__all__ = [
    "STRUCTURED_EXTENSIONS",
    "DocumentChunker",
    "make_chunk_id",
    "uncovered_lines",
    "extract_program_id",
    "is_comment_line",
    "scan",
    "window_lines",
]
