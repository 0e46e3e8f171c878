"""Document chunker: structural split for COBOL, fixed windows otherwise."""
import hashlib
import logging
import re
from typing import Optional, Sequence

from ..models.document import Chunk, ChunkType, LineRecord, SourceDocument
from .scanner import RawSection, extract_program_id, scan
from .windowing import window_lines

logger = logging.getLogger(__name__)

STRUCTURED_EXTENSIONS = frozenset({".cob", ".cbl", ".cpy"})

_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9]")


def make_chunk_id(file_path: str, start_line: int) -> str:
    """Deterministic id from path and first line.

    The readable part flattens punctuation, so a short digest of the exact
    path keeps ``a-b.cob`` and ``a_b.cob`` apart.
    """
    digest = hashlib.sha1(file_path.encode("utf-8")).hexdigest()[:8]
    return f"{_UNSAFE_ID_CHARS.sub('_', file_path)}_{digest}_L{start_line}"


def _join(lines: Sequence[LineRecord]) -> str:
    return "\n".join(line.text for line in lines)


class DocumentChunker:
    """Split source documents into citeable chunks."""

    def __init__(self, max_chunk_size: int = 1500, overlap_lines: int = 3):
        """Initialize chunker.

        Args:
            max_chunk_size: Nominal chunk size in characters. Structural
                chunks longer than twice this are windowed.
            overlap_lines: Lines shared by adjacent windows.
        """
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        if overlap_lines < 0:
            raise ValueError("overlap_lines must not be negative")
        self._max_chunk_size = max_chunk_size
        self._overlap_lines = overlap_lines

    @staticmethod
    def is_structured(document: SourceDocument) -> bool:
        return document.extension in STRUCTURED_EXTENSIONS

    def chunk(self, document: SourceDocument) -> list[Chunk]:
        """Chunk one document.

        Args:
            document: Source document.

        Returns:
            Chunks ordered by start line, covering every line.
        """
        lines = document.lines()
        if self.is_structured(document):
            chunks = self._chunk_structured(document.path, lines)
        else:
            chunks = self._chunk_fixed(document.path, lines)

        logger.debug(f"Chunked {document.path}: {len(lines)} lines -> {len(chunks)} chunks")
        return chunks

    def _chunk_structured(self, file_path: str, lines: list[LineRecord]) -> list[Chunk]:
        program_id = extract_program_id(lines)
        chunks: list[Chunk] = []

        for section in scan(lines):
            if len(section.content) > self._max_chunk_size * 2:
                chunks.extend(self._split_oversized(file_path, section, program_id))
            else:
                chunks.append(
                    self._make_chunk(
                        file_path,
                        section.lines,
                        section.chunk_type,
                        section.name,
                        section.parent_section,
                        program_id,
                    )
                )

        return chunks

    def _split_oversized(
        self, file_path: str, section: RawSection, program_id: Optional[str]
    ) -> list[Chunk]:
        windows = window_lines(section.lines, self._max_chunk_size, self._overlap_lines)
        multipart = len(windows) > 1
        return [
            self._make_chunk(
                file_path,
                window,
                section.chunk_type,
                f"{section.name} (part {i})" if multipart else section.name,
                section.parent_section,
                program_id,
            )
            for i, window in enumerate(windows, 1)
        ]

    def _chunk_fixed(self, file_path: str, lines: list[LineRecord]) -> list[Chunk]:
        windows = window_lines(lines, self._max_chunk_size, self._overlap_lines)
        return [
            self._make_chunk(file_path, window, ChunkType.FIXED, f"{file_path} (part {i})")
            for i, window in enumerate(windows, 1)
        ]

    @staticmethod
    def _make_chunk(
        file_path: str,
        lines: Sequence[LineRecord],
        chunk_type: ChunkType,
        name: str,
        parent_section: Optional[str] = None,
        program_id: Optional[str] = None,
    ) -> Chunk:
        start_line = lines[0].line_number
        return Chunk(
            id=make_chunk_id(file_path, start_line),
            content=_join(lines),
            file_path=file_path,
            start_line=start_line,
            end_line=lines[-1].line_number,
            chunk_type=chunk_type,
            name=name,
            parent_section=parent_section,
            program_id=program_id,
        )
