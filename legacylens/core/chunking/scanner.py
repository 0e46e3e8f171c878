"""Line scanner that splits COBOL source at structural boundaries.

The scanner is a small finite-state machine. Its state holds the current
division, section and chunk label plus the index where the pending
accumulator starts; the accumulator itself is the slice of lines between
that index and the line being read. Every line is tested against a fixed
priority list of classifiers:

1. division header (``PROCEDURE DIVISION.``)
2. section header (``WORKING-STORAGE SECTION.``), never on comment lines
3. paragraph label (``MAIN-PARA.``), procedure division only
4. level-01 data item (``01 WS-RECORD.``), data division only

A match closes the pending accumulator under the labels that were current
*before* the match and opens a new one starting at the matching line.
Lines that match nothing join the current accumulator, including lines
that only look structural in an unexpected place.
"""
import re
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from ..models.document import ChunkType, LineRecord

PREAMBLE = "PREAMBLE"
DATA_DIVISION = "DATA DIVISION"
PROCEDURE_DIVISION = "PROCEDURE DIVISION"

DIVISION_RE = re.compile(
    r"^\s*(IDENTIFICATION|ENVIRONMENT|DATA|PROCEDURE)\s+DIVISION", re.IGNORECASE
)
SECTION_RE = re.compile(r"^\s*([\w-]+)\s+SECTION\s*\.?\s*$", re.IGNORECASE | re.ASCII)
PARAGRAPH_RE = re.compile(r"^\s*([\w-]+)\s*\.\s*$", re.ASCII)
LEVEL_NUMBER_RE = re.compile(r"^\s*\d")
DATA_ITEM_RE = re.compile(r"^\s*01\s+", re.IGNORECASE)
DATA_NAME_RE = re.compile(r"^\s*01\s+([\w-]+)", re.IGNORECASE | re.ASCII)
PROGRAM_ID_RE = re.compile(r"^\s*PROGRAM-ID\.\s*([\w-]+)", re.IGNORECASE | re.ASCII)

# Fixed format puts the indicator in column 7.
INDICATOR_COLUMN = 6
COMMENT_INDICATOR = "*"
FREE_COMMENT_MARKER = "*>"


def is_comment_line(text: str) -> bool:
    """Fixed-format ``*`` indicator or free-format ``*>`` comment."""
    if len(text) > INDICATOR_COLUMN and text[INDICATOR_COLUMN] == COMMENT_INDICATOR:
        return True
    return text.lstrip().startswith(FREE_COMMENT_MARKER)


def extract_program_id(lines: Sequence[LineRecord]) -> Optional[str]:
    """First ``PROGRAM-ID.`` declaration in the document, if any."""
    for line in lines:
        match = PROGRAM_ID_RE.match(line.text)
        if match:
            return match.group(1)
    return None


@dataclass(frozen=True)
class RawSection:
    """Structurally delimited run of lines, before ids are assigned."""
    lines: tuple[LineRecord, ...]
    chunk_type: ChunkType
    name: str
    parent_section: Optional[str]

    @property
    def content(self) -> str:
        return "\n".join(line.text for line in self.lines)


@dataclass(frozen=True)
class ScanState:
    """Scanner labels plus the start of the pending accumulator."""
    division: str = ""
    section: str = ""
    chunk_type: ChunkType = ChunkType.DIVISION
    name: str = PREAMBLE
    start: int = 0

    @property
    def parent_section(self) -> Optional[str]:
        return self.section or self.division or None

    def advance(self, text: str, index: int) -> "ScanState":
        """Return the state after reading line ``index``.

        Returns ``self`` when the line does not open a new chunk.
        """
        match = DIVISION_RE.match(text)
        if match:
            division = f"{match.group(1).upper()} DIVISION"
            return ScanState(
                division=division,
                section="",
                chunk_type=ChunkType.DIVISION,
                name=division,
                start=index,
            )

        comment = is_comment_line(text)

        if not comment:
            match = SECTION_RE.match(text)
            if match:
                section = match.group(1).upper()
                return replace(
                    self, section=section, chunk_type=ChunkType.SECTION, name=section, start=index
                )

        if (
            self.division == PROCEDURE_DIVISION
            and not comment
            and text.strip()
            and not LEVEL_NUMBER_RE.match(text)
        ):
            match = PARAGRAPH_RE.match(text)
            if match:
                return replace(
                    self, chunk_type=ChunkType.PARAGRAPH, name=match.group(1).upper(), start=index
                )

        if self.division == DATA_DIVISION and DATA_ITEM_RE.match(text):
            match = DATA_NAME_RE.match(text)
            name = match.group(1).upper() if match else "DATA-ITEM"
            return replace(self, chunk_type=ChunkType.DATA, name=name, start=index)

        return self

    def close(self, lines: Sequence[LineRecord], end: int) -> Optional[RawSection]:
        """Emit the accumulator ``lines[start:end]`` under the current labels."""
        if end <= self.start:
            return None
        return RawSection(
            lines=tuple(lines[self.start:end]),
            chunk_type=self.chunk_type,
            name=self.name,
            parent_section=self.parent_section,
        )


def scan(lines: Sequence[LineRecord]) -> list[RawSection]:
    """Split lines into structurally labelled sections, in order."""
    sections: list[RawSection] = []
    state = ScanState()

    for index, line in enumerate(lines):
        next_state = state.advance(line.text, index)
        if next_state is not state:
            section = state.close(lines, index)
            if section is not None:
                sections.append(section)
        state = next_state

    section = state.close(lines, len(lines))
    if section is not None:
        sections.append(section)
    return sections
