"""
Tests for the structural chunker and its line-coverage guarantees.
"""

from __future__ import annotations

import random

import pytest

from legacylens.core.chunking import DocumentChunker, make_chunk_id, uncovered_lines
from legacylens.core.models.document import ChunkType, SourceDocument


def _doc(lines: list[str], path: str = "prog.cob") -> SourceDocument:
    return SourceDocument(path=path, content="\n".join(lines))


def _scenario_lines() -> list[str]:
    lines = ["       IDENTIFICATION DIVISION.", "       PROGRAM-ID. SCENARIO."]
    lines += [f"      * remark {n}" for n in range(3, 10)]
    lines += ["       PROCEDURE DIVISION.", "           DISPLAY 'START'."]
    lines += ["       MAIN-PARA."]
    lines += ["           ADD 1 TO WS-COUNT."] * 12
    lines += ["       EXIT-PARA."]
    lines += ["           DISPLAY 'DONE'."] * 15
    assert len(lines) == 40
    return lines


def _random_cobol(seed: int) -> list[str]:
    rng = random.Random(seed)
    lines = ["       IDENTIFICATION DIVISION.", f"       PROGRAM-ID. P{seed}."]
    lines += ["       DATA DIVISION.", "       WORKING-STORAGE SECTION."]
    for i in range(rng.randint(1, 6)):
        lines.append(f"       01 WS-REC-{i}.")
        lines += [f"          05 WS-F-{i}-{j} PIC X({j + 1})." for j in range(rng.randint(0, 4))]
    lines.append("       PROCEDURE DIVISION.")
    for i in range(rng.randint(1, 8)):
        lines.append(f"       PARA-{i}.")
        for _ in range(rng.randint(0, 30)):
            lines.append("           MOVE " + "X" * rng.randint(1, 120) + " TO WS-OUT.")
        if rng.random() < 0.3:
            lines.append("")
            lines.append("      * trailing remark")
    return lines


def test_scenario_division_and_paragraph_boundaries():
    chunks = DocumentChunker().chunk(_doc(_scenario_lines()))

    assert [(c.start_line, c.end_line) for c in chunks] == [(1, 9), (10, 11), (12, 24), (25, 40)]
    assert [c.chunk_type for c in chunks] == [
        ChunkType.DIVISION,
        ChunkType.DIVISION,
        ChunkType.PARAGRAPH,
        ChunkType.PARAGRAPH,
    ]
    assert [c.name for c in chunks] == [
        "IDENTIFICATION DIVISION",
        "PROCEDURE DIVISION",
        "MAIN-PARA",
        "EXIT-PARA",
    ]
    assert {c.program_id for c in chunks} == {"SCENARIO"}
    assert chunks[2].parent_section == "PROCEDURE DIVISION"


def test_chunk_content_matches_line_range():
    lines = _scenario_lines()
    for chunk in DocumentChunker().chunk(_doc(lines)):
        assert chunk.content == "\n".join(lines[chunk.start_line - 1 : chunk.end_line])


@pytest.mark.parametrize("seed", range(12))
def test_every_line_is_covered(seed):
    document = _doc(_random_cobol(seed))
    chunks = DocumentChunker(max_chunk_size=300).chunk(document)
    assert uncovered_lines(chunks, document.line_count) == []


@pytest.mark.parametrize("seed", range(12))
def test_structural_chunks_are_contiguous(seed):
    chunks = DocumentChunker(max_chunk_size=100_000).chunk(_doc(_random_cobol(seed)))

    assert chunks[0].start_line == 1
    for prev, nxt in zip(chunks, chunks[1:]):
        assert nxt.start_line == prev.end_line + 1
    for c in chunks:
        assert c.start_line <= c.end_line


@pytest.mark.parametrize("seed", range(6))
def test_chunking_is_deterministic(seed):
    document = _doc(_random_cobol(seed))
    chunker = DocumentChunker(max_chunk_size=300)
    assert chunker.chunk(document) == chunker.chunk(document)


def test_oversized_paragraph_is_split_into_parts():
    lines = ["       PROCEDURE DIVISION.", "       BIG-PARA."]
    lines += [f"           MOVE {n:04d} TO WS-TOTAL OF WS-ACCUMULATOR-RECORD." for n in range(200)]
    lines += ["       SMALL-PARA.", "           DISPLAY 'BYE'."]
    chunker = DocumentChunker(max_chunk_size=1500, overlap_lines=3)

    chunks = chunker.chunk(_doc(lines))
    parts = [c for c in chunks if c.name.startswith("BIG-PARA")]

    assert len(parts) > 1
    assert [c.name for c in parts] == [f"BIG-PARA (part {i})" for i in range(1, len(parts) + 1)]
    for part in parts:
        assert part.chunk_type == ChunkType.PARAGRAPH
        assert part.parent_section == "PROCEDURE DIVISION"
        assert len(part.content) <= 3000
    for prev, nxt in zip(parts, parts[1:]):
        assert nxt.start_line > prev.start_line
        assert prev.end_line - nxt.start_line + 1 <= 3
    assert chunks[-1].name == "SMALL-PARA"
    assert uncovered_lines(chunks, len(lines)) == []


def test_no_chunk_exceeds_twice_the_size_bound():
    lines = ["       PROCEDURE DIVISION.", "       LONG-PARA."]
    lines += ["           DISPLAY '" + "Z" * 70 + "'."] * 120
    for chunk in DocumentChunker(max_chunk_size=500).chunk(_doc(lines)):
        assert len(chunk.content) <= 1000


def test_non_cobol_files_use_fixed_windows():
    lines = [f"int line_{n} = {n};" for n in range(300)]
    chunks = DocumentChunker(max_chunk_size=500, overlap_lines=3).chunk(_doc(lines, "lib/util.c"))

    assert len(chunks) > 1
    assert all(c.chunk_type == ChunkType.FIXED for c in chunks)
    assert all(c.program_id is None for c in chunks)
    assert chunks[0].name == "lib/util.c (part 1)"
    assert chunks[1].name == "lib/util.c (part 2)"
    assert uncovered_lines(chunks, 300) == []


def test_copybook_extension_is_structured():
    assert DocumentChunker.is_structured(_doc([""], "copy/rec.CPY"))
    assert not DocumentChunker.is_structured(_doc([""], "copy/rec.cobcopy"))


def test_chunk_ids_are_derived_from_path_and_start_line():
    assert make_chunk_id("src/prog-1.cob", 12) == "src_prog_1_cob_f6f25deb_L12"

    chunks = DocumentChunker().chunk(_doc(_scenario_lines(), "app/main.cbl"))
    prefix = make_chunk_id("app/main.cbl", 1)[: -len("L1")]
    assert prefix.startswith("app_main_cbl_")
    assert [c.id for c in chunks] == [f"{prefix}L{n}" for n in (1, 10, 12, 25)]


def test_chunk_ids_keep_similar_paths_apart():
    assert make_chunk_id("src/a-b.cob", 1) == "src_a_b_cob_543922e3_L1"
    assert make_chunk_id("src/a_b.cob", 1) == "src_a_b_cob_bfe4c1b1_L1"

    first = DocumentChunker().chunk(_doc(_scenario_lines(), "src/a-b.cob"))
    second = DocumentChunker().chunk(_doc(_scenario_lines(), "src/a_b.cob"))
    assert not {c.id for c in first} & {c.id for c in second}


def test_invalid_sizes_are_rejected():
    with pytest.raises(ValueError):
        DocumentChunker(max_chunk_size=0)
    with pytest.raises(ValueError):
        DocumentChunker(overlap_lines=-1)
