"""Line coverage checks for chunked documents."""
from typing import Iterable

from ..models.document import Chunk


def uncovered_lines(chunks: Iterable[Chunk], line_count: int) -> list[int]:
    """Line numbers in ``1..line_count`` that no chunk covers."""
    covered = bytearray(line_count + 1)
    for chunk in chunks:
        first = max(chunk.start_line, 1)
        last = min(chunk.end_line, line_count)
        for line_number in range(first, last + 1):
            covered[line_number] = 1
    return [n for n in range(1, line_count + 1) if not covered[n]]
