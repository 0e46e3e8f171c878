"""Fixed-size line windows with overlap."""
from typing import Sequence

from ..models.document import LineRecord


def window_lines(
    lines: Sequence[LineRecord],
    max_chars: int,
    overlap_lines: int,
) -> list[list[LineRecord]]:
    """Group consecutive lines into windows of roughly ``max_chars``.

    Each line costs ``len(text) + 1``. A window closes once its running
    total reaches ``max_chars``; the cursor then moves back by
    ``overlap_lines`` but never to or before the window's first line, so
    every iteration advances. A line that would push a non-empty window past
    ``2 * max_chars`` closes the window early and starts the next one, with
    no overlap.

    Args:
        lines: Lines to group.
        max_chars: Nominal window size in characters.
        overlap_lines: Lines shared between adjacent windows.

    Returns:
        Windows in order; every input line is in at least one window.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    if overlap_lines < 0:
        raise ValueError("overlap_lines must not be negative")

    hard_limit = 2 * max_chars
    windows: list[list[LineRecord]] = []
    total = len(lines)
    i = 0

    while i < total:
        start = i
        size = 0

        while i < total and size < max_chars:
            cost = len(lines[i].text) + 1
            if i > start and size + cost > hard_limit:
                break
            size += cost
            i += 1

        windows.append(list(lines[start:i]))

        if i < total and size >= max_chars:
            i = max(i - overlap_lines, start + 1)

    return windows
