"""Size-bounded text chunking on paragraph or line boundaries."""

from __future__ import annotations

import re

PARAGRAPH_BOUNDARY = re.compile(r"\n\s*\n")
LINE_BOUNDARY = re.compile(r"\n")


def split_text(
    text: str,
    max_chars: int,
    boundary: re.Pattern[str],
    joiner: str,
) -> list[str]:
    """Greedily pack boundary-delimited units into chunks of at most *max_chars*.

    Units are appended to a running buffer until adding the next one would
    exceed the limit, at which point the buffer is emitted and restarted with
    that unit. A single unit longer than the limit is emitted on its own and
    never split.

    Args:
        text: Text to split. Leading/trailing whitespace is ignored.
        max_chars: Maximum characters per chunk.
        boundary: Pattern separating indivisible units.
        joiner: String placed between units inside a chunk.

    Returns:
        Ordered, non-empty, stripped chunks. Empty for whitespace-only input.
    """
    if max_chars < 1:
        raise ValueError(f"max_chars must be positive, got {max_chars}")

    stripped = text.strip()
    if not stripped:
        return []

    chunks: list[str] = []
    buf = ""

    for unit in boundary.split(stripped):
        candidate = f"{buf}{joiner}{unit}" if buf else unit
        if len(candidate) > max_chars and buf:
            _flush(chunks, buf)
            buf = unit
            continue
        buf = candidate

    _flush(chunks, buf)
    return chunks


def _flush(chunks: list[str], buf: str) -> None:
    piece = buf.strip()
    if piece:
        chunks.append(piece)


def split_paragraphs(text: str, max_chars: int) -> list[str]:
    """Chunk on blank-line boundaries (summarization input)."""
    return split_text(text, max_chars, PARAGRAPH_BOUNDARY, "\n\n")


def split_lines(text: str, max_chars: int) -> list[str]:
    """Chunk on line boundaries (transcript size-limiting pass)."""
    return split_text(text, max_chars, LINE_BOUNDARY, "\n")
