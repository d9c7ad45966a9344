"""Data models for the transcription pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AudioSegment:
    """One fixed-duration slice of extracted audio."""

    index: int
    path: Path

    @property
    def filename(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class Transcript:
    """The ordered, non-empty segment texts and the final joined transcript."""

    fragments: tuple[str, ...]
    text: str
    segment_count: int = 0

    @property
    def dropped_segments(self) -> int:
        """Segments whose transcription came back empty."""
        return max(0, self.segment_count - len(self.fragments))
