"""End-to-end transcription pipeline: persist -> segment -> transcribe -> join."""

from __future__ import annotations

import logging
import shutil
import tempfile
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from src.config import settings
from src.errors import EmptyMediaError
from src.pipeline_config import PipelineConfig
from src.transcription.chunking import split_lines
from src.transcription.media import segment_audio
from src.transcription.models import AudioSegment, Transcript

logger = logging.getLogger(__name__)

WORKDIR_NAME = "video-transcriber"
EMPTY_TRANSCRIPT_PLACEHOLDER = "No transcript text was produced."
FRAGMENT_SEPARATOR = "\n\n"


class Transcriber(Protocol):
    def transcribe(self, segment: AudioSegment) -> str: ...


Segmenter = Callable[[Path, Path, int], list[AudioSegment]]


def _safe_filename(filename: str | None) -> str:
    # Drop any client-supplied directory components.
    name = Path(filename or "").name
    return name or "upload"


def _job_dir() -> Path:
    root = Path(settings.tmp_root or tempfile.gettempdir()) / WORKDIR_NAME
    return root / uuid.uuid4().hex


def _cleanup(job_dir: Path) -> None:
    try:
        if job_dir.exists():
            shutil.rmtree(job_dir)
    except OSError:
        logger.warning("Failed to remove working directory %s", job_dir, exc_info=True)


def join_fragments(fragments: list[str], max_chars: int) -> str:
    """Join segment texts in order and apply the line-based size-limiting pass."""
    combined = FRAGMENT_SEPARATOR.join(fragments).strip()
    text = combined or EMPTY_TRANSCRIPT_PLACEHOLDER
    return FRAGMENT_SEPARATOR.join(split_lines(text, max_chars))


def transcribe_video(
    content: bytes,
    filename: str | None,
    *,
    config: PipelineConfig | None = None,
    transcriber: Transcriber | None = None,
    segmenter: Segmenter = segment_audio,
) -> Transcript:
    """Transcribe an uploaded video.

    The upload is written to a fresh per-request working directory, its audio
    is split into fixed-duration segments, each segment is transcribed in
    order, and the non-empty results are joined with blank lines. The working
    directory is removed on every exit path.

    Args:
        content: Raw bytes of the uploaded video.
        filename: Client filename, used only to name the local copy.
        config: Pipeline tunables; defaults to values from settings.
        transcriber: Speech service; defaults to the OpenAI transcriber.
        segmenter: Media extraction function (input, out_dir, seconds).

    Returns:
        The assembled :class:`Transcript`.

    Raises:
        MediaProcessingError: ffmpeg is missing or the input is unreadable.
        EmptyMediaError: No audio segments were produced.
        ProviderError: A segment transcription call failed.
    """
    config = config or PipelineConfig.from_settings()
    if transcriber is None:
        from src.transcription.speech import SpeechTranscriber

        transcriber = SpeechTranscriber()

    job_dir = _job_dir()
    audio_dir = job_dir / "audio"

    try:
        audio_dir.mkdir(parents=True, exist_ok=True)
        video_path = job_dir / _safe_filename(filename)
        video_path.write_bytes(content)

        # 1. Segment
        segments = segmenter(video_path, audio_dir, config.segment_seconds)
        if not segments:
            raise EmptyMediaError("Failed to extract audio chunks from the video.")

        # 2. Transcribe each segment in order
        fragments: list[str] = []
        for segment in segments:
            text = transcriber.transcribe(segment)
            if text.strip():
                fragments.append(text)
            else:
                logger.debug("Segment %s produced no text", segment.filename)

        dropped = len(segments) - len(fragments)
        if dropped:
            logger.warning(
                "%d of %d audio segments produced no transcript text", dropped, len(segments)
            )

        # 3. Join + size-limiting pass
        text = join_fragments(fragments, config.transcript_max_chars)
        logger.info(
            "Transcribed %d segments into %d characters", len(segments), len(text)
        )
        return Transcript(
            fragments=tuple(fragments),
            text=text,
            segment_count=len(segments),
        )
    finally:
        _cleanup(job_dir)
