"""ffmpeg helpers: extract a mono 16 kHz audio track and split it into segments."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from src.config import settings
from src.errors import MediaProcessingError
from src.transcription.models import AudioSegment

logger = logging.getLogger(__name__)

DEFAULT_SEGMENT_SECONDS = 600
SEGMENT_PREFIX = "chunk-"
SEGMENT_SUFFIX = ".mp3"
SEGMENT_PATTERN = f"{SEGMENT_PREFIX}%03d{SEGMENT_SUFFIX}"


def resolve_ffmpeg_binary() -> str:
    """Locate an ffmpeg executable.

    Order: the ``FFMPEG_BINARY`` setting, ``ffmpeg`` on PATH, then the binary
    bundled with imageio-ffmpeg.

    Raises:
        MediaProcessingError: No usable ffmpeg was found.
    """
    tried: list[str] = []

    if settings.ffmpeg_binary:
        found = shutil.which(settings.ffmpeg_binary)
        if found:
            return found
        tried.append(settings.ffmpeg_binary)

    found = shutil.which("ffmpeg")
    if found:
        return found
    tried.append("ffmpeg on PATH")

    try:
        import imageio_ffmpeg  # type: ignore[import-untyped]

        return str(imageio_ffmpeg.get_ffmpeg_exe())
    except (ImportError, RuntimeError) as exc:
        tried.append(f"imageio-ffmpeg ({exc})")

    raise MediaProcessingError("ffmpeg binary not found. Tried:\n- " + "\n- ".join(tried))


def build_segment_command(
    ffmpeg: str,
    input_path: Path,
    out_dir: Path,
    segment_seconds: int,
) -> list[str]:
    """Build the ffmpeg argv for audio extraction + fixed-duration segmentation."""
    return [
        ffmpeg,
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-i",
        str(input_path),
        "-vn",
        "-ac",
        "1",
        "-ar",
        "16000",
        "-b:a",
        "64k",
        "-f",
        "segment",
        "-segment_time",
        str(segment_seconds),
        "-reset_timestamps",
        "1",
        str(out_dir / SEGMENT_PATTERN),
    ]


def list_segments(out_dir: Path) -> list[AudioSegment]:
    """Return the segment files in *out_dir*, in temporal (= lexicographic) order."""
    names = sorted(
        p.name
        for p in out_dir.iterdir()
        if p.name.startswith(SEGMENT_PREFIX) and p.name.endswith(SEGMENT_SUFFIX)
    )
    return [AudioSegment(index=i, path=out_dir / name) for i, name in enumerate(names)]


def segment_audio(
    input_path: Path,
    out_dir: Path,
    segment_seconds: int = DEFAULT_SEGMENT_SECONDS,
) -> list[AudioSegment]:
    """Extract audio from *input_path* and split it into ``chunk-NNN.mp3`` files.

    Args:
        input_path: A readable video (or audio) file in any container ffmpeg understands.
        out_dir: Existing directory that receives the segment files.
        segment_seconds: Target duration of each segment; non-positive values
            fall back to 600.

    Returns:
        Ordered list of produced segments (possibly empty).

    Raises:
        MediaProcessingError: ffmpeg is missing or could not read the input.
    """
    if segment_seconds <= 0:
        segment_seconds = DEFAULT_SEGMENT_SECONDS

    ffmpeg = resolve_ffmpeg_binary()
    cmd = build_segment_command(ffmpeg, input_path, out_dir, segment_seconds)
    logger.info("Segmenting %s into %ss audio chunks", input_path.name, segment_seconds)

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise MediaProcessingError(f"Could not run ffmpeg: {exc}") from exc

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        raise MediaProcessingError(
            f"ffmpeg failed to extract audio (exit {result.returncode}): {stderr[-500:]}"
        )

    segments = list_segments(out_dir)
    logger.info("Produced %d audio segments", len(segments))
    return segments
