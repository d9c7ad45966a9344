"""Chunk-then-reduce transcript summarization."""

from __future__ import annotations

import logging

from src.config import settings
from src.pipeline_config import SummaryStyle, resolve_instruction
from src.summarization.providers import SummaryClient, get_summary_client
from src.transcription.chunking import split_paragraphs

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that summarizes transcripts accurately. "
    "Do not invent details."
)


def single_prompt(instruction: str, transcript: str) -> str:
    return f"{instruction}\n\nTranscript:\n{transcript}"


def chunk_prompt(instruction: str, chunk: str, index: int, total: int) -> str:
    return (
        f"Summarize chunk {index} of {total}.\n\n{instruction}\n\n"
        f"Transcript chunk:\n{chunk}"
    )


def reduce_prompt(instruction: str, partials: list[str]) -> str:
    labelled = "\n\n".join(
        f"Chunk {i} summary:\n{summary}" for i, summary in enumerate(partials, start=1)
    )
    return (
        f"{instruction}\n\nHere are chunk summaries. "
        f"Combine them into a single coherent result:\n\n{labelled}"
    )


def summarize_transcript(
    transcript: str,
    style: str | SummaryStyle | None = None,
    *,
    client: SummaryClient | None = None,
    chunk_chars: int | None = None,
) -> str:
    """Summarize *transcript* in the requested style.

    Short transcripts take one LLM call. Longer ones are split on paragraph
    boundaries, each piece is summarized in order, and a final call combines
    the partial summaries. Any failed call aborts the whole summary.

    Args:
        transcript: Full transcript text.
        style: Summary style tag; unknown tags fall back to ``brief``.
        client: LLM backend; defaults to the configured provider.
        chunk_chars: Paragraph-chunk threshold; defaults to settings.

    Returns:
        The final summary text.
    """
    if not transcript or not transcript.strip():
        raise ValueError("Transcript is required.")

    instruction = resolve_instruction(style)
    client = client or get_summary_client()
    chunks = split_paragraphs(transcript, chunk_chars or settings.summary_chunk_chars)

    if len(chunks) == 1:
        logger.info("Summarizing %d characters in a single call", len(transcript))
        return client.complete(SYSTEM_PROMPT, single_prompt(instruction, chunks[0]))

    logger.info("Summarizing %d characters in %d chunks", len(transcript), len(chunks))
    partials: list[str] = []
    for i, chunk in enumerate(chunks, start=1):
        partials.append(
            client.complete(SYSTEM_PROMPT, chunk_prompt(instruction, chunk, i, len(chunks)))
        )

    return client.complete(SYSTEM_PROMPT, reduce_prompt(instruction, partials))
