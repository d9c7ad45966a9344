"""Pipeline configuration: summary style and provider enums, PipelineConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.config import settings


class SummaryStyle(str, Enum):
    """Available summary styles offered to the user."""

    BRIEF = "brief"
    DETAILED = "detailed"
    BULLETS = "bullets"
    ACTION = "action"


class SummaryProvider(str, Enum):
    """Supported LLM backends for summarization."""

    ANTHROPIC = "anthropic"
    OPENAI_COMPATIBLE = "openai-compatible"


SUMMARY_INSTRUCTIONS: dict[SummaryStyle, str] = {
    SummaryStyle.BRIEF: "Provide a concise 2-4 sentence summary focused on the core message.",
    SummaryStyle.DETAILED: (
        "Write a detailed summary with key context, major points, and any conclusions."
    ),
    SummaryStyle.BULLETS: (
        "Summarize the content as clear bullet points, each capturing a main idea."
    ),
    SummaryStyle.ACTION: "List action items, decisions, and next steps as short bullet points.",
}


def resolve_instruction(style: str | SummaryStyle | None) -> str:
    """Map a style tag to its instruction; unknown or missing tags fall back to brief."""
    try:
        key = SummaryStyle(style) if style is not None else SummaryStyle.BRIEF
    except ValueError:
        key = SummaryStyle.BRIEF
    return SUMMARY_INSTRUCTIONS[key]


def resolve_provider(explicit: str, api_key: str) -> SummaryProvider:
    """Pick the summarization backend.

    An explicit ``SUMMARY_PROVIDER`` wins; otherwise Anthropic keys are
    recognised by their ``sk-ant-`` prefix and everything else is treated as
    an OpenAI-compatible endpoint.
    """
    if explicit.strip():
        return SummaryProvider(explicit.strip().lower())
    if api_key.startswith("sk-ant-"):
        return SummaryProvider.ANTHROPIC
    return SummaryProvider.OPENAI_COMPATIBLE


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable tunables for the transcription and summarization pipelines.

    Defaults come from settings so deployments can adjust the thresholds
    without code changes.
    """

    segment_seconds: int = 600
    transcript_max_chars: int = 200_000
    summary_chunk_chars: int = 12_000

    @classmethod
    def from_settings(cls) -> PipelineConfig:
        segment_seconds = settings.transcribe_chunk_seconds
        return cls(
            segment_seconds=segment_seconds if segment_seconds > 0 else 600,
            transcript_max_chars=settings.transcript_max_chars,
            summary_chunk_chars=settings.summary_chunk_chars,
        )
