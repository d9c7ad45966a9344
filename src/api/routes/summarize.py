"""Summarize endpoint: transcript + style -> summary (unmetered)."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, HTTPException

from src.api.errors import to_http_exception
from src.api.models import SummarizeRequest, SummarizeResponse
from src.errors import TranscriberError
from src.summarization.summarizer import summarize_transcript

router = APIRouter()


@router.post("/api/summarize", response_model=SummarizeResponse)
async def summarize(body: SummarizeRequest) -> SummarizeResponse:
    """Summarize a transcript in the requested style.

    Unknown ``summary_type`` values fall back to a brief summary.
    """
    if not body.transcript.strip():
        raise HTTPException(status_code=400, detail="Transcript is required.")

    try:
        summary = await asyncio.to_thread(
            summarize_transcript, body.transcript, body.summary_type
        )
    except TranscriberError as exc:
        raise to_http_exception(exc) from exc

    return SummarizeResponse(summary=summary)
