"""Transcribe endpoint: quota-gated video upload -> transcript."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, File, HTTPException, Request, Response, UploadFile
from fastapi.responses import JSONResponse

from src.accounts.models import Account, QuotaStatus
from src.accounts.quota import QuotaGate, get_quota_gate
from src.accounts.storage import get_supabase_client
from src.api.errors import to_http_exception
from src.api.identity import Requester, remember_new_visitor, resolve_requester
from src.api.models import LimitReachedResponse, TranscribeResponse, UsageResponse
from src.config import settings
from src.errors import QuotaExceededError, TranscriberError
from src.transcription.pipeline import transcribe_video

logger = logging.getLogger(__name__)

router = APIRouter()

DATABASE_ERROR = "Database error."


def _requester(request: Request) -> Requester:
    try:
        return resolve_requester(request, get_supabase_client())
    except Exception as exc:
        logger.exception("Visitor lookup failed")
        raise HTTPException(status_code=500, detail=DATABASE_ERROR) from exc


def _check_quota(requester: Requester) -> tuple[QuotaGate, QuotaStatus]:
    """Pre-check the requester's quota; store failures become a fixed 500."""
    try:
        gate = get_quota_gate()
        return gate, gate.ensure_allowed(requester.identity)
    except QuotaExceededError:
        raise
    except Exception as exc:
        logger.exception("Quota check failed")
        raise HTTPException(status_code=500, detail=DATABASE_ERROR) from exc


def _record_usage(gate: QuotaGate, requester: Requester, status: QuotaStatus) -> int:
    """Count the upload; a failed increment keeps the transcript and estimates the count."""
    try:
        return gate.record_usage(requester.identity)
    except Exception:
        logger.exception("Failed to record upload for %s", requester.identity.id)
        return status.used + 1


def _limit_reached(exc: QuotaExceededError, requester: Requester) -> JSONResponse:
    body = LimitReachedResponse(message=str(exc), used=exc.used)
    response = JSONResponse(status_code=403, content=body.model_dump())
    # Still set the cookie for new visitors even when blocked
    remember_new_visitor(response, requester)
    return response


@router.post(
    "/api/transcribe",
    response_model=TranscribeResponse,
    response_model_exclude_none=True,
    responses={403: {"model": LimitReachedResponse}},
)
async def transcribe(
    request: Request,
    response: Response,
    file: Annotated[UploadFile | None, File()] = None,
) -> TranscribeResponse | JSONResponse:
    """Transcribe an uploaded video.

    Visitors are checked against the free-upload limit before any work is
    done; usage is recorded only after the transcript has been produced.
    Accounts are unlimited but still counted.
    """
    if not settings.openai_api_key:
        raise HTTPException(status_code=500, detail="Missing OPENAI_API_KEY in environment.")

    requester = _requester(request)

    try:
        gate, status = _check_quota(requester)
    except QuotaExceededError as exc:
        return _limit_reached(exc, requester)

    if file is None:
        raise HTTPException(status_code=400, detail="No video file provided.")

    # Enforce file size limit
    raw = await file.read()
    limit = settings.max_upload_bytes
    if len(raw) > limit:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {limit // (1024 * 1024)} MB.",
        )

    try:
        # ffmpeg + one blocking API call per segment: keep it off the event loop.
        transcript = await asyncio.to_thread(transcribe_video, raw, file.filename)
    except TranscriberError as exc:
        logger.warning("Transcription failed: %s", exc)
        raise to_http_exception(exc) from exc

    used = _record_usage(gate, requester, status)
    remember_new_visitor(response, requester)

    if isinstance(requester.identity, Account):
        return TranscribeResponse(transcript=transcript.text, used=used, unlimited=True)
    return TranscribeResponse(
        transcript=transcript.text,
        used=used,
        remaining=gate.remaining_after(used),
    )


@router.get("/api/usage", response_model=UsageResponse)
async def usage(request: Request, response: Response) -> UsageResponse:
    """Report the requester's upload usage for display."""
    requester = _requester(request)
    try:
        gate = get_quota_gate()
        status = gate.check_allowed(requester.identity)
    except Exception as exc:
        logger.exception("Usage lookup failed")
        raise HTTPException(status_code=500, detail=DATABASE_ERROR) from exc
    remember_new_visitor(response, requester)
    return UsageResponse(
        used=status.used,
        remaining=status.remaining,
        limit=gate.limit,
        unlimited=status.unlimited,
    )
