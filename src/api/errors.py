"""Translate pipeline errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException

from src.errors import (
    EmptyMediaError,
    MediaProcessingError,
    ProviderError,
    ProviderTimeoutError,
    TranscriberError,
)


def to_http_exception(exc: TranscriberError) -> HTTPException:
    """Map an application error to an HTTPException with a single descriptive detail.

    Bad media is the client's problem (422); upstream provider failures are
    502, or 504 on timeout; missing configuration is a 500.
    """
    if isinstance(exc, (MediaProcessingError, EmptyMediaError)):
        status = 422
    elif isinstance(exc, ProviderTimeoutError):
        status = 504
    elif isinstance(exc, ProviderError):
        status = 502
    else:
        status = 500
    return HTTPException(status_code=status, detail=str(exc))
