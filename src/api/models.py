"""Pydantic request/response schemas for the Video Transcriber API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TranscribeResponse(BaseModel):
    """Response body for the /api/transcribe endpoint.

    Visitors get ``remaining``; accounts get ``unlimited=True`` instead.
    """

    transcript: str
    used: int | None = None
    remaining: int | None = None
    unlimited: bool | None = None


class LimitReachedResponse(BaseModel):
    """403 body returned when a visitor has no free uploads left."""

    error: str = "limit_reached"
    message: str
    used: int
    remaining: int = 0


class SummarizeRequest(BaseModel):
    """Request body for the /api/summarize endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    transcript: str = ""
    summary_type: str | None = Field(default=None, alias="summaryType")


class SummarizeResponse(BaseModel):
    summary: str


class UsageResponse(BaseModel):
    """Current requester's upload usage, for display."""

    used: int
    remaining: int | None = None
    limit: int
    unlimited: bool = False


class SignupRequest(BaseModel):
    email: str = ""
    password: str = ""
    name: str | None = None


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class UserOut(BaseModel):
    """Public view of an account."""

    id: str
    email: str
    name: str | None = None
    upload_count: int | None = None


class UserResponse(BaseModel):
    user: UserOut | None = None
