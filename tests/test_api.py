"""Tests for API endpoints (no external API keys, database, or ffmpeg required)."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from unittest.mock import ANY, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.accounts.auth import create_token, hash_password, verify_password
from src.accounts.models import Account, UserRecord, Visitor, VisitorRecord
from src.accounts.quota import QuotaGate
from src.api.identity import Requester
from src.api.main import app, lifespan
from src.config import DEFAULT_SECRET_KEY
from src.errors import (
    ConfigurationError,
    EmptyMediaError,
    MediaProcessingError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from src.transcription.models import Transcript

VIDEO = {"file": ("talk.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")}


@contextmanager
def transcribe_env(
    requester: Requester,
    used: int = 0,
    transcript: Transcript | None = None,
    error: Exception | None = None,
) -> Iterator[dict[str, MagicMock]]:
    """Patch the transcribe route's collaborators around a real QuotaGate."""
    gate = QuotaGate(MagicMock(), limit=10)
    result = transcript or Transcript(fragments=("hello",), text="hello", segment_count=1)
    with (
        patch("src.api.routes.transcribe.settings") as mock_settings,
        patch("src.api.routes.transcribe.get_supabase_client", return_value=MagicMock()),
        patch("src.api.routes.transcribe.resolve_requester", return_value=requester),
        patch("src.api.routes.transcribe.get_quota_gate", return_value=gate),
        patch("src.accounts.storage.get_visitor_upload_count", return_value=used),
        patch("src.accounts.storage.get_user_upload_count", return_value=used),
        patch("src.accounts.storage.increment_visitor_uploads", return_value=used + 1) as v_inc,
        patch("src.accounts.storage.increment_user_uploads", return_value=used + 1) as u_inc,
        patch(
            "src.api.routes.transcribe.transcribe_video",
            return_value=result,
            side_effect=error,
        ) as pipeline,
    ):
        mock_settings.openai_api_key = "sk-test"
        mock_settings.max_upload_bytes = 500 * 1024 * 1024
        yield {
            "pipeline": pipeline,
            "visitor_inc": v_inc,
            "user_inc": u_inc,
            "settings": mock_settings,
        }


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


# ---------------------------------------------------------------------------
# /api/transcribe
# ---------------------------------------------------------------------------


def test_transcribe_missing_key_returns_500(client: TestClient) -> None:
    with patch("src.api.routes.transcribe.settings") as mock_settings:
        mock_settings.openai_api_key = ""
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 500
    assert response.json()["detail"] == "Missing OPENAI_API_KEY in environment."


def test_transcribe_visitor_success(client: TestClient) -> None:
    with transcribe_env(Requester(Visitor("v1")), used=4) as mocks:
        response = client.post("/api/transcribe", files=VIDEO)

    assert response.status_code == 200
    assert response.json() == {"transcript": "hello", "used": 5, "remaining": 5}
    raw, filename = mocks["pipeline"].call_args.args
    assert raw == VIDEO["file"][1]
    assert filename == "talk.mp4"
    mocks["visitor_inc"].assert_called_once()


def test_transcribe_last_free_upload(client: TestClient) -> None:
    with transcribe_env(Requester(Visitor("v1")), used=9):
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 200
    assert response.json()["remaining"] == 0


def test_transcribe_new_visitor_gets_cookie(client: TestClient) -> None:
    with transcribe_env(Requester(Visitor("v-new"), is_new_visitor=True)):
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 200
    assert "visitor_id=v-new" in response.headers["set-cookie"]


def test_transcribe_account_is_unlimited(client: TestClient) -> None:
    with transcribe_env(Requester(Account("u1")), used=57) as mocks:
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 200
    assert response.json() == {"transcript": "hello", "used": 58, "unlimited": True}
    mocks["user_inc"].assert_called_once()
    mocks["visitor_inc"].assert_not_called()


def test_transcribe_limit_reached_returns_403(client: TestClient) -> None:
    with transcribe_env(Requester(Visitor("v-new"), is_new_visitor=True), used=10) as mocks:
        response = client.post("/api/transcribe", files=VIDEO)

    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "limit_reached"
    assert body["used"] == 10
    assert body["remaining"] == 0
    assert "Create an account" in body["message"]
    assert "visitor_id=v-new" in response.headers["set-cookie"]
    mocks["pipeline"].assert_not_called()
    mocks["visitor_inc"].assert_not_called()


def test_transcribe_requires_file(client: TestClient) -> None:
    with transcribe_env(Requester(Visitor("v1"))) as mocks:
        response = client.post("/api/transcribe")
    assert response.status_code == 400
    assert response.json()["detail"] == "No video file provided."
    mocks["visitor_inc"].assert_not_called()


def test_transcribe_bad_media_returns_422_without_counting(client: TestClient) -> None:
    error = MediaProcessingError("ffmpeg failed to extract audio (exit 1): Invalid data")
    with transcribe_env(Requester(Visitor("v1")), error=error) as mocks:
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 422
    assert "Invalid data" in response.json()["detail"]
    mocks["visitor_inc"].assert_not_called()


def test_transcribe_no_audio_returns_422(client: TestClient) -> None:
    error = EmptyMediaError("Failed to extract audio chunks from the video.")
    with transcribe_env(Requester(Visitor("v1")), error=error):
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 422


def test_transcribe_provider_timeout_returns_504(client: TestClient) -> None:
    with transcribe_env(Requester(Visitor("v1")), error=ProviderTimeoutError("timed out")) as mocks:
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 504
    mocks["visitor_inc"].assert_not_called()


def test_transcribe_provider_failure_returns_502(client: TestClient) -> None:
    error = ProviderResponseError("Transcription request failed (500): boom", status_code=500)
    with transcribe_env(Requester(Visitor("v1")), error=error):
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 502
    assert "boom" in response.json()["detail"]


def test_transcribe_database_error_returns_500(client: TestClient) -> None:
    with (
        patch("src.api.routes.transcribe.settings") as mock_settings,
        patch("src.api.routes.transcribe.get_supabase_client", return_value=MagicMock()),
        patch(
            "src.api.routes.transcribe.resolve_requester",
            side_effect=RuntimeError("connection refused"),
        ),
    ):
        mock_settings.openai_api_key = "sk-test"
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 500
    assert response.json()["detail"] == "Database error."


def test_usage_for_visitor(client: TestClient) -> None:
    with transcribe_env(Requester(Visitor("v1")), used=3):
        response = client.get("/api/usage")
    assert response.status_code == 200
    assert response.json() == {"used": 3, "remaining": 7, "limit": 10, "unlimited": False}


def test_transcribe_quota_store_failure_returns_500(client: TestClient) -> None:
    with (
        transcribe_env(Requester(Visitor("v1"))) as mocks,
        patch(
            "src.accounts.storage.get_visitor_upload_count",
            side_effect=RuntimeError("connection reset"),
        ),
    ):
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 500
    assert response.json() == {"detail": "Database error."}
    mocks["pipeline"].assert_not_called()


def test_transcribe_keeps_transcript_when_counting_fails(client: TestClient) -> None:
    with (
        transcribe_env(Requester(Visitor("v1")), used=4),
        patch(
            "src.accounts.storage.increment_visitor_uploads",
            side_effect=RuntimeError("connection reset"),
        ),
    ):
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 200
    assert response.json() == {"transcript": "hello", "used": 5, "remaining": 5}


def test_transcribe_oversized_upload_returns_413(client: TestClient) -> None:
    with transcribe_env(Requester(Visitor("v1"))) as mocks:
        mocks["settings"].max_upload_bytes = 4
        response = client.post("/api/transcribe", files=VIDEO)
    assert response.status_code == 413
    assert "File too large" in response.json()["detail"]
    mocks["pipeline"].assert_not_called()
    mocks["visitor_inc"].assert_not_called()


def test_usage_store_failure_returns_500(client: TestClient) -> None:
    with (
        transcribe_env(Requester(Visitor("v1"))),
        patch(
            "src.accounts.storage.get_visitor_upload_count",
            side_effect=RuntimeError("connection reset"),
        ),
    ):
        response = client.get("/api/usage")
    assert response.status_code == 500
    assert response.json() == {"detail": "Database error."}


# ---------------------------------------------------------------------------
# Requester identity (cookies and fingerprint header)
# ---------------------------------------------------------------------------

VISITOR_ID = str(uuid.uuid4())


@contextmanager
def store_env(visitor: VisitorRecord) -> Iterator[dict[str, MagicMock]]:
    """Patch only the storage layer so identity resolution runs for real."""
    with (
        patch("src.api.routes.transcribe.get_supabase_client", return_value=MagicMock()),
        patch(
            "src.api.routes.transcribe.get_quota_gate",
            return_value=QuotaGate(MagicMock(), limit=10),
        ),
        patch("src.accounts.storage.get_or_create_visitor", return_value=visitor) as lookup,
        patch(
            "src.accounts.storage.get_visitor_upload_count", return_value=visitor.upload_count
        ),
        patch("src.accounts.storage.get_user_upload_count", return_value=7) as user_count,
    ):
        yield {"lookup": lookup, "user_count": user_count}


def test_auth_cookie_wins_over_visitor_cookie(client: TestClient) -> None:
    client.cookies.set("auth_token", create_token("u1"))
    client.cookies.set("visitor_id", VISITOR_ID)
    with store_env(VisitorRecord(id=VISITOR_ID, upload_count=3)) as mocks:
        response = client.get("/api/usage")
    assert response.json() == {"used": 7, "remaining": None, "limit": 10, "unlimited": True}
    mocks["lookup"].assert_not_called()
    mocks["user_count"].assert_called_once_with(ANY, "u1")


def test_forged_auth_cookie_falls_back_to_visitor(client: TestClient) -> None:
    client.cookies.set("auth_token", create_token("u1", secret="not-the-server-secret"))
    with store_env(VisitorRecord(id=VISITOR_ID, upload_count=3)) as mocks:
        response = client.get("/api/usage")
    assert response.json()["unlimited"] is False
    assert response.json()["remaining"] == 7
    mocks["lookup"].assert_called_once()
    mocks["user_count"].assert_not_called()


def test_visitor_cookie_and_fingerprint_are_used_for_lookup(client: TestClient) -> None:
    client.cookies.set("visitor_id", VISITOR_ID)
    with store_env(VisitorRecord(id=VISITOR_ID, upload_count=2)) as mocks:
        response = client.get("/api/usage", headers={"x-fingerprint": "fp-1"})
    assert response.json()["used"] == 2
    mocks["lookup"].assert_called_once_with(ANY, VISITOR_ID, "fp-1")
    assert "set-cookie" not in response.headers


def test_anonymous_request_looks_up_without_identifiers(client: TestClient) -> None:
    with store_env(VisitorRecord(id=VISITOR_ID)) as mocks:
        client.get("/api/usage")
    mocks["lookup"].assert_called_once_with(ANY, None, None)


def test_new_visitor_is_sent_its_cookie(client: TestClient) -> None:
    fresh_id = str(uuid.uuid4())
    client.cookies.set("visitor_id", "not-a-uuid")
    with store_env(VisitorRecord(id=fresh_id, is_new=True)):
        response = client.get("/api/usage", headers={"x-fingerprint": "fp-2"})
    assert response.status_code == 200
    assert f"visitor_id={fresh_id}" in response.headers["set-cookie"]


# ---------------------------------------------------------------------------
# Startup checks
# ---------------------------------------------------------------------------


def _run_lifespan() -> None:
    async def enter() -> None:
        async with lifespan(app):
            pass

    asyncio.run(enter())


def test_default_secret_refused_in_production() -> None:
    with patch("src.api.main.settings") as mock_settings:
        mock_settings.secret_key = DEFAULT_SECRET_KEY
        mock_settings.is_production = True
        with pytest.raises(ConfigurationError, match="SECRET_KEY"):
            _run_lifespan()


def test_default_secret_warns_in_development(caplog: pytest.LogCaptureFixture) -> None:
    with patch("src.api.main.settings") as mock_settings:
        mock_settings.secret_key = DEFAULT_SECRET_KEY
        mock_settings.is_production = False
        with caplog.at_level(logging.WARNING, logger="src.api.main"):
            _run_lifespan()
    assert any("SECRET_KEY" in record.getMessage() for record in caplog.records)


def test_custom_secret_starts_in_production() -> None:
    with patch("src.api.main.settings") as mock_settings:
        mock_settings.secret_key = "a-real-secret"
        mock_settings.is_production = True
        _run_lifespan()


# ---------------------------------------------------------------------------
# /api/summarize
# ---------------------------------------------------------------------------


def test_summarize_requires_transcript(client: TestClient) -> None:
    response = client.post("/api/summarize", json={"transcript": "   "})
    assert response.status_code == 400
    assert response.json()["detail"] == "Transcript is required."


def test_summarize_success_with_alias(client: TestClient) -> None:
    with patch(
        "src.api.routes.summarize.summarize_transcript", return_value="A summary."
    ) as mock_summarize:
        response = client.post(
            "/api/summarize", json={"transcript": "Some text.", "summaryType": "bullets"}
        )
    assert response.status_code == 200
    assert response.json() == {"summary": "A summary."}
    mock_summarize.assert_called_once_with("Some text.", "bullets")


def test_summarize_accepts_field_name(client: TestClient) -> None:
    with patch(
        "src.api.routes.summarize.summarize_transcript", return_value="ok"
    ) as mock_summarize:
        client.post("/api/summarize", json={"transcript": "t", "summary_type": "action"})
    mock_summarize.assert_called_once_with("t", "action")


def test_summarize_provider_failure_returns_502(client: TestClient) -> None:
    error = ProviderResponseError("Summary request failed (503): overloaded", status_code=503)
    with patch("src.api.routes.summarize.summarize_transcript", side_effect=error):
        response = client.post("/api/summarize", json={"transcript": "t"})
    assert response.status_code == 502
    assert "overloaded" in response.json()["detail"]


def test_summarize_timeout_returns_504(client: TestClient) -> None:
    with patch(
        "src.api.routes.summarize.summarize_transcript",
        side_effect=ProviderTimeoutError("Summary request timed out after 90s"),
    ):
        response = client.post("/api/summarize", json={"transcript": "t"})
    assert response.status_code == 504


def test_summarize_missing_config_returns_500(client: TestClient) -> None:
    with patch(
        "src.api.routes.summarize.summarize_transcript",
        side_effect=ConfigurationError("Missing SUMMARY_API_KEY in environment."),
    ):
        response = client.post("/api/summarize", json={"transcript": "t"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Missing SUMMARY_API_KEY in environment."


# ---------------------------------------------------------------------------
# /api/auth
# ---------------------------------------------------------------------------


def _user(password_hash: str = "", upload_count: int = 0) -> UserRecord:
    return UserRecord(
        id="u1",
        email="ana@example.com",
        password_hash=password_hash,
        name="Ana",
        upload_count=upload_count,
    )


def test_signup_creates_account_and_sets_cookie(client: TestClient) -> None:
    client.cookies.set("visitor_id", "v1")
    with (
        patch("src.api.routes.auth.get_supabase_client", return_value=MagicMock()),
        patch("src.accounts.storage.get_user_by_email", return_value=None),
        patch("src.accounts.storage.create_user", return_value=_user()) as create,
    ):
        response = client.post(
            "/api/auth/signup",
            json={"email": "ana@example.com", "password": "secret1", "name": "Ana"},
        )

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "ana@example.com"
    assert "auth_token=" in response.headers["set-cookie"]
    _, email, password_hash = create.call_args.args
    assert email == "ana@example.com"
    assert verify_password("secret1", password_hash)
    assert create.call_args.kwargs["visitor_id"] == "v1"


def test_signup_validation(client: TestClient) -> None:
    response = client.post("/api/auth/signup", json={"email": "", "password": "secret1"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Email is required."

    response = client.post("/api/auth/signup", json={"email": "a@b.c", "password": "12345"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Password must be at least 6 characters."


def test_signup_duplicate_email_returns_409(client: TestClient) -> None:
    with (
        patch("src.api.routes.auth.get_supabase_client", return_value=MagicMock()),
        patch("src.accounts.storage.get_user_by_email", return_value=_user()),
        patch("src.accounts.storage.create_user") as create,
    ):
        response = client.post(
            "/api/auth/signup", json={"email": "ana@example.com", "password": "secret1"}
        )
    assert response.status_code == 409
    create.assert_not_called()


def test_signup_storage_failure_returns_500(client: TestClient) -> None:
    with (
        patch("src.api.routes.auth.get_supabase_client", return_value=MagicMock()),
        patch("src.accounts.storage.get_user_by_email", side_effect=RuntimeError("db down")),
    ):
        response = client.post(
            "/api/auth/signup", json={"email": "ana@example.com", "password": "secret1"}
        )
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to create account."


def test_login_success(client: TestClient) -> None:
    user = _user(password_hash=hash_password("secret1"))
    with (
        patch("src.api.routes.auth.get_supabase_client", return_value=MagicMock()),
        patch("src.accounts.storage.get_user_by_email", return_value=user),
        patch("src.accounts.storage.update_last_login") as last_login,
    ):
        response = client.post(
            "/api/auth/login", json={"email": "ana@example.com", "password": "secret1"}
        )
    assert response.status_code == 200
    assert response.json()["user"]["id"] == "u1"
    assert "auth_token=" in response.headers["set-cookie"]
    last_login.assert_called_once()


def test_login_wrong_password_returns_401(client: TestClient) -> None:
    user = _user(password_hash=hash_password("secret1"))
    with (
        patch("src.api.routes.auth.get_supabase_client", return_value=MagicMock()),
        patch("src.accounts.storage.get_user_by_email", return_value=user),
        patch("src.accounts.storage.update_last_login") as last_login,
    ):
        response = client.post(
            "/api/auth/login", json={"email": "ana@example.com", "password": "wrong-pw"}
        )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password."
    last_login.assert_not_called()


def test_login_unknown_email_returns_401(client: TestClient) -> None:
    with (
        patch("src.api.routes.auth.get_supabase_client", return_value=MagicMock()),
        patch("src.accounts.storage.get_user_by_email", return_value=None),
    ):
        response = client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": "secret1"}
        )
    assert response.status_code == 401


def test_login_requires_fields(client: TestClient) -> None:
    response = client.post("/api/auth/login", json={"email": "ana@example.com"})
    assert response.status_code == 400


def test_me_without_cookie(client: TestClient) -> None:
    response = client.get("/api/auth/me")
    assert response.status_code == 200
    assert response.json() == {"user": None}


def test_me_with_valid_cookie(client: TestClient) -> None:
    client.cookies.set("auth_token", create_token("u1"))
    with (
        patch("src.api.routes.auth.get_supabase_client", return_value=MagicMock()),
        patch("src.accounts.storage.get_user_by_id", return_value=_user(upload_count=12)),
    ):
        response = client.get("/api/auth/me")
    assert response.json()["user"]["upload_count"] == 12


def test_me_with_forged_cookie(client: TestClient) -> None:
    client.cookies.set("auth_token", create_token("u1", secret="not-the-server-secret"))
    response = client.get("/api/auth/me")
    assert response.json() == {"user": None}


def test_me_swallows_storage_errors(client: TestClient) -> None:
    client.cookies.set("auth_token", create_token("u1"))
    with (
        patch("src.api.routes.auth.get_supabase_client", return_value=MagicMock()),
        patch("src.accounts.storage.get_user_by_id", side_effect=RuntimeError("db down")),
    ):
        response = client.get("/api/auth/me")
    assert response.status_code == 200
    assert response.json() == {"user": None}


def test_logout_clears_cookie(client: TestClient) -> None:
    response = client.post("/api/auth/logout")
    assert response.status_code == 200
    assert response.json() == {"user": None}
    assert 'auth_token=""' in response.headers["set-cookie"]
