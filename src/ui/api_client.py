"""HTTP client wrapper for the Video Transcriber FastAPI backend."""

from __future__ import annotations

import os
from typing import Any

import httpx
import streamlit as st

from src.ui.fingerprint import get_fingerprint

API_URL = os.getenv("API_URL", "http://localhost:8000")

_CLIENT_KEY = "api_http_client"


class LimitReached(Exception):
    """The backend refused the upload because the free quota is used up."""

    def __init__(self, payload: dict[str, Any]) -> None:
        super().__init__(payload.get("message", "Upload limit reached."))
        self.payload = payload


def _client() -> httpx.Client:
    """One httpx client per browser session so visitor/auth cookies persist."""
    client = st.session_state.get(_CLIENT_KEY)
    if client is None:
        client = httpx.Client(
            base_url=API_URL,
            headers={"x-fingerprint": get_fingerprint()},
        )
        st.session_state[_CLIENT_KEY] = client
    return client  # type: ignore[no-any-return]


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text or r.reason_phrase
    detail = body.get("detail") or body.get("message") or body.get("error")
    return str(detail) if detail else r.reason_phrase


def check_health() -> bool:
    """Return True if the API server responds to /health."""
    try:
        r = _client().get("/health", timeout=5.0)
        return r.status_code == 200
    except httpx.ConnectError:
        return False


def get_usage() -> dict:  # type: ignore[type-arg]
    try:
        r = _client().get("/api/usage", timeout=10.0)
        r.raise_for_status()
        return r.json()  # type: ignore[no-any-return]
    except httpx.HTTPError:
        return {}


def transcribe_video(file_content: bytes, filename: str, content_type: str | None) -> dict:  # type: ignore[type-arg]
    """Upload a video for transcription.

    Raises:
        LimitReached: The visitor has no free uploads left.
    """
    try:
        r = _client().post(
            "/api/transcribe",
            files={"file": (filename, file_content, content_type or "application/octet-stream")},
            timeout=900.0,
        )
    except httpx.HTTPError as e:
        st.error(f"Transcription failed: {e}")
        return {}

    if r.status_code == 403:
        try:
            body = r.json()
        except ValueError:
            body = {}
        if body.get("error") == "limit_reached":
            raise LimitReached(body)
    if r.is_error:
        st.error(f"Transcription failed: {_error_message(r)}")
        return {}
    return r.json()  # type: ignore[no-any-return]


def summarize(transcript: str, summary_type: str) -> dict:  # type: ignore[type-arg]
    try:
        r = _client().post(
            "/api/summarize",
            json={"transcript": transcript, "summary_type": summary_type},
            timeout=300.0,
        )
    except httpx.HTTPError as e:
        st.error(f"Summary failed: {e}")
        return {}
    if r.is_error:
        st.error(f"Summary failed: {_error_message(r)}")
        return {}
    return r.json()  # type: ignore[no-any-return]


def signup(email: str, password: str, name: str | None = None) -> dict:  # type: ignore[type-arg]
    payload: dict[str, str] = {"email": email, "password": password}
    if name:
        payload["name"] = name
    try:
        r = _client().post("/api/auth/signup", json=payload, timeout=10.0)
    except httpx.HTTPError as e:
        st.error(f"Signup failed: {e}")
        return {}
    if r.is_error:
        st.error(_error_message(r))
        return {}
    return r.json()  # type: ignore[no-any-return]


def login(email: str, password: str) -> dict:  # type: ignore[type-arg]
    try:
        r = _client().post(
            "/api/auth/login", json={"email": email, "password": password}, timeout=10.0
        )
    except httpx.HTTPError as e:
        st.error(f"Login failed: {e}")
        return {}
    if r.is_error:
        st.error(_error_message(r))
        return {}
    return r.json()  # type: ignore[no-any-return]


def logout() -> None:
    try:
        _client().post("/api/auth/logout", timeout=10.0)
    except httpx.HTTPError as e:
        st.warning(f"Logout failed: {e}")


def get_current_user() -> dict | None:  # type: ignore[type-arg]
    try:
        r = _client().get("/api/auth/me", timeout=10.0)
        r.raise_for_status()
        return r.json().get("user")  # type: ignore[no-any-return]
    except httpx.HTTPError:
        return None
