"""Browser fingerprint for anonymous visitors, memoized per Streamlit session."""

from __future__ import annotations

import hashlib
import uuid

import streamlit as st

_SESSION_KEY = "visitor_fingerprint"
_HEADERS = ("user-agent", "accept-language", "accept-encoding", "sec-ch-ua-platform")


def compute_fingerprint(headers: dict[str, str]) -> str:
    """Hash the stable request headers into a 32-char visitor fingerprint."""
    normalized = {k.lower(): v for k, v in headers.items()}
    material = "|".join(normalized.get(name, "") for name in _HEADERS)
    if not material.strip("|"):
        raise ValueError("no identifying headers")
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:32]


def get_fingerprint() -> str:
    """Return this session's fingerprint, computing it once.

    Falls back to a random ID if the browser headers are unavailable.
    """
    cached = st.session_state.get(_SESSION_KEY)
    if cached:
        return str(cached)

    try:
        fingerprint = compute_fingerprint(dict(st.context.headers))
    except (AttributeError, ValueError):
        fingerprint = f"fallback-{uuid.uuid4()}"

    st.session_state[_SESSION_KEY] = fingerprint
    return fingerprint
