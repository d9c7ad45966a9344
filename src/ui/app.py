"""Video Transcriber -- Streamlit UI.

Upload a video, get a transcript and a summary in the chosen style.
Anonymous visitors get a limited number of free uploads; signing in lifts
the limit.
"""

from __future__ import annotations

import streamlit as st

from src.pipeline_config import SummaryStyle
from src.ui.api_client import (
    LimitReached,
    check_health,
    get_current_user,
    get_usage,
    login,
    logout,
    signup,
    summarize,
    transcribe_video,
)

STYLE_LABELS = {
    SummaryStyle.BRIEF.value: "Brief",
    SummaryStyle.DETAILED.value: "Detailed",
    SummaryStyle.BULLETS.value: "Bullet points",
    SummaryStyle.ACTION.value: "Action items",
}

# ---------------------------------------------------------------------------
# Page config (must be first Streamlit call)
# ---------------------------------------------------------------------------
st.set_page_config(page_title="Video Transcriber", layout="wide")

st.session_state.setdefault("transcript", "")
st.session_state.setdefault("summary", "")
st.session_state.setdefault("limit_reached", False)

# ---------------------------------------------------------------------------
# Sidebar -- account + API status
# ---------------------------------------------------------------------------
with st.sidebar:
    st.title("Video Transcriber")
    st.markdown("---")

    api_healthy = check_health()
    if api_healthy:
        st.markdown(":green_circle: API connected")
    else:
        st.markdown(":red_circle: API unreachable")

    st.markdown("---")

    user = get_current_user() if api_healthy else None
    if user:
        st.write(f"Signed in as **{user.get('name') or user['email']}**")
        st.caption(f"{user.get('upload_count') or 0} uploads · unlimited")
        if st.button("Log out"):
            logout()
            st.rerun()
    else:
        mode = st.radio("Account", ["Log in", "Sign up"], horizontal=True)
        with st.form("account_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            name = st.text_input("Name (optional)") if mode == "Sign up" else ""
            submitted = st.form_submit_button(mode)
        if submitted and api_healthy:
            result = signup(email, password, name) if mode == "Sign up" else login(email, password)
            if result.get("user"):
                st.session_state["limit_reached"] = False
                st.rerun()

# ---------------------------------------------------------------------------
# Main page
# ---------------------------------------------------------------------------
st.header("Transcribe and summarize a video")

usage = get_usage() if api_healthy else {}
if usage and not usage.get("unlimited"):
    remaining = usage.get("remaining")
    if remaining:
        st.caption(f"{remaining} free upload{'' if remaining == 1 else 's'} remaining")
    elif remaining == 0:
        st.session_state["limit_reached"] = True

uploaded_file = st.file_uploader(
    "Choose a video",
    type=["mp4", "mov", "mkv", "webm", "avi", "m4v", "mp3", "wav", "m4a"],
)

summary_type: str = st.radio(
    "Summary style",
    options=[s.value for s in SummaryStyle],
    format_func=lambda x: STYLE_LABELS.get(x, x),
    horizontal=True,
)

if st.session_state["limit_reached"]:
    st.warning("You've used all your free uploads. Create an account to continue.")

if st.button(
    "Transcribe & summarize",
    disabled=uploaded_file is None or st.session_state["limit_reached"] or not api_healthy,
):
    if uploaded_file is not None:
        st.session_state["transcript"] = ""
        st.session_state["summary"] = ""
        try:
            with st.spinner("Transcribing... long videos can take several minutes."):
                result = transcribe_video(
                    uploaded_file.getvalue(), uploaded_file.name, uploaded_file.type
                )
        except LimitReached as exc:
            st.session_state["limit_reached"] = True
            st.error(str(exc))
            result = {}

        transcript = result.get("transcript", "")
        if transcript:
            st.session_state["transcript"] = transcript
            if result.get("remaining") == 0:
                st.session_state["limit_reached"] = True
            with st.spinner("Summarizing..."):
                summary_result = summarize(transcript, summary_type)
            st.session_state["summary"] = summary_result.get("summary", "")

if st.session_state["summary"]:
    st.subheader("Summary")
    st.markdown(st.session_state["summary"])

if st.session_state["transcript"]:
    st.subheader("Transcript")
    st.text_area(
        "Transcript",
        st.session_state["transcript"],
        height=400,
        label_visibility="collapsed",
    )
