"""app.py — Chat with your AI tutor.

Run with `streamlit run chat_ui/app.py`. Talks to the chat API's streaming
`POST /api/chat` endpoint.
"""

from __future__ import annotations

import os
from collections.abc import Iterator

import httpx
import streamlit as st

API_URL = os.environ.get("TUTOR_API_URL", "http://localhost:8080").rstrip("/")
MIN_INPUT_LENGTH = 2
GREETING = {"role": "assistant", "content": "Hello! I'm your AI tutor. How can I help you learn today?"}


class TransportError(Exception):
    pass


def validate_input(text: str | None) -> str | None:
    """Return a user-facing problem with the input, or None if it can be sent."""
    if len((text or "").strip()) < MIN_INPUT_LENGTH:
        return f"Please type at least {MIN_INPUT_LENGTH} characters."
    return None


def error_message(status_code: int, body: object) -> str:
    if isinstance(body, dict) and body.get("error"):
        return f"{body['error']} ({status_code})"
    if status_code == 401:
        return "Your session has expired. Please sign in again."
    return f"The tutor is unavailable right now ({status_code})."


def api_messages(messages: list[dict[str, str]]) -> list[dict[str, str]]:
    """The conversation as sent to the API: the local greeting is not part of it."""
    return [m for m in messages if m != GREETING]


def stream_reply(messages: list[dict[str, str]], token: str) -> Iterator[str]:
    headers = {"Authorization": f"Bearer {token}"}
    try:
        with httpx.stream(
            "POST",
            f"{API_URL}/api/chat",
            json={"messages": messages},
            headers=headers,
            timeout=120,
        ) as r:
            if r.status_code >= 400:
                r.read()
                try:
                    body = r.json()
                except ValueError:
                    body = None
                raise TransportError(error_message(r.status_code, body))
            yield from r.iter_text()
    except httpx.HTTPError as e:
        raise TransportError(f"Could not reach the tutor service: {e}") from e


def main() -> None:
    st.set_page_config(page_title="AI Tutor", page_icon="💬")
    st.title("💬 AI Tutor")

    state = st.session_state
    state.setdefault("messages", [GREETING])
    state.setdefault("pending", False)
    state.setdefault("error", None)

    token = os.environ.get("TUTOR_API_TOKEN") or state.get("access_token")
    if not token:
        token = st.sidebar.text_input("Session token", type="password")
        if not token:
            st.warning("Please sign in first.")
            st.stop()
        state.access_token = token

    # Shown once after the rerun that recorded it; the user can close it.
    if state.error:
        st.toast(state.error, icon="⚠️")
        state.error = None

    for m in state.messages:
        with st.chat_message(m["role"]):
            st.markdown(m["content"])

    prompt = st.chat_input("Ask me anything...", disabled=state.pending)
    if prompt and not state.pending:
        problem = validate_input(prompt)
        if problem:
            st.warning(problem)
        else:
            state.messages.append({"role": "user", "content": prompt.strip()})
            state.pending = True
            st.rerun()

    if state.pending:
        with st.chat_message("assistant"):
            try:
                with st.spinner("Processing..."):
                    reply = st.write_stream(stream_reply(api_messages(state.messages), token))
            except TransportError as e:
                state.messages.pop()
                state.error = str(e)
            else:
                state.messages.append({"role": "assistant", "content": reply})
        state.pending = False
        st.rerun()


if __name__ == "__main__":
    main()
