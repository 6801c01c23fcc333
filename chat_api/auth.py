"""
Caller identity for the chat API.

Sessions are issued elsewhere; this module only verifies them. A session is an
HS256 JWT whose `sub` claim is the user id, sent either as
`Authorization: Bearer <token>` or in the `session` cookie.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Request

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SESSION_COOKIE = "session"


def create_session_token(user_id: str, secret: str, *, expires_in: timedelta = timedelta(days=7)) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": user_id, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_session_token(token: str, secret: str) -> str | None:
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError as e:
        logger.info("Rejected session token: %s", e)
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None


def _token_from_request(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(SESSION_COOKIE) or None


def get_optional_user(request: Request, secret: str | None) -> str | None:
    """Return the caller's user id, or None if there is no valid session."""
    if not secret:
        return None
    token = _token_from_request(request)
    if not token:
        return None
    return decode_session_token(token, secret)
