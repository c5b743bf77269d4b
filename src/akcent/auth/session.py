"""Signed session tokens and the cookie that carries them.

Learn: The session is a JWT (HS256) holding the user id and role. It is
stateless, so logging out only clears the cookie; the role claim is a hint
and the user row is always re-read on each request.
"""

from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Response

from akcent.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_session_token(user_id: str, role: str) -> str:
    """Create a session token valid for session_max_age_days."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "type": "session",
        "iat": now,
        "exp": now + timedelta(days=settings.session_max_age_days),
    }
    return jwt.encode(
        payload, settings.session_secret, algorithm=settings.session_algorithm
    )


def verify_session_token(token: str) -> dict:
    """Verify and decode a session token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.session_secret, algorithms=[settings.session_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Session has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid session: {e}")

    if payload.get("type") != "session" or "sub" not in payload:
        raise TokenError("Invalid session: wrong token type")
    return payload


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_days * 24 * 3600,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
