"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current user from the request.

Two ways to present the session token:
1. The HTTP-only session cookie (browsers)
2. Authorization: Bearer <token> (the CLI)

Both resolve to the same User row, re-read from the database on every
request so role changes and deactivation take effect immediately.
"""

import uuid
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.permissions import has_permission
from akcent.auth.session import TokenError, verify_session_token
from akcent.config import settings
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.services.audit_service import Actor


def extract_token(
    cookies: dict[str, str], authorization: Optional[str] = None
) -> Optional[str]:
    """Pick the session token from a Bearer header or the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:]
    return cookies.get(settings.session_cookie_name)


async def load_session_user(db: AsyncSession, token: str) -> Optional[User]:
    """Resolve a token to an active user, or None if anything is off."""
    try:
        payload = verify_session_token(token)
        user_id = uuid.UUID(payload["sub"])
    except (TokenError, ValueError):
        return None

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user_optional(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Extract current user (optional — returns None if not logged in).

    Learn: This is the "soft" auth dependency. A bad or expired cookie is
    treated the same as no cookie.
    """
    token = extract_token(request.cookies, request.headers.get("authorization"))
    if not token:
        return None
    return await load_session_user(db, token)


async def get_current_user(
    user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    """Extract current user (required — 401 if not logged in)."""
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


def require(permission: str) -> Callable:
    """Build a dependency that demands a permission from the current user.

    Usage:
        @router.post("/admin/tags")
        async def create_tag(user: User = Depends(require("tags.manage"))): ...
    """

    async def _check(user: User = Depends(get_current_user)) -> User:
        if not has_permission(user.role, permission):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return _check


def client_ip(request: Request) -> Optional[str]:
    """First X-Forwarded-For hop, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def actor_for(user: User, request: Request) -> Actor:
    """Who is acting, for the audit log."""
    return Actor(user_id=user.id, role=user.role, ip_address=client_ip(request))
