"""Auth API — registration, login, logout, current user.

Learn: Routes for the session lifecycle:
- POST /register → invite code + username/password → account + session cookie
- POST /login → username/password → session cookie
- POST /logout → clears the cookie
- GET /user → the signed-in user (401 otherwise)

Registration and login are also announced on the push channel so staff
user lists stay current, and registration fires `new_user` webhooks.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import client_ip, get_current_user
from akcent.auth.permissions import STAFF_ROLES
from akcent.auth.session import clear_session_cookie, create_session_token, set_session_cookie
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import USER_CREATED, USER_UPDATED
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.user import LoginRequest, RegisterRequest, UserRead
from akcent.services.user_service import AuthenticationError, UserService
from akcent.services.webhook_service import WebhookNotifier, WebhookService, get_notifier

router = APIRouter()


def _start_session(response: Response, user: User) -> None:
    set_session_cookie(response, create_session_token(str(user.id), user.role))


@router.post("/register", response_model=UserRead, status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    notifier: WebhookNotifier = Depends(get_notifier),
):
    """Create an account from an unused invite code and sign it in."""
    svc = UserService(db)
    user = await svc.register(body.username, body.password, body.invite_code)
    user = await svc.record_login(user, client_ip(request))
    _start_session(response, user)

    out = UserRead.model_validate(user)
    await broadcaster.publish(USER_CREATED, out, user_ids=[user.id], roles=STAFF_ROLES)

    targets = await WebhookService(db).targets_for("new_user")
    if targets:
        background.add_task(
            notifier.notify, targets, "new_user", "New User Registered",
            f"{user.username} joined as {user.role}",
        )
    return out


@router.post("/login", response_model=UserRead)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    svc = UserService(db)
    try:
        user = await svc.authenticate(body.username, body.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))

    user = await svc.record_login(user, client_ip(request))
    _start_session(response, user)

    out = UserRead.model_validate(user)
    await broadcaster.publish(USER_UPDATED, out, user_ids=[user.id], roles=STAFF_ROLES)
    return out


@router.post("/logout", status_code=204)
async def logout(response: Response):
    clear_session_cookie(response)


@router.get("/user", response_model=UserRead)
async def current_user(user: User = Depends(get_current_user)):
    return user
