"""Users API — staff user management, own profile, dashboard stats."""

import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import actor_for, get_current_user, require
from akcent.auth.permissions import STAFF_ROLES
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import USER_UPDATED
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.user import (
    AdminUserRead,
    ProfileUpdate,
    StatsRead,
    UserRead,
    UserRoleUpdate,
    UserStatusUpdate,
)
from akcent.services.user_service import UserService

router = APIRouter()


async def _announce(broadcaster: EventBroadcaster, user: User) -> UserRead:
    out = UserRead.model_validate(user)
    await broadcaster.publish(USER_UPDATED, out, user_ids=[user.id], roles=STAFF_ROLES)
    return out


# ─── Admin ───────────────────────────────────────────────


@router.get("/admin/users", response_model=list[AdminUserRead])
async def list_users(
    _: User = Depends(require("users.read")),
    db: AsyncSession = Depends(get_db),
):
    return await UserService(db).list_users()


@router.patch("/admin/users/{user_id}/role", response_model=UserRead)
async def update_user_role(
    user_id: uuid.UUID,
    body: UserRoleUpdate,
    request: Request,
    admin: User = Depends(require("users.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    user = await UserService(db).update_role(user_id, body.role, actor_for(admin, request))
    broadcaster.retarget(user.id, user.role)
    return await _announce(broadcaster, user)


@router.patch("/admin/users/{user_id}/status", response_model=UserRead)
async def update_user_status(
    user_id: uuid.UUID,
    body: UserStatusUpdate,
    request: Request,
    admin: User = Depends(require("users.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    user = await UserService(db).update_status(user_id, body.is_active, actor_for(admin, request))
    out = await _announce(broadcaster, user)
    if not user.is_active:
        await broadcaster.disconnect_user(user.id)
    return out


# ─── Profile ─────────────────────────────────────────────


@router.get("/profile", response_model=UserRead)
async def get_profile(user: User = Depends(get_current_user)):
    return user


@router.patch("/profile", response_model=UserRead)
async def update_profile(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    user = await UserService(db).update_profile(user, body.model_dump(exclude_unset=True))
    return await _announce(broadcaster, user)


@router.get("/stats", response_model=StatsRead, response_model_exclude_none=True)
async def get_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserService(db).stats(user)
