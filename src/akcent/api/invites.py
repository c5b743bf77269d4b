"""Invite codes API — admins mint codes, staff can list them."""

import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import actor_for, require
from akcent.auth.permissions import STAFF_ROLES
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import INVITE_CODE_CREATED, INVITE_CODE_DELETED
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.user import InviteCodeCreate, InviteCodeRead
from akcent.services.invite_service import InviteService

router = APIRouter(prefix="/admin/invite-codes")


@router.get("", response_model=list[InviteCodeRead])
async def list_invite_codes(
    _: User = Depends(require("users.read")),
    db: AsyncSession = Depends(get_db),
):
    return await InviteService(db).list_codes()


@router.post("", response_model=InviteCodeRead, status_code=201)
async def create_invite_code(
    body: InviteCodeCreate,
    request: Request,
    admin: User = Depends(require("invites.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    code = await InviteService(db).create_code(body.role, actor_for(admin, request))
    out = InviteCodeRead.model_validate(code)
    await broadcaster.publish(INVITE_CODE_CREATED, out, roles=STAFF_ROLES)
    return out


@router.delete("/{code_id}", status_code=204)
async def delete_invite_code(
    code_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("invites.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await InviteService(db).delete_code(code_id, actor_for(admin, request))
    await broadcaster.broadcast(INVITE_CODE_DELETED, {"id": str(code_id)}, roles=STAFF_ROLES)
