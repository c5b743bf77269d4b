"""Tags API — tag CRUD and attaching tags to files."""

import uuid

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import actor_for, get_current_user, require
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import (
    FILE_TAG_ADDED,
    FILE_TAG_REMOVED,
    TAG_CREATED,
    TAG_DELETED,
    TAG_UPDATED,
)
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.tag import FileTagLinkRead, TagCreate, TagRead, TagUpdate
from akcent.services.tag_service import TagService

router = APIRouter()


@router.get("/tags", response_model=list[TagRead])
async def list_tags(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TagService(db).list_tags()


@router.get("/files/{file_id}/tags", response_model=list[TagRead])
async def file_tags(
    file_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TagService(db).tags_for_file(file_id)


# ─── Admin ───────────────────────────────────────────────


@router.post("/admin/tags", response_model=TagRead, status_code=201)
async def create_tag(
    body: TagCreate,
    request: Request,
    admin: User = Depends(require("tags.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    tag = await TagService(db).create_tag(body.name, body.color, actor_for(admin, request))
    out = TagRead.model_validate(tag)
    await broadcaster.publish(TAG_CREATED, out)
    return out


@router.patch("/admin/tags/{tag_id}", response_model=TagRead)
async def update_tag(
    tag_id: uuid.UUID,
    body: TagUpdate,
    request: Request,
    admin: User = Depends(require("tags.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    tag = await TagService(db).update_tag(
        tag_id, body.model_dump(exclude_unset=True), actor_for(admin, request)
    )
    out = TagRead.model_validate(tag)
    await broadcaster.publish(TAG_UPDATED, out)
    return out


@router.delete("/admin/tags/{tag_id}", status_code=204)
async def delete_tag(
    tag_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("tags.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await TagService(db).delete_tag(tag_id, actor_for(admin, request))
    await broadcaster.broadcast(TAG_DELETED, {"id": str(tag_id)})


@router.post("/admin/files/{file_id}/tags/{tag_id}", response_model=FileTagLinkRead)
async def attach_tag(
    file_id: uuid.UUID,
    tag_id: uuid.UUID,
    request: Request,
    response: Response,
    admin: User = Depends(require("tags.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """Attaching an already attached tag is a no-op (200, no event)."""
    out = FileTagLinkRead(file_id=file_id, tag_id=tag_id)
    if await TagService(db).add_to_file(file_id, tag_id, actor_for(admin, request)):
        response.status_code = 201
        await broadcaster.publish(FILE_TAG_ADDED, out)
    return out


@router.delete("/admin/files/{file_id}/tags/{tag_id}", status_code=204)
async def detach_tag(
    file_id: uuid.UUID,
    tag_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("tags.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    if await TagService(db).remove_from_file(file_id, tag_id, actor_for(admin, request)):
        await broadcaster.publish(FILE_TAG_REMOVED, FileTagLinkRead(file_id=file_id, tag_id=tag_id))
