"""Collections API — curated, ordered groups of files.

Members are listed in display order and filtered by the caller's role, so
a collection never leaks a file the caller couldn't download anyway.
Staff see every member.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import actor_for, get_current_user, require
from akcent.auth.permissions import has_permission
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import (
    COLLECTION_CREATED,
    COLLECTION_DELETED,
    COLLECTION_FILE_ADDED,
    COLLECTION_FILE_REMOVED,
    COLLECTION_UPDATED,
)
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.file import FileRead
from akcent.schemas.tag import (
    CollectionCreate,
    CollectionFileAdd,
    CollectionFileLinkRead,
    CollectionRead,
    CollectionSummary,
    CollectionUpdate,
)
from akcent.services.collection_service import CollectionService

router = APIRouter()


@router.get("/collections", response_model=list[CollectionSummary])
async def list_collections(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await CollectionService(db).list_collections()
    return [
        CollectionSummary(
            **CollectionRead.model_validate(c).model_dump(),
            file_count=count,
            created_by_username=username,
        )
        for c, count, username in rows
    ]


@router.get("/collections/{collection_id}", response_model=CollectionRead)
async def get_collection(
    collection_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CollectionService(db).get_collection(collection_id)


@router.get("/collections/{collection_id}/files", response_model=list[FileRead])
async def collection_files(
    collection_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    role = None if has_permission(user.role, "files.read_all") else user.role
    return await CollectionService(db).files_in(collection_id, role=role)


# ─── Admin ───────────────────────────────────────────────


@router.post("/admin/collections", response_model=CollectionRead, status_code=201)
async def create_collection(
    body: CollectionCreate,
    request: Request,
    admin: User = Depends(require("collections.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    c = await CollectionService(db).create_collection(body.model_dump(), actor_for(admin, request))
    out = CollectionRead.model_validate(c)
    await broadcaster.publish(COLLECTION_CREATED, out)
    return out


@router.patch("/admin/collections/{collection_id}", response_model=CollectionRead)
async def update_collection(
    collection_id: uuid.UUID,
    body: CollectionUpdate,
    request: Request,
    admin: User = Depends(require("collections.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    c = await CollectionService(db).update_collection(
        collection_id, body.model_dump(exclude_unset=True), actor_for(admin, request)
    )
    out = CollectionRead.model_validate(c)
    await broadcaster.publish(COLLECTION_UPDATED, out)
    return out


@router.delete("/admin/collections/{collection_id}", status_code=204)
async def delete_collection(
    collection_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("collections.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await CollectionService(db).delete_collection(collection_id, actor_for(admin, request))
    await broadcaster.broadcast(COLLECTION_DELETED, {"id": str(collection_id)})


@router.post(
    "/admin/collections/{collection_id}/files/{file_id}",
    response_model=CollectionFileLinkRead,
)
async def add_collection_file(
    collection_id: uuid.UUID,
    file_id: uuid.UUID,
    request: Request,
    response: Response,
    body: Optional[CollectionFileAdd] = Body(None),
    admin: User = Depends(require("collections.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    order = body.display_order if body is not None else 0
    link, created = await CollectionService(db).add_file(
        collection_id, file_id, order, actor_for(admin, request)
    )
    out = CollectionFileLinkRead.model_validate(link)
    if created:
        response.status_code = 201
        await broadcaster.publish(COLLECTION_FILE_ADDED, out)
    return out


@router.delete("/admin/collections/{collection_id}/files/{file_id}", status_code=204)
async def remove_collection_file(
    collection_id: uuid.UUID,
    file_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("collections.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    removed = await CollectionService(db).remove_file(
        collection_id, file_id, actor_for(admin, request)
    )
    if removed:
        await broadcaster.broadcast(
            COLLECTION_FILE_REMOVED,
            {"collectionId": str(collection_id), "fileId": str(file_id)},
        )
