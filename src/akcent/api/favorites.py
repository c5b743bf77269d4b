"""Favorites API — per-user bookmarks on files.

Adding and removing are idempotent: repeating either returns the same
status and emits no second event.
"""

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import get_current_user
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import FAVORITE_ADDED, FAVORITE_REMOVED
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.file import FavoriteCheck, FavoriteRead, FileRead
from akcent.services.file_service import FileService

router = APIRouter(prefix="/favorites")


@router.get("", response_model=list[FavoriteRead])
async def list_favorites(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await FileService(db).list_favorites(user)
    return [
        FavoriteRead(**FileRead.model_validate(f).model_dump(), favorited_at=at)
        for f, at in rows
    ]


@router.get("/check/{file_id}", response_model=FavoriteCheck)
async def check_favorite(
    file_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return FavoriteCheck(is_favorite=await FileService(db).is_favorite(user.id, file_id))


@router.post("/{file_id}", response_model=FavoriteCheck)
async def add_favorite(
    file_id: uuid.UUID,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    if await FileService(db).add_favorite(user, file_id):
        response.status_code = 201
        await broadcaster.broadcast(
            FAVORITE_ADDED,
            {"fileId": str(file_id), "userId": str(user.id)},
            user_ids=[user.id],
        )
    return FavoriteCheck(is_favorite=True)


@router.delete("/{file_id}", status_code=204)
async def remove_favorite(
    file_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    if await FileService(db).remove_favorite(user.id, file_id):
        await broadcaster.broadcast(
            FAVORITE_REMOVED,
            {"fileId": str(file_id), "userId": str(user.id)},
            user_ids=[user.id],
        )
