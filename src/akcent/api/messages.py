"""Direct messages API — private conversations between two users.

Events go to both parties only. `/messages/unread/count` is declared
before `/messages/{user_id}` so the literal path wins.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import get_current_user
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import DIRECT_MESSAGE_SENT, DIRECT_MESSAGES_READ
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.announcement import UnreadCount
from akcent.schemas.chat import (
    ConversationRead,
    DirectMessageCreate,
    DirectMessageRead,
    MessagesReadResult,
)
from akcent.services.message_service import MessageService

router = APIRouter(prefix="/messages")


@router.get("/conversations", response_model=list[ConversationRead])
async def list_conversations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MessageService(db).conversations(user.id)


@router.get("/unread/count", response_model=UnreadCount)
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCount(count=await MessageService(db).unread_count(user.id))


@router.get("/{user_id}", response_model=list[DirectMessageRead])
async def conversation(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MessageService(db).thread_with(user.id, user_id)


@router.post("", response_model=DirectMessageRead, status_code=201)
async def send_message(
    body: DirectMessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    msg = await MessageService(db).send(user, body.to_user_id, body.content)
    out = DirectMessageRead.model_validate(msg)
    await broadcaster.publish(DIRECT_MESSAGE_SENT, out, user_ids=[user.id, body.to_user_id])
    return out


@router.patch("/{user_id}/read", response_model=MessagesReadResult)
async def mark_read(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """Mark everything `user_id` sent to the caller as read."""
    updated = await MessageService(db).mark_read(user.id, user_id)
    out = MessagesReadResult(user_id=user.id, from_user_id=user_id, updated=updated)
    if updated:
        await broadcaster.publish(DIRECT_MESSAGES_READ, out, user_ids=[user.id, user_id])
    return out
