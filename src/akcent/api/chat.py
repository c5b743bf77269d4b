"""Chat API — the shared room. Every message goes to every client."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import get_current_user
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import CHAT_MESSAGE
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.chat import ChatMessageCreate, ChatMessageRead
from akcent.services.chat_service import ChatService

router = APIRouter(prefix="/chat")


@router.get("/messages", response_model=list[ChatMessageRead])
async def list_messages(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await ChatService(db).list_messages()
    return [
        ChatMessageRead.model_validate(m).model_copy(update={"username": username, "role": role})
        for m, username, role in rows
    ]


@router.post("/messages", response_model=ChatMessageRead, status_code=201)
async def post_message(
    body: ChatMessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    msg = await ChatService(db).post_message(user, body.message)
    out = ChatMessageRead.model_validate(msg).model_copy(
        update={"username": user.username, "role": user.role}
    )
    await broadcaster.publish(CHAT_MESSAGE, out)
    return out
