"""Chat service — one shared room for every signed-in user."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.permissions import has_permission
from akcent.db.models import ChatMessage, User


class ChatService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_messages(self, limit: int = 200) -> list[tuple[ChatMessage, str, str]]:
        """The most recent messages, oldest first, with author name and role."""
        result = await self.db.execute(
            select(ChatMessage, User.username, User.role)
            .join(User, User.id == ChatMessage.user_id)
            .order_by(ChatMessage.created_at.desc())
            .limit(limit)
        )
        rows = [(row[0], row[1], row[2]) for row in result.all()]
        rows.reverse()
        return rows

    async def post_message(self, user: User, text: str) -> ChatMessage:
        msg = ChatMessage(
            user_id=user.id,
            message=text.strip(),
            is_admin_message=has_permission(user.role, "chat.moderate"),
        )
        self.db.add(msg)
        await self.db.commit()
        return msg
