"""Direct message service — private one-to-one conversations."""

import uuid

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.db.models import DirectMessage, User, utcnow
from akcent.services.errors import InvalidInputError, NotFoundError


class MessageService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def conversations(self, user_id: uuid.UUID) -> list[dict]:
        """One entry per counterpart, newest conversation first."""
        result = await self.db.execute(
            select(DirectMessage)
            .where(or_(DirectMessage.from_user_id == user_id, DirectMessage.to_user_id == user_id))
            .order_by(DirectMessage.created_at.desc())
        )
        convos: dict[uuid.UUID, dict] = {}
        for msg in result.scalars().all():
            other = msg.to_user_id if msg.from_user_id == user_id else msg.from_user_id
            entry = convos.get(other)
            if entry is None:
                entry = convos[other] = {
                    "user_id": other,
                    "last_message": msg.content,
                    "last_message_at": msg.created_at,
                    "unread_count": 0,
                }
            if msg.to_user_id == user_id and not msg.is_read:
                entry["unread_count"] += 1

        if not convos:
            return []
        users = await self.db.execute(select(User).where(User.id.in_(list(convos))))
        for u in users.scalars().all():
            convos[u.id]["username"] = u.username
            convos[u.id]["avatar"] = u.avatar
        return [c for c in convos.values() if "username" in c]

    async def thread_with(self, user_id: uuid.UUID, other_id: uuid.UUID) -> list[DirectMessage]:
        result = await self.db.execute(
            select(DirectMessage)
            .where(
                or_(
                    and_(DirectMessage.from_user_id == user_id, DirectMessage.to_user_id == other_id),
                    and_(DirectMessage.from_user_id == other_id, DirectMessage.to_user_id == user_id),
                )
            )
            .order_by(DirectMessage.created_at)
        )
        return list(result.scalars().all())

    async def send(self, sender: User, to_user_id: uuid.UUID, content: str) -> DirectMessage:
        if to_user_id == sender.id:
            raise InvalidInputError("You can't message yourself")
        recipient = await self.db.get(User, to_user_id)
        if recipient is None:
            raise NotFoundError("Recipient not found")
        msg = DirectMessage(from_user_id=sender.id, to_user_id=to_user_id, content=content)
        self.db.add(msg)
        await self.db.commit()
        return msg

    async def mark_read(self, user_id: uuid.UUID, from_user_id: uuid.UUID) -> int:
        """Mark everything `from_user_id` sent to `user_id` as read."""
        result = await self.db.execute(
            update(DirectMessage)
            .where(
                DirectMessage.from_user_id == from_user_id,
                DirectMessage.to_user_id == user_id,
                DirectMessage.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    async def unread_count(self, user_id: uuid.UUID) -> int:
        count = await self.db.scalar(
            select(func.count())
            .select_from(DirectMessage)
            .where(DirectMessage.to_user_id == user_id, DirectMessage.is_read.is_(False))
        )
        return count or 0
