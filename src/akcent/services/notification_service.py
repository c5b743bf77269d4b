"""Notification service — per-user inbox entries.

Learn: notify() only stages rows in the caller's transaction. The
announcement and file-upload flows commit the notifications together with
the entity they point at, then send a single new_notification event
listing every recipient.
"""

import uuid
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.db.models import Notification, User
from akcent.services.errors import NotFoundError


class NotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def recipients(self, roles: Optional[Iterable[str]] = None) -> list[uuid.UUID]:
        """Ids of active users, optionally limited to some roles."""
        q = select(User.id).where(User.is_active.is_(True))
        if roles is not None:
            q = q.where(User.role.in_(list(roles)))
        result = await self.db.execute(q)
        return list(result.scalars().all())

    def notify(
        self,
        user_ids: Iterable[uuid.UUID],
        type: str,
        title: str,
        message: str,
        related_entity_id: Optional[uuid.UUID] = None,
    ) -> list[uuid.UUID]:
        notified = []
        for user_id in user_ids:
            self.db.add(
                Notification(
                    user_id=user_id,
                    type=type,
                    title=title,
                    message=message,
                    related_entity_id=related_entity_id,
                )
            )
            notified.append(user_id)
        return notified

    async def list_for_user(self, user_id: uuid.UUID, limit: int = 100) -> list[Notification]:
        result = await self.db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def unread_count(self, user_id: uuid.UUID) -> int:
        count = await self.db.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return count or 0

    async def mark_read(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        """Only the owner can mark a notification; anyone else gets 404."""
        note = await self.db.get(Notification, notification_id)
        if note is None or note.user_id != user_id:
            raise NotFoundError("Notification not found")
        note.is_read = True
        await self.db.commit()
        return note

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount
