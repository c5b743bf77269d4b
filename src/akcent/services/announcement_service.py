"""Announcement service — site-wide notices that also land in every inbox."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.db.models import Announcement, utcnow
from akcent.services.audit_service import CREATE, DELETE, UPDATE, Actor, AuditService
from akcent.services.errors import NotFoundError
from akcent.services.notification_service import NotificationService


class AnnouncementService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def list_announcements(self, include_inactive: bool = False) -> list[Announcement]:
        q = select(Announcement).order_by(Announcement.created_at.desc())
        if not include_inactive:
            q = q.where(Announcement.is_active.is_(True))
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def get_announcement(self, announcement_id: uuid.UUID) -> Announcement:
        a = await self.db.get(Announcement, announcement_id)
        if a is None:
            raise NotFoundError("Announcement not found")
        return a

    async def create_announcement(
        self, data: dict, actor: Actor
    ) -> tuple[Announcement, list[uuid.UUID]]:
        """Create and notify every active user in one transaction.

        Returns the announcement and the notified user ids.
        """
        a = Announcement(**data, created_by_id=actor.user_id)
        self.db.add(a)
        await self.db.flush()

        notifications = NotificationService(self.db)
        notified = notifications.notify(
            await notifications.recipients(),
            type="announcement",
            title="New Announcement",
            message=a.title,
            related_entity_id=a.id,
        )
        self.audit.record(actor, CREATE, "announcement", a.id, details=a.title)
        await self.db.commit()
        return a, notified

    async def update_announcement(
        self, announcement_id: uuid.UUID, changes: dict, actor: Actor
    ) -> Announcement:
        a = await self.get_announcement(announcement_id)
        for field, value in changes.items():
            if value is not None:
                setattr(a, field, value)
        a.updated_at = utcnow()
        self.audit.record(actor, UPDATE, "announcement", a.id, details=", ".join(sorted(changes)))
        await self.db.commit()
        return a

    async def delete_announcement(self, announcement_id: uuid.UUID, actor: Actor) -> None:
        a = await self.get_announcement(announcement_id)
        await self.db.delete(a)
        self.audit.record(actor, DELETE, "announcement", announcement_id)
        await self.db.commit()
