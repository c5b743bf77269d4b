"""Announcements API — site notices, plus each user's notification inbox.

Learn: Creating an announcement writes one notification row per active
user inside the same transaction. After commit two events go out:
announcement_created for every client and a single new_notification
carrying the recipient ids, so clients refetch their inbox only when
they are on the list.
"""

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import actor_for, get_current_user, require
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import (
    ANNOUNCEMENT_CREATED,
    ANNOUNCEMENT_DELETED,
    ANNOUNCEMENT_UPDATED,
    NEW_NOTIFICATION,
    NOTIFICATION_READ,
    NOTIFICATIONS_READ_ALL,
)
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.announcement import (
    AnnouncementCreate,
    AnnouncementRead,
    AnnouncementUpdate,
    NotificationFanout,
    NotificationRead,
    UnreadCount,
)
from akcent.services.announcement_service import AnnouncementService
from akcent.services.notification_service import NotificationService
from akcent.services.webhook_service import WebhookNotifier, WebhookService, get_notifier

router = APIRouter()


# ─── Announcements ───────────────────────────────────────


@router.get("/announcements", response_model=list[AnnouncementRead])
async def list_announcements(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService(db).list_announcements()


@router.get("/admin/announcements", response_model=list[AnnouncementRead])
async def list_all_announcements(
    include_inactive: bool = Query(False, alias="includeInactive"),
    _: User = Depends(require("announcements.manage")),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService(db).list_announcements(include_inactive=include_inactive)


@router.post("/admin/announcements", response_model=AnnouncementRead, status_code=201)
async def create_announcement(
    body: AnnouncementCreate,
    request: Request,
    background: BackgroundTasks,
    admin: User = Depends(require("announcements.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    notifier: WebhookNotifier = Depends(get_notifier),
):
    a, notified = await AnnouncementService(db).create_announcement(
        body.model_dump(), actor_for(admin, request)
    )
    out = AnnouncementRead.model_validate(a)
    await broadcaster.publish(ANNOUNCEMENT_CREATED, out)
    await broadcaster.publish(
        NEW_NOTIFICATION,
        NotificationFanout(
            user_ids=notified, type="announcement", title=a.title, related_entity_id=a.id
        ),
    )

    targets = await WebhookService(db).targets_for("announcement")
    if targets:
        background.add_task(notifier.notify, targets, "announcement", a.title, a.content)
    return out


@router.patch("/admin/announcements/{announcement_id}", response_model=AnnouncementRead)
async def update_announcement(
    announcement_id: uuid.UUID,
    body: AnnouncementUpdate,
    request: Request,
    admin: User = Depends(require("announcements.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    a = await AnnouncementService(db).update_announcement(
        announcement_id, body.model_dump(exclude_unset=True), actor_for(admin, request)
    )
    out = AnnouncementRead.model_validate(a)
    await broadcaster.publish(ANNOUNCEMENT_UPDATED, out)
    return out


@router.delete("/admin/announcements/{announcement_id}", status_code=204)
async def delete_announcement(
    announcement_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("announcements.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await AnnouncementService(db).delete_announcement(announcement_id, actor_for(admin, request))
    await broadcaster.broadcast(ANNOUNCEMENT_DELETED, {"id": str(announcement_id)})


# ─── Notifications ───────────────────────────────────────


@router.get("/notifications", response_model=list[NotificationRead])
async def list_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService(db).list_for_user(user.id)


@router.get("/notifications/unread-count", response_model=UnreadCount)
async def unread_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCount(count=await NotificationService(db).unread_count(user.id))


@router.patch("/notifications/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    n = await NotificationService(db).mark_read(user.id, notification_id)
    out = NotificationRead.model_validate(n)
    await broadcaster.broadcast(
        NOTIFICATION_READ, {"id": str(n.id), "userId": str(user.id)}, user_ids=[user.id]
    )
    return out


@router.post("/notifications/read-all", response_model=UnreadCount)
async def mark_all_notifications_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """Returns how many notifications were marked."""
    marked = await NotificationService(db).mark_all_read(user.id)
    await broadcaster.broadcast(
        NOTIFICATIONS_READ_ALL, {"userId": str(user.id)}, user_ids=[user.id]
    )
    return UnreadCount(count=marked)
