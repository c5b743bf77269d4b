"""Pydantic schemas for announcements and per-user notifications."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from akcent.schemas.base import CamelModel, NotificationType, Priority


# ─── Announcements ──────────────────────────────────────

class AnnouncementCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    priority: Priority = "normal"
    is_active: bool = True


class AnnouncementUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    priority: Optional[Priority] = None
    is_active: Optional[bool] = None


class AnnouncementRead(CamelModel):
    id: uuid.UUID
    title: str
    content: str
    priority: str
    is_active: bool
    created_by_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


# ─── Notifications ──────────────────────────────────────

class NotificationRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    title: str
    message: str
    is_read: bool
    related_entity_id: Optional[uuid.UUID] = None
    created_at: datetime


class NotificationFanout(CamelModel):
    """Payload of new_notification: who got a notification and about what."""
    user_ids: list[uuid.UUID]
    type: NotificationType
    title: str
    related_entity_id: Optional[uuid.UUID] = None


class UnreadCount(CamelModel):
    count: int
