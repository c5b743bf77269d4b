"""Pydantic schemas for forum categories, threads and posts."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from akcent.schemas.base import CamelModel


# ─── Categories ─────────────────────────────────────────

class ForumCategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    display_order: int = 0
    is_locked: bool = False


class ForumCategoryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    display_order: Optional[int] = None
    is_locked: Optional[bool] = None


class ForumCategoryRead(CamelModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    display_order: int
    is_locked: bool
    created_at: datetime
    thread_count: int = 0


# ─── Threads ────────────────────────────────────────────

class ForumThreadCreate(CamelModel):
    category_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, max_length=20000)


class ForumThreadUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    is_pinned: Optional[bool] = None
    is_locked: Optional[bool] = None


class ForumThreadRead(CamelModel):
    id: uuid.UUID
    category_id: uuid.UUID
    title: str
    created_by_id: uuid.UUID
    created_by_username: Optional[str] = None
    is_pinned: bool
    is_locked: bool
    view_count: int
    reply_count: int
    last_post_at: Optional[datetime] = None
    last_post_by_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


# ─── Posts ──────────────────────────────────────────────

class ForumPostCreate(CamelModel):
    content: str = Field(..., min_length=1, max_length=20000)


class ForumPostUpdate(CamelModel):
    content: str = Field(..., min_length=1, max_length=20000)


class ForumPostRead(CamelModel):
    id: uuid.UUID
    thread_id: uuid.UUID
    created_by_id: uuid.UUID
    created_by_username: Optional[str] = None
    content: str
    is_edited: bool
    edited_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
