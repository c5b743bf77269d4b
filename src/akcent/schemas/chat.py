"""Pydantic schemas for the shared chat room and private direct messages."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from akcent.schemas.base import CamelModel


def _not_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be blank")
    return v


# ─── Chat room ──────────────────────────────────────────

class ChatMessageCreate(CamelModel):
    message: str = Field(..., min_length=1, max_length=2000)

    @field_validator("message")
    @classmethod
    def _message(cls, v):
        return _not_blank(v)


class ChatMessageRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    username: Optional[str] = None
    role: Optional[str] = None
    message: str
    is_admin_message: bool
    created_at: datetime


# ─── Direct messages ────────────────────────────────────

class DirectMessageCreate(CamelModel):
    to_user_id: uuid.UUID
    content: str = Field(..., min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def _content(cls, v):
        return _not_blank(v)


class DirectMessageRead(CamelModel):
    id: uuid.UUID
    from_user_id: uuid.UUID
    to_user_id: uuid.UUID
    content: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class ConversationRead(CamelModel):
    user_id: uuid.UUID
    username: str
    avatar: Optional[str] = None
    last_message: str
    last_message_at: datetime
    unread_count: int


class MessagesReadResult(CamelModel):
    user_id: uuid.UUID
    from_user_id: uuid.UUID
    updated: int
