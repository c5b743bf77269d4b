"""Pydantic schemas for file tags and curated file collections."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from akcent.schemas.base import CamelModel

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


# ─── Tags ───────────────────────────────────────────────

class TagCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=64)
    color: str = Field("#3b82f6", pattern=COLOR_PATTERN)


class TagUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=64)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)


class TagRead(CamelModel):
    id: uuid.UUID
    name: str
    color: str
    created_by_id: Optional[uuid.UUID] = None
    created_at: datetime


class FileTagLinkRead(CamelModel):
    file_id: uuid.UUID
    tag_id: uuid.UUID


# ─── Collections ────────────────────────────────────────

class CollectionCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class CollectionUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class CollectionRead(CamelModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    created_by_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


class CollectionSummary(CollectionRead):
    file_count: int = 0
    created_by_username: Optional[str] = None


class CollectionFileAdd(CamelModel):
    display_order: int = 0


class CollectionFileLinkRead(CamelModel):
    collection_id: uuid.UUID
    file_id: uuid.UUID
    display_order: int
