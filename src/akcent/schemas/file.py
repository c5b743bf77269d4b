"""Pydantic schemas for files, versions, comments, favorites and history.

Learn: Upload metadata arrives as multipart form fields, so FileUpload is
validated explicitly in the route (parse_allowed_roles accepts either a
JSON array or a comma separated list); everything else is plain JSON.
"""

import json
import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from akcent.auth.permissions import Role
from akcent.schemas.base import CamelModel, FileCategory


def parse_allowed_roles(raw: str) -> list[str]:
    """Accept '["admin","customer"]' or 'admin,customer'."""
    raw = raw.strip()
    if raw.startswith("["):
        try:
            values = json.loads(raw)
        except json.JSONDecodeError:
            raise ValueError("allowedRoles is not a valid JSON array")
        if not isinstance(values, list):
            raise ValueError("allowedRoles must be a list")
        return [str(v).strip() for v in values]
    return [part.strip() for part in raw.split(",") if part.strip()]


def _dedupe_roles(roles: list[Role]) -> list[Role]:
    seen: list[Role] = []
    for r in roles:
        if r not in seen:
            seen.append(r)
    return seen


# ─── Files ──────────────────────────────────────────────

class FileUpload(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    version: Optional[str] = Field(None, max_length=50)
    category: FileCategory = FileCategory.OTHER
    allowed_roles: list[Role] = Field(..., min_length=1)
    expires_at: Optional[datetime] = None

    @field_validator("allowed_roles")
    @classmethod
    def _unique_roles(cls, v):
        return _dedupe_roles(v)


class FileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    version: Optional[str] = Field(None, max_length=50)
    category: Optional[FileCategory] = None
    allowed_roles: Optional[list[Role]] = Field(None, min_length=1)
    expires_at: Optional[datetime] = None
    is_archived: Optional[bool] = None

    @field_validator("allowed_roles")
    @classmethod
    def _unique_roles(cls, v):
        return _dedupe_roles(v) if v is not None else v


class FileRead(CamelModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    filename: str
    file_size: int
    version: Optional[str] = None
    category: str
    allowed_roles: list[str]
    uploaded_by_id: Optional[uuid.UUID] = None
    expires_at: Optional[datetime] = None
    is_archived: bool
    created_at: datetime
    updated_at: datetime


class FileSummary(CamelModel):
    id: uuid.UUID
    name: str
    category: str
    version: Optional[str] = None


# ─── Versions ───────────────────────────────────────────

class FileVersionRead(CamelModel):
    id: uuid.UUID
    file_id: uuid.UUID
    version: str
    filename: str
    file_size: int
    uploaded_by_id: Optional[uuid.UUID] = None
    created_at: datetime


# ─── Comments ───────────────────────────────────────────

class FileCommentCreate(CamelModel):
    comment: str = Field(..., min_length=1, max_length=5000)


class FileCommentRead(CamelModel):
    id: uuid.UUID
    file_id: uuid.UUID
    comment: str
    created_by_id: Optional[uuid.UUID] = None
    created_by_username: Optional[str] = None
    created_at: datetime


# ─── Favorites ──────────────────────────────────────────

class FavoriteCheck(CamelModel):
    is_favorite: bool


class FavoriteRead(FileRead):
    favorited_at: datetime


# ─── Download history ───────────────────────────────────

class DownloadHistoryRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    file_id: uuid.UUID
    downloaded_at: datetime
    file: Optional[FileSummary] = None
    username: Optional[str] = None
