"""Pydantic schemas for accounts, sessions, profiles and invite codes."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from akcent.auth.permissions import Role
from akcent.schemas.base import CamelModel


# ─── Auth ───────────────────────────────────────────────

class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(..., min_length=6, max_length=128)
    invite_code: str = Field(..., min_length=1, max_length=64)


class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# ─── Users ──────────────────────────────────────────────

class UserRead(CamelModel):
    """Public view of a user. Never includes the password hash."""
    id: uuid.UUID
    username: str
    role: str
    is_active: bool
    avatar: Optional[str] = None
    discord_username: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime
    last_login_at: Optional[datetime] = None


class AdminUserRead(UserRead):
    last_ip_address: Optional[str] = None
    invite_code_id: Optional[uuid.UUID] = None


class UserRoleUpdate(CamelModel):
    role: Role


class UserStatusUpdate(CamelModel):
    is_active: bool


class ProfileUpdate(CamelModel):
    avatar: Optional[str] = Field(None, max_length=2048)
    discord_username: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)


class StatsRead(CamelModel):
    total_downloads: int
    available_files: int
    total_users: Optional[int] = None


# ─── Invite codes ───────────────────────────────────────

class InviteCodeCreate(CamelModel):
    role: Role = Role.CUSTOMER


class InviteCodeRead(CamelModel):
    id: uuid.UUID
    code: str
    role: str
    is_used: bool
    created_at: datetime
    created_by_id: Optional[uuid.UUID] = None
    used_by_id: Optional[uuid.UUID] = None
    used_at: Optional[datetime] = None

