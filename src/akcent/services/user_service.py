"""User service — registration, login bookkeeping, roles and profiles.

Learn: Registration consumes an invite code exactly once. The user row is
inserted first (so the unique username constraint can fail fast), then the
code is claimed with a conditional UPDATE ... WHERE is_used = false. If two
registrations race for the same code, only one UPDATE matches a row; the
loser sees rowcount 0 and its transaction is rolled back, user included.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.password import hash_password, verify_password
from akcent.auth.permissions import Role, has_permission
from akcent.db.models import DownloadHistory, InviteCode, User, new_uuid, utcnow
from akcent.services.audit_service import (
    ROLE_CHANGE,
    STATUS_CHANGE,
    Actor,
    AuditService,
)
from akcent.services.errors import ConflictError, InvalidInputError, NotFoundError
from akcent.services.file_service import FileService

logger = structlog.get_logger()


class AuthenticationError(Exception):
    """Raised when credentials are wrong or the account is disabled."""


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalars().first()

    # ─── Registration & login ───────────────────────────

    async def register(self, username: str, password: str, invite_code: str) -> User:
        if await self.get_by_username(username):
            raise ConflictError("Username already exists")

        result = await self.db.execute(
            select(InviteCode).where(InviteCode.code == invite_code)
        )
        code = result.scalars().first()
        if code is None or code.is_used:
            raise InvalidInputError("Invalid or already used invite code")

        user = User(
            id=new_uuid(),
            username=username,
            password_hash=hash_password(password),
            role=code.role,
            invite_code_id=code.id,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Username already exists")

        claimed = await self.db.execute(
            update(InviteCode)
            .where(InviteCode.id == code.id, InviteCode.is_used.is_(False))
            .values(is_used=True, used_by_id=user.id, used_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            await self.db.rollback()
            raise InvalidInputError("Invalid or already used invite code")

        await self.db.commit()
        logger.info("user.registered", user_id=str(user.id), role=user.role)
        return user

    async def create_user(self, username: str, password: str, role: str) -> User:
        """Create an account directly, bypassing invite codes (CLI bootstrap)."""
        user = User(username=username, password_hash=hash_password(password), role=role)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Username already exists")
        return user

    async def authenticate(self, username: str, password: str) -> User:
        user = await self.get_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid username or password")
        if not user.is_active:
            raise AuthenticationError("Account is inactive")
        return user

    async def record_login(self, user: User, ip_address: Optional[str]) -> User:
        user.last_login_at = utcnow()
        user.last_ip_address = ip_address
        await self.db.commit()
        return user

    # ─── Administration ─────────────────────────────────

    async def list_users(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def update_role(self, user_id: uuid.UUID, role: Role, actor: Actor) -> User:
        user = await self.get_user(user_id)
        previous = user.role
        user.role = role.value
        self.audit.record(
            actor, ROLE_CHANGE, "user", user.id,
            details=f"{user.username}: {previous} -> {role.value}",
        )
        await self.db.commit()
        return user

    async def update_status(self, user_id: uuid.UUID, is_active: bool, actor: Actor) -> User:
        user = await self.get_user(user_id)
        if user.id == actor.user_id and not is_active:
            raise InvalidInputError("You cannot deactivate your own account")
        user.is_active = is_active
        self.audit.record(
            actor, STATUS_CHANGE, "user", user.id,
            details=f"{user.username}: {'activated' if is_active else 'deactivated'}",
        )
        await self.db.commit()
        return user

    # ─── Profile & stats ────────────────────────────────

    async def update_profile(self, user: User, changes: dict) -> User:
        for field in ("avatar", "discord_username", "bio"):
            if field in changes:
                setattr(user, field, changes[field])
        await self.db.commit()
        return user

    async def stats(self, user: User) -> dict:
        downloads = await self.db.scalar(
            select(func.count())
            .select_from(DownloadHistory)
            .where(DownloadHistory.user_id == user.id)
        )
        files = await FileService(self.db).list_for_role(user.role)
        stats = {"total_downloads": downloads or 0, "available_files": len(files)}
        if has_permission(user.role, "users.count"):
            stats["total_users"] = await self.db.scalar(
                select(func.count()).select_from(User)
            )
        return stats
