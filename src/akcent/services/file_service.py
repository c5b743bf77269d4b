"""File service — downloadable files, their versions, comments and history.

Learn: Visibility is role based. A file is offered to a caller when the
caller's role is in `allowed_roles`, the file is not archived and it has
not expired. Staff listings under /api/admin/files see everything.

Blob bytes are not touched here; routes store uploads before calling in
and delete blobs after the row is gone, using the names returned.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.db.models import (
    DownloadFile,
    DownloadHistory,
    FileComment,
    FileFavorite,
    FileVersion,
    User,
    utcnow,
)
from akcent.services.audit_service import CREATE, DELETE, UPDATE, Actor, AuditService
from akcent.services.errors import NotFoundError, PermissionDeniedError
from akcent.services.notification_service import NotificationService
from akcent.storage.blob import StoredBlob


_NULLABLE_FILE_FIELDS = {"description", "version", "expires_at"}


def is_available(f: DownloadFile, now: Optional[datetime] = None) -> bool:
    """Not archived and not past its expiry."""
    if f.is_archived:
        return False
    if f.expires_at is not None and f.expires_at <= (now or utcnow()):
        return False
    return True


class FileService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # ─── Files ──────────────────────────────────────────

    async def list_all(self) -> list[DownloadFile]:
        result = await self.db.execute(
            select(DownloadFile).order_by(DownloadFile.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_for_role(self, role: str) -> list[DownloadFile]:
        now = utcnow()
        return [
            f for f in await self.list_all()
            if role in f.allowed_roles and is_available(f, now)
        ]

    async def get_file(self, file_id: uuid.UUID) -> DownloadFile:
        f = await self.db.get(DownloadFile, file_id)
        if f is None:
            raise NotFoundError("File not found")
        return f

    async def get_for_download(self, file_id: uuid.UUID, role: str) -> DownloadFile:
        f = await self.db.get(DownloadFile, file_id)
        if f is None or not is_available(f):
            raise NotFoundError("File not found")
        if role not in f.allowed_roles:
            raise PermissionDeniedError("You don't have permission to download this file")
        return f

    async def create_file(
        self,
        *,
        name: str,
        description: Optional[str],
        version: Optional[str],
        category: str,
        allowed_roles: list[str],
        expires_at: Optional[datetime],
        blob: StoredBlob,
        actor: Actor,
    ) -> tuple[DownloadFile, list[uuid.UUID]]:
        """Insert the file row, notify users who can see it, commit.

        Returns the file and the ids of the notified users.
        """
        f = DownloadFile(
            name=name,
            description=description or None,
            filename=blob.name,
            file_size=blob.size,
            version=version or None,
            category=category,
            allowed_roles=allowed_roles,
            expires_at=expires_at,
            uploaded_by_id=actor.user_id,
        )
        self.db.add(f)
        await self.db.flush()

        if f.version:
            self.db.add(
                FileVersion(
                    file_id=f.id,
                    version=f.version,
                    filename=blob.name,
                    file_size=blob.size,
                    uploaded_by_id=actor.user_id,
                )
            )

        notifications = NotificationService(self.db)
        recipients = await notifications.recipients(roles=allowed_roles)
        notified = notifications.notify(
            recipients,
            type="file_upload",
            title="New File Available",
            message=f.name,
            related_entity_id=f.id,
        )
        self.audit.record(actor, CREATE, "file", f.id, details=f.name)
        await self.db.commit()
        return f, notified

    async def update_file(self, file_id: uuid.UUID, changes: dict, actor: Actor) -> DownloadFile:
        f = await self.get_file(file_id)
        for field, value in changes.items():
            if value is None and field not in _NULLABLE_FILE_FIELDS:
                continue
            if field == "allowed_roles":
                value = [getattr(r, "value", r) for r in value]
            elif field == "category":
                value = getattr(value, "value", value)
            setattr(f, field, value)
        f.updated_at = utcnow()
        self.audit.record(
            actor, UPDATE, "file", f.id, details=", ".join(sorted(changes)) or None
        )
        await self.db.commit()
        return f

    async def delete_file(self, file_id: uuid.UUID, actor: Actor) -> list[str]:
        """Delete the row (dependents cascade). Returns blob names to remove."""
        f = await self.get_file(file_id)
        result = await self.db.execute(
            select(FileVersion.filename).where(FileVersion.file_id == f.id)
        )
        blobs = list(dict.fromkeys([f.filename, *result.scalars().all()]))
        await self.db.delete(f)
        self.audit.record(actor, DELETE, "file", file_id, details=f.name)
        await self.db.commit()
        return blobs

    # ─── Versions ───────────────────────────────────────

    async def list_versions(self, file_id: uuid.UUID) -> list[FileVersion]:
        await self.get_file(file_id)
        result = await self.db.execute(
            select(FileVersion)
            .where(FileVersion.file_id == file_id)
            .order_by(FileVersion.created_at.desc())
        )
        return list(result.scalars().all())

    async def add_version(
        self, file_id: uuid.UUID, version: str, blob: StoredBlob, actor: Actor
    ) -> tuple[FileVersion, DownloadFile]:
        """Make `blob` the current content of the file and record the version."""
        f = await self.get_file(file_id)
        v = FileVersion(
            file_id=f.id,
            version=version,
            filename=blob.name,
            file_size=blob.size,
            uploaded_by_id=actor.user_id,
        )
        self.db.add(v)
        f.filename = blob.name
        f.file_size = blob.size
        f.version = version
        f.updated_at = utcnow()
        self.audit.record(actor, CREATE, "file_version", f.id, details=version)
        await self.db.commit()
        return v, f

    # ─── Download history ───────────────────────────────

    async def record_download(self, user: User, f: DownloadFile) -> DownloadHistory:
        entry = DownloadHistory(user_id=user.id, file_id=f.id)
        self.db.add(entry)
        await self.db.commit()
        return entry

    async def user_history(self, user_id: uuid.UUID) -> list[tuple[DownloadHistory, DownloadFile]]:
        result = await self.db.execute(
            select(DownloadHistory, DownloadFile)
            .join(DownloadFile, DownloadFile.id == DownloadHistory.file_id)
            .where(DownloadHistory.user_id == user_id)
            .order_by(DownloadHistory.downloaded_at.desc())
        )
        return [(row[0], row[1]) for row in result.all()]

    async def all_history(
        self, limit: int = 500
    ) -> list[tuple[DownloadHistory, DownloadFile, User]]:
        result = await self.db.execute(
            select(DownloadHistory, DownloadFile, User)
            .join(DownloadFile, DownloadFile.id == DownloadHistory.file_id)
            .join(User, User.id == DownloadHistory.user_id)
            .order_by(DownloadHistory.downloaded_at.desc())
            .limit(limit)
        )
        return [(row[0], row[1], row[2]) for row in result.all()]

    # ─── Comments (admin notes) ─────────────────────────

    async def list_comments(self, file_id: uuid.UUID) -> list[tuple[FileComment, Optional[str]]]:
        await self.get_file(file_id)
        result = await self.db.execute(
            select(FileComment, User.username)
            .outerjoin(User, User.id == FileComment.created_by_id)
            .where(FileComment.file_id == file_id)
            .order_by(FileComment.created_at.desc())
        )
        return [(row[0], row[1]) for row in result.all()]

    async def add_comment(self, file_id: uuid.UUID, text: str, actor: Actor) -> FileComment:
        await self.get_file(file_id)
        comment = FileComment(file_id=file_id, comment=text, created_by_id=actor.user_id)
        self.db.add(comment)
        await self.db.flush()
        self.audit.record(actor, CREATE, "file_comment", comment.id)
        await self.db.commit()
        return comment

    async def delete_comment(self, comment_id: uuid.UUID, actor: Actor) -> FileComment:
        comment = await self.db.get(FileComment, comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        await self.db.delete(comment)
        self.audit.record(actor, DELETE, "file_comment", comment_id)
        await self.db.commit()
        return comment

    # ─── Favorites ──────────────────────────────────────

    async def list_favorites(self, user: User) -> list[tuple[DownloadFile, datetime]]:
        """The user's favorites that they can still see, newest first."""
        result = await self.db.execute(
            select(DownloadFile, FileFavorite.created_at)
            .join(FileFavorite, FileFavorite.file_id == DownloadFile.id)
            .where(FileFavorite.user_id == user.id)
            .order_by(FileFavorite.created_at.desc())
        )
        now = utcnow()
        return [
            (row[0], row[1]) for row in result.all()
            if user.role in row[0].allowed_roles and is_available(row[0], now)
        ]

    async def is_favorite(self, user_id: uuid.UUID, file_id: uuid.UUID) -> bool:
        return await self.db.get(FileFavorite, (user_id, file_id)) is not None

    async def add_favorite(self, user: User, file_id: uuid.UUID) -> bool:
        """Returns False when it was already a favorite.

        Archived and expired files can't be favorited. Two requests racing
        past the existence check meet the composite primary key; the loser
        rolls back and reports the favorite as already present.
        """
        f = await self.get_file(file_id)
        if user.role not in f.allowed_roles or not is_available(f):
            raise NotFoundError("File not found")
        if await self.is_favorite(user.id, file_id):
            return False
        self.db.add(FileFavorite(user_id=user.id, file_id=file_id))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return False
        return True

    async def remove_favorite(self, user_id: uuid.UUID, file_id: uuid.UUID) -> bool:
        fav = await self.db.get(FileFavorite, (user_id, file_id))
        if fav is None:
            return False
        await self.db.delete(fav)
        await self.db.commit()
        return True
