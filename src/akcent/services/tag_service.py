"""Tag service — coloured labels attached to files."""

import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.db.models import DownloadFile, FileTag, FileTagLink
from akcent.services.audit_service import CREATE, DELETE, UPDATE, Actor, AuditService
from akcent.services.errors import ConflictError, NotFoundError


class TagService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def list_tags(self) -> list[FileTag]:
        result = await self.db.execute(select(FileTag).order_by(FileTag.name))
        return list(result.scalars().all())

    async def get_tag(self, tag_id: uuid.UUID) -> FileTag:
        tag = await self.db.get(FileTag, tag_id)
        if tag is None:
            raise NotFoundError("Tag not found")
        return tag

    async def tags_for_file(self, file_id: uuid.UUID) -> list[FileTag]:
        result = await self.db.execute(
            select(FileTag)
            .join(FileTagLink, FileTagLink.tag_id == FileTag.id)
            .where(FileTagLink.file_id == file_id)
            .order_by(FileTag.name)
        )
        return list(result.scalars().all())

    async def _name_taken(self, name: str, exclude: uuid.UUID | None = None) -> bool:
        q = select(FileTag.id).where(FileTag.name == name)
        if exclude is not None:
            q = q.where(FileTag.id != exclude)
        return (await self.db.execute(q)).first() is not None

    async def _commit_unique(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("A tag with this name already exists")

    async def create_tag(self, name: str, color: str, actor: Actor) -> FileTag:
        if await self._name_taken(name):
            raise ConflictError("A tag with this name already exists")
        tag = FileTag(name=name, color=color, created_by_id=actor.user_id)
        self.db.add(tag)
        await self.db.flush()
        self.audit.record(actor, CREATE, "tag", tag.id, details=name)
        await self._commit_unique()
        return tag

    async def update_tag(self, tag_id: uuid.UUID, changes: dict, actor: Actor) -> FileTag:
        tag = await self.get_tag(tag_id)
        if changes.get("name") and await self._name_taken(changes["name"], exclude=tag.id):
            raise ConflictError("A tag with this name already exists")
        for field, value in changes.items():
            if value is not None:
                setattr(tag, field, value)
        self.audit.record(actor, UPDATE, "tag", tag.id, details=", ".join(sorted(changes)))
        await self._commit_unique()
        return tag

    async def delete_tag(self, tag_id: uuid.UUID, actor: Actor) -> None:
        tag = await self.get_tag(tag_id)
        await self.db.delete(tag)
        self.audit.record(actor, DELETE, "tag", tag_id, details=tag.name)
        await self.db.commit()

    # ─── File ↔ tag links ───────────────────────────────

    async def _check_pair(self, file_id: uuid.UUID, tag_id: uuid.UUID) -> None:
        if await self.db.get(DownloadFile, file_id) is None:
            raise NotFoundError("File not found")
        await self.get_tag(tag_id)

    async def add_to_file(self, file_id: uuid.UUID, tag_id: uuid.UUID, actor: Actor) -> bool:
        """Attach a tag. Returns False if it was already attached."""
        await self._check_pair(file_id, tag_id)
        if await self.db.get(FileTagLink, (file_id, tag_id)) is not None:
            return False
        self.db.add(FileTagLink(file_id=file_id, tag_id=tag_id))
        self.audit.record(actor, "TAG_ADD", "file", file_id, details=str(tag_id))
        await self.db.commit()
        return True

    async def remove_from_file(self, file_id: uuid.UUID, tag_id: uuid.UUID, actor: Actor) -> bool:
        link = await self.db.get(FileTagLink, (file_id, tag_id))
        if link is None:
            return False
        await self.db.delete(link)
        self.audit.record(actor, "TAG_REMOVE", "file", file_id, details=str(tag_id))
        await self.db.commit()
        return True
