"""Collection service — ordered, curated groups of files."""

import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.db.models import CollectionFile, DownloadFile, FileCollection, User, utcnow
from akcent.services.audit_service import CREATE, DELETE, UPDATE, Actor, AuditService
from akcent.services.errors import NotFoundError
from akcent.services.file_service import is_available


class CollectionService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def list_collections(self) -> list[tuple[FileCollection, int, Optional[str]]]:
        """Each collection with its file count and creator's username."""
        counts = (
            select(CollectionFile.collection_id, func.count().label("n"))
            .group_by(CollectionFile.collection_id)
            .subquery()
        )
        result = await self.db.execute(
            select(FileCollection, func.coalesce(counts.c.n, 0), User.username)
            .outerjoin(counts, counts.c.collection_id == FileCollection.id)
            .outerjoin(User, User.id == FileCollection.created_by_id)
            .order_by(FileCollection.created_at.desc())
        )
        return [(row[0], row[1], row[2]) for row in result.all()]

    async def get_collection(self, collection_id: uuid.UUID) -> FileCollection:
        c = await self.db.get(FileCollection, collection_id)
        if c is None:
            raise NotFoundError("Collection not found")
        return c

    async def files_in(self, collection_id: uuid.UUID, role: Optional[str] = None) -> list[DownloadFile]:
        """Files in display order; with a role, only those the role can see."""
        await self.get_collection(collection_id)
        result = await self.db.execute(
            select(DownloadFile)
            .join(CollectionFile, CollectionFile.file_id == DownloadFile.id)
            .where(CollectionFile.collection_id == collection_id)
            .order_by(CollectionFile.display_order, CollectionFile.added_at)
        )
        files = list(result.scalars().all())
        if role is None:
            return files
        now = utcnow()
        return [f for f in files if role in f.allowed_roles and is_available(f, now)]

    async def create_collection(self, data: dict, actor: Actor) -> FileCollection:
        c = FileCollection(**data, created_by_id=actor.user_id)
        self.db.add(c)
        await self.db.flush()
        self.audit.record(actor, CREATE, "collection", c.id, details=c.name)
        await self.db.commit()
        return c

    async def update_collection(self, collection_id: uuid.UUID, changes: dict, actor: Actor) -> FileCollection:
        c = await self.get_collection(collection_id)
        for field, value in changes.items():
            if value is None and field != "description":
                continue
            setattr(c, field, value)
        c.updated_at = utcnow()
        self.audit.record(actor, UPDATE, "collection", c.id, details=", ".join(sorted(changes)))
        await self.db.commit()
        return c

    async def delete_collection(self, collection_id: uuid.UUID, actor: Actor) -> None:
        c = await self.get_collection(collection_id)
        await self.db.delete(c)
        self.audit.record(actor, DELETE, "collection", collection_id, details=c.name)
        await self.db.commit()

    async def add_file(
        self, collection_id: uuid.UUID, file_id: uuid.UUID, display_order: int, actor: Actor
    ) -> tuple[CollectionFile, bool]:
        """Add a file. Re-adding leaves the existing link untouched.

        Returns the link and whether it was newly created.
        """
        await self.get_collection(collection_id)
        if await self.db.get(DownloadFile, file_id) is None:
            raise NotFoundError("File not found")
        link = await self.db.get(CollectionFile, (collection_id, file_id))
        if link is not None:
            return link, False
        link = CollectionFile(
            collection_id=collection_id, file_id=file_id, display_order=display_order
        )
        self.db.add(link)
        self.audit.record(actor, "FILE_ADD", "collection", collection_id, details=str(file_id))
        await self.db.commit()
        return link, True

    async def remove_file(self, collection_id: uuid.UUID, file_id: uuid.UUID, actor: Actor) -> bool:
        link = await self.db.get(CollectionFile, (collection_id, file_id))
        if link is None:
            return False
        await self.db.delete(link)
        self.audit.record(actor, "FILE_REMOVE", "collection", collection_id, details=str(file_id))
        await self.db.commit()
        return True
