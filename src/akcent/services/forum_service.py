"""Forum service — categories, threads and posts.

Learn: A thread is always created together with its opening post.
`reply_count` counts the posts after that one, and `last_post_at` /
`last_post_by_id` follow the newest post. Both are recomputed from the
posts table on every create/delete instead of being incremented, so a
missed update can never leave them drifting.

Ownership: the author or any staff member may edit or delete a thread or
post; only staff may pin or lock. Locks bind non-staff only.
"""

import uuid
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.permissions import has_permission
from akcent.db.models import ForumCategory, ForumPost, ForumThread, User, utcnow
from akcent.services.audit_service import CREATE, DELETE, UPDATE, Actor, AuditService
from akcent.services.errors import InvalidInputError, NotFoundError, PermissionDeniedError


def _can_modify(owner_id: uuid.UUID, user: User) -> bool:
    return owner_id == user.id or has_permission(user.role, "forum.moderate")


class ForumService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # ─── Categories ─────────────────────────────────────

    async def list_categories(self) -> list[tuple[ForumCategory, int]]:
        counts = (
            select(ForumThread.category_id, func.count().label("n"))
            .group_by(ForumThread.category_id)
            .subquery()
        )
        result = await self.db.execute(
            select(ForumCategory, func.coalesce(counts.c.n, 0))
            .outerjoin(counts, counts.c.category_id == ForumCategory.id)
            .order_by(ForumCategory.display_order, ForumCategory.name)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def get_category(self, category_id: uuid.UUID) -> ForumCategory:
        c = await self.db.get(ForumCategory, category_id)
        if c is None:
            raise NotFoundError("Category not found")
        return c

    async def create_category(self, data: dict, actor: Actor) -> ForumCategory:
        c = ForumCategory(**data)
        self.db.add(c)
        await self.db.flush()
        self.audit.record(actor, CREATE, "forum_category", c.id, details=c.name)
        await self.db.commit()
        return c

    async def update_category(self, category_id: uuid.UUID, changes: dict, actor: Actor) -> ForumCategory:
        c = await self.get_category(category_id)
        for field, value in changes.items():
            if value is None and field != "description":
                continue
            setattr(c, field, value)
        self.audit.record(actor, UPDATE, "forum_category", c.id, details=", ".join(sorted(changes)))
        await self.db.commit()
        return c

    async def delete_category(self, category_id: uuid.UUID, actor: Actor) -> None:
        c = await self.get_category(category_id)
        await self.db.delete(c)
        self.audit.record(actor, DELETE, "forum_category", category_id, details=c.name)
        await self.db.commit()

    # ─── Threads ────────────────────────────────────────

    async def list_threads(
        self, category_id: Optional[uuid.UUID] = None
    ) -> list[tuple[ForumThread, str]]:
        """Pinned first, then by latest activity."""
        activity = func.coalesce(ForumThread.last_post_at, ForumThread.created_at)
        q = (
            select(ForumThread, User.username)
            .join(User, User.id == ForumThread.created_by_id)
            .order_by(ForumThread.is_pinned.desc(), activity.desc())
        )
        if category_id is not None:
            q = q.where(ForumThread.category_id == category_id)
        result = await self.db.execute(q)
        return [(row[0], row[1]) for row in result.all()]

    async def get_thread(self, thread_id: uuid.UUID) -> ForumThread:
        t = await self.db.get(ForumThread, thread_id)
        if t is None:
            raise NotFoundError("Thread not found")
        return t

    async def view_thread(self, thread_id: uuid.UUID) -> ForumThread:
        """Fetch a thread and count the view. Views are not broadcast."""
        t = await self.get_thread(thread_id)
        await self.db.execute(
            update(ForumThread)
            .where(ForumThread.id == thread_id)
            .values(view_count=ForumThread.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(t)
        return t

    async def create_thread(
        self, user: User, category_id: uuid.UUID, title: str, content: str
    ) -> ForumThread:
        category = await self.get_category(category_id)
        if category.is_locked and not has_permission(user.role, "forum.moderate"):
            raise PermissionDeniedError("This category is locked")

        thread = ForumThread(category_id=category.id, title=title, created_by_id=user.id)
        self.db.add(thread)
        await self.db.flush()
        post = ForumPost(thread_id=thread.id, created_by_id=user.id, content=content)
        self.db.add(post)
        await self.db.flush()
        thread.last_post_at = post.created_at
        thread.last_post_by_id = user.id
        await self.db.commit()
        return thread

    async def update_thread(self, thread_id: uuid.UUID, changes: dict, user: User) -> ForumThread:
        t = await self.get_thread(thread_id)
        if not _can_modify(t.created_by_id, user):
            raise PermissionDeniedError("You can only edit your own threads")
        moderation = {k for k in ("is_pinned", "is_locked") if changes.get(k) is not None}
        if moderation and not has_permission(user.role, "forum.moderate"):
            raise PermissionDeniedError("Only staff can pin or lock threads")
        for field, value in changes.items():
            if value is not None:
                setattr(t, field, value)
        t.updated_at = utcnow()
        await self.db.commit()
        return t

    async def delete_thread(self, thread_id: uuid.UUID, user: User) -> ForumThread:
        t = await self.get_thread(thread_id)
        if not _can_modify(t.created_by_id, user):
            raise PermissionDeniedError("You can only delete your own threads")
        await self.db.delete(t)
        await self.db.commit()
        return t

    # ─── Posts ──────────────────────────────────────────

    async def list_posts(self, thread_id: uuid.UUID) -> list[tuple[ForumPost, str]]:
        await self.get_thread(thread_id)
        result = await self.db.execute(
            select(ForumPost, User.username)
            .join(User, User.id == ForumPost.created_by_id)
            .where(ForumPost.thread_id == thread_id)
            .order_by(ForumPost.created_at)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def _refresh_activity(self, thread: ForumThread) -> None:
        total = await self.db.scalar(
            select(func.count()).select_from(ForumPost).where(ForumPost.thread_id == thread.id)
        )
        latest = (
            await self.db.execute(
                select(ForumPost.created_at, ForumPost.created_by_id)
                .where(ForumPost.thread_id == thread.id)
                .order_by(ForumPost.created_at.desc())
                .limit(1)
            )
        ).first()
        thread.reply_count = max((total or 0) - 1, 0)
        thread.last_post_at = latest[0] if latest else None
        thread.last_post_by_id = latest[1] if latest else None
        thread.updated_at = utcnow()

    async def create_post(self, thread_id: uuid.UUID, user: User, content: str) -> ForumPost:
        t = await self.get_thread(thread_id)
        if t.is_locked and not has_permission(user.role, "forum.moderate"):
            raise PermissionDeniedError("This thread is locked")
        post = ForumPost(thread_id=t.id, created_by_id=user.id, content=content)
        self.db.add(post)
        await self.db.flush()
        await self._refresh_activity(t)
        await self.db.commit()
        return post

    async def get_post(self, post_id: uuid.UUID) -> ForumPost:
        post = await self.db.get(ForumPost, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    async def update_post(self, post_id: uuid.UUID, content: str, user: User) -> ForumPost:
        post = await self.get_post(post_id)
        if not _can_modify(post.created_by_id, user):
            raise PermissionDeniedError("You can only edit your own posts")
        now = utcnow()
        post.content = content
        post.is_edited = True
        post.edited_at = now
        post.updated_at = now
        await self.db.commit()
        return post

    async def delete_post(self, post_id: uuid.UUID, user: User) -> ForumPost:
        post = await self.get_post(post_id)
        if not _can_modify(post.created_by_id, user):
            raise PermissionDeniedError("You can only delete your own posts")
        thread = await self.get_thread(post.thread_id)
        first_id = await self.db.scalar(
            select(ForumPost.id)
            .where(ForumPost.thread_id == thread.id)
            .order_by(ForumPost.created_at)
            .limit(1)
        )
        if first_id == post.id:
            raise InvalidInputError("The opening post can't be deleted; delete the thread instead")
        await self.db.delete(post)
        await self.db.flush()
        await self._refresh_activity(thread)
        await self.db.commit()
        return post
