"""Forum API — categories (admin managed), threads and posts.

Learn: Thread and post ownership checks live in ForumService; routes only
pick the caller and publish. Viewing a thread bumps its view count but
broadcasts nothing, otherwise every page view would make every client
refetch the thread list.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import actor_for, get_current_user, require
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import (
    FORUM_CATEGORY_CREATED,
    FORUM_CATEGORY_DELETED,
    FORUM_CATEGORY_UPDATED,
    FORUM_POST_CREATED,
    FORUM_POST_DELETED,
    FORUM_POST_UPDATED,
    FORUM_THREAD_CREATED,
    FORUM_THREAD_DELETED,
    FORUM_THREAD_UPDATED,
)
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.forum import (
    ForumCategoryCreate,
    ForumCategoryRead,
    ForumCategoryUpdate,
    ForumPostCreate,
    ForumPostRead,
    ForumPostUpdate,
    ForumThreadCreate,
    ForumThreadRead,
    ForumThreadUpdate,
)
from akcent.services.forum_service import ForumService
from akcent.services.user_service import UserService

router = APIRouter()


async def _thread_out(db: AsyncSession, thread, username: Optional[str] = None) -> ForumThreadRead:
    if username is None:
        author = await UserService(db).get_user(thread.created_by_id)
        username = author.username if author else None
    return ForumThreadRead.model_validate(thread).model_copy(
        update={"created_by_username": username}
    )


def _post_out(post, username: Optional[str]) -> ForumPostRead:
    return ForumPostRead.model_validate(post).model_copy(update={"created_by_username": username})


# ─── Categories ──────────────────────────────────────────


@router.get("/forum/categories", response_model=list[ForumCategoryRead])
async def list_categories(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await ForumService(db).list_categories()
    return [
        ForumCategoryRead.model_validate(c).model_copy(update={"thread_count": n})
        for c, n in rows
    ]


@router.post("/admin/forum/categories", response_model=ForumCategoryRead, status_code=201)
async def create_category(
    body: ForumCategoryCreate,
    request: Request,
    admin: User = Depends(require("forum.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    c = await ForumService(db).create_category(body.model_dump(), actor_for(admin, request))
    out = ForumCategoryRead.model_validate(c)
    await broadcaster.publish(FORUM_CATEGORY_CREATED, out)
    return out


@router.patch("/admin/forum/categories/{category_id}", response_model=ForumCategoryRead)
async def update_category(
    category_id: uuid.UUID,
    body: ForumCategoryUpdate,
    request: Request,
    admin: User = Depends(require("forum.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    c = await ForumService(db).update_category(
        category_id, body.model_dump(exclude_unset=True), actor_for(admin, request)
    )
    out = ForumCategoryRead.model_validate(c)
    await broadcaster.publish(FORUM_CATEGORY_UPDATED, out)
    return out


@router.delete("/admin/forum/categories/{category_id}", status_code=204)
async def delete_category(
    category_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("forum.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await ForumService(db).delete_category(category_id, actor_for(admin, request))
    await broadcaster.broadcast(FORUM_CATEGORY_DELETED, {"id": str(category_id)})


# ─── Threads ─────────────────────────────────────────────


@router.get("/forum/threads", response_model=list[ForumThreadRead])
async def list_threads(
    category_id: Optional[uuid.UUID] = Query(None, alias="categoryId"),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await ForumService(db).list_threads(category_id)
    return [await _thread_out(db, t, username) for t, username in rows]


@router.get("/forum/threads/{thread_id}", response_model=ForumThreadRead)
async def get_thread(
    thread_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    t = await ForumService(db).view_thread(thread_id)
    return await _thread_out(db, t)


@router.post("/forum/threads", response_model=ForumThreadRead, status_code=201)
async def create_thread(
    body: ForumThreadCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    t = await ForumService(db).create_thread(user, body.category_id, body.title, body.content)
    out = await _thread_out(db, t, user.username)
    await broadcaster.publish(FORUM_THREAD_CREATED, out)
    return out


@router.patch("/forum/threads/{thread_id}", response_model=ForumThreadRead)
async def update_thread(
    thread_id: uuid.UUID,
    body: ForumThreadUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    t = await ForumService(db).update_thread(thread_id, body.model_dump(exclude_unset=True), user)
    out = await _thread_out(db, t)
    await broadcaster.publish(FORUM_THREAD_UPDATED, out)
    return out


@router.delete("/forum/threads/{thread_id}", status_code=204)
async def delete_thread(
    thread_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    t = await ForumService(db).delete_thread(thread_id, user)
    await broadcaster.broadcast(
        FORUM_THREAD_DELETED, {"id": str(thread_id), "categoryId": str(t.category_id)}
    )


# ─── Posts ───────────────────────────────────────────────


@router.get("/forum/threads/{thread_id}/posts", response_model=list[ForumPostRead])
async def list_posts(
    thread_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await ForumService(db).list_posts(thread_id)
    return [_post_out(p, username) for p, username in rows]


@router.post("/forum/threads/{thread_id}/posts", response_model=ForumPostRead, status_code=201)
async def create_post(
    thread_id: uuid.UUID,
    body: ForumPostCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    post = await ForumService(db).create_post(thread_id, user, body.content)
    out = _post_out(post, user.username)
    await broadcaster.publish(FORUM_POST_CREATED, out)
    return out


@router.patch("/forum/posts/{post_id}", response_model=ForumPostRead)
async def update_post(
    post_id: uuid.UUID,
    body: ForumPostUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    post = await ForumService(db).update_post(post_id, body.content, user)
    author = await UserService(db).get_user(post.created_by_id)
    out = _post_out(post, author.username if author else None)
    await broadcaster.publish(FORUM_POST_UPDATED, out)
    return out


@router.delete("/forum/posts/{post_id}", status_code=204)
async def delete_post(
    post_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    post = await ForumService(db).delete_post(post_id, user)
    await broadcaster.broadcast(
        FORUM_POST_DELETED, {"id": str(post_id), "threadId": str(post.thread_id)}
    )
