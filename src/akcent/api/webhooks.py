"""Webhooks API — admin management of outgoing Discord/Slack hooks.

Webhook configs are admin-only, so their events go to admins only; the
URLs embed secrets.
"""

import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import actor_for, require
from akcent.auth.permissions import ADMIN_ONLY
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.events.types import WEBHOOK_CREATED, WEBHOOK_DELETED, WEBHOOK_UPDATED
from akcent.realtime.broadcaster import EventBroadcaster, get_broadcaster
from akcent.schemas.webhook import WebhookCreate, WebhookRead, WebhookTestResult, WebhookUpdate
from akcent.services.webhook_service import (
    WebhookNotifier,
    WebhookService,
    WebhookTarget,
    get_notifier,
)

router = APIRouter(prefix="/admin/webhooks")


@router.get("", response_model=list[WebhookRead])
async def list_webhooks(
    _: User = Depends(require("webhooks.manage")),
    db: AsyncSession = Depends(get_db),
):
    return await WebhookService(db).list_webhooks()


@router.post("", response_model=WebhookRead, status_code=201)
async def create_webhook(
    body: WebhookCreate,
    request: Request,
    admin: User = Depends(require("webhooks.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    webhook = await WebhookService(db).create_webhook(body.model_dump(), actor_for(admin, request))
    out = WebhookRead.model_validate(webhook)
    await broadcaster.publish(WEBHOOK_CREATED, out, roles=ADMIN_ONLY)
    return out


@router.patch("/{webhook_id}", response_model=WebhookRead)
async def update_webhook(
    webhook_id: uuid.UUID,
    body: WebhookUpdate,
    request: Request,
    admin: User = Depends(require("webhooks.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    webhook = await WebhookService(db).update_webhook(
        webhook_id, body.model_dump(exclude_unset=True), actor_for(admin, request)
    )
    out = WebhookRead.model_validate(webhook)
    await broadcaster.publish(WEBHOOK_UPDATED, out, roles=ADMIN_ONLY)
    return out


@router.delete("/{webhook_id}", status_code=204)
async def delete_webhook(
    webhook_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require("webhooks.manage")),
    db: AsyncSession = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await WebhookService(db).delete_webhook(webhook_id, actor_for(admin, request))
    await broadcaster.broadcast(WEBHOOK_DELETED, {"id": str(webhook_id)}, roles=ADMIN_ONLY)


@router.post("/test/{webhook_id}", response_model=WebhookTestResult)
async def test_webhook(
    webhook_id: uuid.UUID,
    _: User = Depends(require("webhooks.manage")),
    db: AsyncSession = Depends(get_db),
    notifier: WebhookNotifier = Depends(get_notifier),
):
    """Send a test message right away and report how it went.

    Delivery failures come back as success=false, not as an error status.
    """
    w = await WebhookService(db).get_webhook(webhook_id)
    target = WebhookTarget(id=w.id, name=w.name, type=w.type, url=w.webhook_url)
    result = await notifier.send(
        target, "Test Notification", "This is a test message from the Akcent dashboard."
    )
    return WebhookTestResult(**result)
