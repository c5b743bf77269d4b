"""Outgoing webhooks — configuration CRUD and Discord/Slack delivery.

Learn: Two responsibilities live here:
1. WebhookService: CRUD for webhook configurations (admin only)
2. WebhookNotifier: posts a message to every active webhook subscribed
   to a trigger (download, new_user, announcement, file_upload)

Delivery runs as a FastAPI background task after the response is sent.
Targets are loaded while the request's session is still open and handed
to the task as plain values. A failing webhook is logged and reported,
never raised: a dead Discord channel must not break a download.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import httpx
import structlog
from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.db.models import WebhookConfig, utcnow
from akcent.services.audit_service import CREATE, DELETE, UPDATE, Actor, AuditService
from akcent.services.errors import NotFoundError

logger = structlog.get_logger()

# Embed colours per trigger
COLORS = {
    "download": 0x3B82F6,
    "new_user": 0x22C55E,
    "announcement": 0xF59E0B,
    "file_upload": 0x8B5CF6,
}
DEFAULT_COLOR = 0x5865F2


@dataclass
class WebhookTarget:
    id: uuid.UUID
    name: str
    type: str
    url: str


class WebhookService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # ─── CRUD ──────────────────────────────────────────────

    async def list_webhooks(self) -> list[WebhookConfig]:
        result = await self.db.execute(
            select(WebhookConfig).order_by(WebhookConfig.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_webhook(self, webhook_id: uuid.UUID) -> WebhookConfig:
        webhook = await self.db.get(WebhookConfig, webhook_id)
        if webhook is None:
            raise NotFoundError("Webhook not found")
        return webhook

    async def create_webhook(self, data: dict, actor: Actor) -> WebhookConfig:
        webhook = WebhookConfig(
            name=data["name"],
            type=data["type"],
            webhook_url=str(data["webhook_url"]),
            events=list(data["events"]),
            is_active=data.get("is_active", True),
        )
        self.db.add(webhook)
        await self.db.flush()
        self.audit.record(actor, CREATE, "webhook", webhook.id, details=webhook.name)
        await self.db.commit()
        return webhook

    async def update_webhook(self, webhook_id: uuid.UUID, changes: dict, actor: Actor) -> WebhookConfig:
        webhook = await self.get_webhook(webhook_id)
        for field, value in changes.items():
            if value is None:
                continue
            if field == "webhook_url":
                value = str(value)
            elif field == "events":
                value = list(value)
            setattr(webhook, field, value)
        webhook.updated_at = utcnow()
        self.audit.record(actor, UPDATE, "webhook", webhook.id, details=", ".join(sorted(changes)))
        await self.db.commit()
        return webhook

    async def delete_webhook(self, webhook_id: uuid.UUID, actor: Actor) -> None:
        webhook = await self.get_webhook(webhook_id)
        await self.db.delete(webhook)
        self.audit.record(actor, DELETE, "webhook", webhook_id, details=webhook.name)
        await self.db.commit()

    async def targets_for(self, trigger: str) -> list[WebhookTarget]:
        """Active webhooks subscribed to `trigger`, detached from the session."""
        result = await self.db.execute(
            select(WebhookConfig).where(WebhookConfig.is_active.is_(True))
        )
        return [
            WebhookTarget(id=w.id, name=w.name, type=w.type, url=w.webhook_url)
            for w in result.scalars().all()
            if trigger in (w.events or [])
        ]


# ─── Delivery ──────────────────────────────────────────────


def build_payload(kind: str, title: str, message: str, color: int = DEFAULT_COLOR) -> dict:
    """Discord gets an embed; Slack gets mrkdwn text."""
    if kind == "slack":
        return {"text": f"*{title}*\n{message}"}
    return {
        "embeds": [
            {
                "title": title,
                "description": message,
                "color": color,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ]
    }


class WebhookNotifier:
    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def send(
        self, target: WebhookTarget, title: str, message: str, color: int = DEFAULT_COLOR
    ) -> dict:
        """Post one message. Returns {success, status_code, error}."""
        payload = build_payload(target.type, title, message, color)
        async with self._client() as client:
            try:
                resp = await client.post(target.url, json=payload)
                resp.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning(
                    "webhook.delivery_failed",
                    webhook_id=str(target.id),
                    name=target.name,
                    error=str(e),
                )
                status = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
                return {"success": False, "status_code": status, "error": str(e)}

        logger.info("webhook.delivered", webhook_id=str(target.id), status=resp.status_code)
        return {"success": True, "status_code": resp.status_code, "error": None}

    async def notify(
        self, targets: list[WebhookTarget], trigger: str, title: str, message: str
    ) -> list[dict]:
        """Fan one trigger out to its webhooks, one after another."""
        color = COLORS.get(trigger, DEFAULT_COLOR)
        return [await self.send(t, title, message, color) for t in targets]


def get_notifier(request: Request) -> WebhookNotifier:
    """FastAPI dependency — the app-wide notifier built in create_app()."""
    return request.app.state.notifier
