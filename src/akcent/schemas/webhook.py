"""Pydantic schemas for outgoing Discord/Slack webhooks.

Learn: A webhook subscribes to a subset of trigger names. Triggers are
coarser than push-channel events: `download` fires on every file download,
`new_user` on registration, and so on.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, HttpUrl, field_validator

from akcent.schemas.base import CamelModel

WebhookType = Literal["discord", "slack"]
WebhookTrigger = Literal["download", "new_user", "announcement", "file_upload"]


class WebhookCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: WebhookType
    webhook_url: HttpUrl
    events: list[WebhookTrigger] = Field(..., min_length=1)
    is_active: bool = True

    @field_validator("events")
    @classmethod
    def _unique_events(cls, v):
        return list(dict.fromkeys(v))


class WebhookUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[WebhookType] = None
    webhook_url: Optional[HttpUrl] = None
    events: Optional[list[WebhookTrigger]] = Field(None, min_length=1)
    is_active: Optional[bool] = None

    @field_validator("events")
    @classmethod
    def _unique_events(cls, v):
        return list(dict.fromkeys(v)) if v is not None else v


class WebhookRead(CamelModel):
    id: uuid.UUID
    name: str
    type: str
    webhook_url: str
    events: list[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime


class WebhookTestResult(CamelModel):
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
