"""Pydantic schemas for the admin audit trail."""

import uuid
from datetime import datetime
from typing import Optional

from akcent.schemas.base import CamelModel


class AuditLogRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    username: Optional[str] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    details: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime
