"""Audit service — records who changed what.

Learn: record() only adds the row to the caller's session. The service
performing the mutation commits, so the audit entry and the change it
describes land in the same transaction or not at all.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.db.models import AuditLog, User

CREATE = "CREATE"
UPDATE = "UPDATE"
DELETE = "DELETE"
ROLE_CHANGE = "ROLE_CHANGE"
STATUS_CHANGE = "STATUS_CHANGE"


@dataclass
class Actor:
    """The user performing a mutation, plus where the request came from."""
    user_id: uuid.UUID
    role: str
    ip_address: Optional[str] = None


class AuditService:
    def __init__(self, db: AsyncSession):
        self.db = db

    def record(
        self,
        actor: Actor,
        action: str,
        entity_type: str,
        entity_id: Optional[object] = None,
        details: Optional[str] = None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=actor.user_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            details=details,
            ip_address=actor.ip_address,
        )
        self.db.add(entry)
        return entry

    async def list_logs(
        self,
        limit: int = 100,
        user_id: Optional[uuid.UUID] = None,
        entity_type: Optional[str] = None,
    ) -> list[tuple[AuditLog, Optional[str]]]:
        """Newest first, each row paired with the actor's username."""
        q = (
            select(AuditLog, User.username)
            .outerjoin(User, User.id == AuditLog.user_id)
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        )
        if user_id is not None:
            q = q.where(AuditLog.user_id == user_id)
        if entity_type:
            q = q.where(AuditLog.entity_type == entity_type)
        result = await self.db.execute(q)
        return [(row[0], row[1]) for row in result.all()]
