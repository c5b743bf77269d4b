"""Audit log API — read-only view of admin mutations."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import require
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.schemas.audit import AuditLogRead
from akcent.services.audit_service import AuditService

router = APIRouter(prefix="/admin/audit-logs")


@router.get("", response_model=list[AuditLogRead])
async def list_audit_logs(
    limit: int = Query(100, ge=1, le=1000),
    user_id: Optional[uuid.UUID] = Query(None, alias="userId"),
    entity_type: Optional[str] = Query(None, alias="entityType"),
    _: User = Depends(require("audit.read")),
    db: AsyncSession = Depends(get_db),
):
    rows = await AuditService(db).list_logs(limit=limit, user_id=user_id, entity_type=entity_type)
    return [
        AuditLogRead.model_validate(entry).model_copy(update={"username": username})
        for entry, username in rows
    ]
