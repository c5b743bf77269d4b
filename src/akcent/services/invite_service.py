"""Invite code service — staff mint single-use codes that fix a new account's role."""

import secrets
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.permissions import Role
from akcent.db.models import InviteCode
from akcent.services.audit_service import CREATE, DELETE, Actor, AuditService
from akcent.services.errors import NotFoundError


def generate_code() -> str:
    # 20 url-safe characters, ~120 bits of entropy
    return secrets.token_urlsafe(15)


class InviteService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def list_codes(self) -> list[InviteCode]:
        result = await self.db.execute(
            select(InviteCode).order_by(InviteCode.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_code(self, role: Role, actor: Actor | None = None) -> InviteCode:
        """Mint a code. `actor` is None when created from the CLI."""
        code = InviteCode(
            code=generate_code(),
            role=role.value,
            created_by_id=actor.user_id if actor else None,
        )
        self.db.add(code)
        await self.db.flush()
        if actor:
            self.audit.record(actor, CREATE, "invite_code", code.id, details=f"role={role.value}")
        await self.db.commit()
        return code

    async def delete_code(self, code_id: uuid.UUID, actor: Actor) -> None:
        code = await self.db.get(InviteCode, code_id)
        if code is None:
            raise NotFoundError("Invite code not found")
        await self.db.delete(code)
        self.audit.record(actor, DELETE, "invite_code", code_id)
        await self.db.commit()
