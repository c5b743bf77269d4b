"""Event broadcaster — fans one event out to every interested connection.

Learn: The frame is serialized once and the same text is written to each
socket. Delivery is best effort: a connection that is already closed is
pruned without a send attempt, and a send that fails is logged and pruned
too. Nothing is persisted or replayed; a client that misses events catches
up by refetching after it reconnects.

Targeting: without a filter every connection receives the event. With
`user_ids` and/or `roles`, a connection receives it when its user id is in
`user_ids` or its role is in `roles`. Anonymous development connections
only ever see untargeted events.
"""

import json
import uuid
from typing import Any, Iterable, Optional, Union

import structlog
from fastapi import Request
from pydantic import BaseModel

from akcent.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()

UserIds = Iterable[Union[str, uuid.UUID]]


def encode_event(event_type: str, data: Any) -> str:
    """Serialize the wire frame: {"type": ..., "data": ...}."""
    return json.dumps({"type": event_type, "data": data})


class EventBroadcaster:
    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def broadcast(
        self,
        event_type: str,
        data: Any,
        *,
        user_ids: Optional[UserIds] = None,
        roles: Optional[Iterable[str]] = None,
    ) -> int:
        """Send an event to matching open connections.

        Returns the number of connections the frame was written to.
        Never raises because of a connection.
        """
        text = encode_event(event_type, data)
        targeted = user_ids is not None or roles is not None
        wanted_users = {str(u) for u in user_ids} if user_ids is not None else set()
        wanted_roles = set(roles) if roles is not None else set()

        delivered = 0
        for conn in self.registry.snapshot():
            if not conn.is_open:
                self.registry.unregister(conn)
                continue
            if targeted and not (
                (conn.user_id is not None and conn.user_id in wanted_users)
                or (conn.role is not None and conn.role in wanted_roles)
            ):
                continue
            try:
                await conn.send_text(text)
            except Exception as e:
                logger.warning(
                    "broadcast.send_failed",
                    event_type=event_type,
                    user_id=conn.user_id,
                    error=str(e),
                )
                self.registry.unregister(conn)
                continue
            delivered += 1

        logger.debug(
            "broadcast.sent",
            event_type=event_type,
            delivered=delivered,
            connections=len(self.registry),
        )
        return delivered

    async def publish(
        self,
        event_type: str,
        payload: Union[BaseModel, dict, list],
        *,
        user_ids: Optional[UserIds] = None,
        roles: Optional[Iterable[str]] = None,
    ) -> int:
        """Broadcast a response model exactly as the HTTP layer renders it.

        Learn: Dumping with by_alias=True and mode="json" yields the same
        camelCase keys and ISO timestamps FastAPI puts in the response
        body, so the event payload equals what the mutating request
        returned.
        """
        if isinstance(payload, BaseModel):
            data = payload.model_dump(by_alias=True, mode="json")
        elif isinstance(payload, list):
            data = [
                p.model_dump(by_alias=True, mode="json")
                if isinstance(p, BaseModel)
                else p
                for p in payload
            ]
        else:
            data = payload
        return await self.broadcast(
            event_type, data, user_ids=user_ids, roles=roles
        )

    # ─── Session changes ────────────────────────────────

    def retarget(self, user_id: Union[str, uuid.UUID], role: str) -> int:
        """Apply a role change to the user's live connections.

        Role filters are evaluated per broadcast, so the next event is
        already delivered under the new role. Returns how many connections
        were updated.
        """
        conns = self.registry.for_user(user_id)
        for conn in conns:
            conn.role = role
        if conns:
            logger.info("realtime.role_changed", user_id=str(user_id), role=role, connections=len(conns))
        return len(conns)

    async def disconnect_user(
        self,
        user_id: Union[str, uuid.UUID],
        code: int = 4001,
        reason: str = "Session revoked",
    ) -> int:
        """Close and unregister every connection of a user. Returns the count."""
        conns = self.registry.for_user(user_id)
        for conn in conns:
            self.registry.unregister(conn)
            try:
                await conn.close(code, reason)
            except Exception as e:
                logger.warning("realtime.close_failed", user_id=str(user_id), error=str(e))
        if conns:
            logger.info("realtime.user_disconnected", user_id=str(user_id), connections=len(conns))
        return len(conns)


def get_broadcaster(request: Request) -> EventBroadcaster:
    """FastAPI dependency — the app-wide broadcaster built in create_app()."""
    return request.app.state.broadcaster
