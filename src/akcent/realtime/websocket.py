"""WebSocket endpoint — the push channel browsers subscribe to.

Learn: Each browser tab opens one connection to /realtime-ws. The handler:
1. Authenticates from the session cookie (or ?token= for non-browser clients)
2. Registers the connection so the broadcaster can reach it
3. Answers {"type": "ping"} keepalives; everything else from the client is ignored
4. Unregisters on disconnect, whatever the reason

Authentication is required in production. In development mode an
unauthenticated socket is accepted as an anonymous connection that only
receives untargeted events.
"""

import json
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.websockets import WebSocketState

from akcent.auth.dependencies import extract_token, load_session_user
from akcent.config import settings
from akcent.db.engine import get_db

logger = structlog.get_logger()
router = APIRouter()


class WebSocketConnection:
    """Adapts a Starlette WebSocket to the registry's Connection protocol."""

    def __init__(
        self,
        websocket: WebSocket,
        user_id: Optional[str] = None,
        role: Optional[str] = None,
    ):
        self.websocket = websocket
        self.user_id = user_id
        self.role = role

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, text: str) -> None:
        await self.websocket.send_text(text)

    async def close(self, code: int, reason: str = "") -> None:
        if self.is_open:
            await self.websocket.close(code=code, reason=reason)


@router.websocket("/realtime-ws")
async def realtime_websocket(
    websocket: WebSocket,
    db: AsyncSession = Depends(get_db),
):
    # ── Authentication ──────────────────────────────────────
    token = websocket.query_params.get("token") or extract_token(
        websocket.cookies, websocket.headers.get("authorization")
    )
    user = await load_session_user(db, token) if token else None
    # The session is only needed for the lookup; don't hold it open for
    # the lifetime of the socket.
    await db.close()

    if user is None and settings.environment != "development":
        await websocket.close(code=4001, reason="Authentication required")
        return

    # ── Connection accepted ─────────────────────────────────
    await websocket.accept()
    conn = WebSocketConnection(
        websocket,
        user_id=str(user.id) if user else None,
        role=user.role if user else None,
    )
    registry = websocket.app.state.registry
    registry.register(conn)
    logger.info(
        "realtime.connected",
        user_id=conn.user_id,
        role=conn.role,
        connections=len(registry),
    )

    try:
        while True:
            # Binary frames are skipped; a server-side close still ends the loop
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                continue
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if isinstance(msg, dict) and msg.get("type") == "ping" and conn.is_open:
                await websocket.send_text(json.dumps({"type": "pong"}))
    except WebSocketDisconnect:
        pass
    finally:
        registry.unregister(conn)
        logger.info(
            "realtime.disconnected",
            user_id=conn.user_id,
            connections=len(registry),
        )
