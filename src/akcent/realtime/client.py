"""Push-channel client with automatic reconnect.

Learn: The server never replays events, so a client that drops off the
socket cannot know what it missed. After every reconnect the client marks
its whole cache stale, which turns "missed events" into "one round of
refetches". Reconnect attempts back off exponentially (0.5s, 1s, 2s, ...
capped at 30s) and the delay resets once a connection succeeds.
"""

import asyncio
from typing import Optional

import aiohttp
import structlog

from akcent.realtime.dispatcher import InvalidationDispatcher

logger = structlog.get_logger()


class Backoff:
    """Exponential backoff delays."""

    def __init__(self, initial: float = 0.5, maximum: float = 30.0, factor: float = 2.0):
        self.initial = initial
        self.maximum = maximum
        self.factor = factor
        self._current = initial

    def next(self) -> float:
        delay = self._current
        self._current = min(self._current * self.factor, self.maximum)
        return delay

    def reset(self) -> None:
        self._current = self.initial


class RealtimeClient:
    """Keeps one websocket to /realtime-ws open and feeds the dispatcher."""

    def __init__(
        self,
        url: str,
        dispatcher: InvalidationDispatcher,
        token: Optional[str] = None,
        backoff: Optional[Backoff] = None,
    ):
        self.url = url
        self.dispatcher = dispatcher
        self.token = token
        self.backoff = backoff or Backoff()
        self.connections = 0
        self._stop = asyncio.Event()
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._closing: Optional[asyncio.Task] = None

    def stop(self) -> None:
        """Ask run() to return. Must be called on the client's event loop.

        An open socket is closed right away, so run() returns even when
        the server has nothing to send.
        """
        self._stop.set()
        if self._ws is not None and not self._ws.closed and self._closing is None:
            self._closing = asyncio.get_running_loop().create_task(self._ws.close())

    async def run(self, session: Optional[aiohttp.ClientSession] = None) -> None:
        """Connect, consume and reconnect until stop() is called."""
        own_session = session is None
        session = session or aiohttp.ClientSession()
        try:
            while not self._stop.is_set():
                try:
                    await self._consume(session)
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    logger.warning("realtime.connect_failed", url=self.url, error=str(e))

                if self._stop.is_set():
                    break
                delay = self.backoff.next()
                logger.info("realtime.reconnecting", delay=delay)
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        finally:
            if self._closing is not None:
                await self._closing
            if own_session:
                await session.close()

    async def _consume(self, session: aiohttp.ClientSession) -> None:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        async with session.ws_connect(self.url, headers=headers, heartbeat=30) as ws:
            self._ws = ws
            self.backoff.reset()
            self.connections += 1
            if self.connections > 1:
                self.dispatcher.cache.invalidate_all()
                logger.info("realtime.resynced", connections=self.connections)
            else:
                logger.info("realtime.connected", url=self.url)

            try:
                async for msg in ws:
                    if self._stop.is_set():
                        break
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        self.dispatcher.dispatch(msg.data)
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        logger.warning("realtime.socket_error", error=str(ws.exception()))
                        break
            finally:
                self._ws = None
            logger.info("realtime.disconnected", close_code=ws.close_code)
