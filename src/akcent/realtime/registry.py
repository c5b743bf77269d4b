"""Registry of live push-channel connections.

Learn: All access happens on the event loop thread, so a plain set is
enough; there is no await between reading and mutating it. Connections are
compared by identity, which makes unregister idempotent.
"""

from typing import Iterator, Optional, Protocol


class Connection(Protocol):
    """What the broadcaster needs from a client connection."""

    user_id: Optional[str]
    role: Optional[str]

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, text: str) -> None: ...

    async def close(self, code: int, reason: str = "") -> None: ...


class ConnectionRegistry:
    """The set of currently connected clients. No capacity limit."""

    def __init__(self) -> None:
        self._connections: set[Connection] = set()

    def register(self, connection: Connection) -> None:
        self._connections.add(connection)

    def unregister(self, connection: Connection) -> None:
        """Remove a connection. Removing an unknown connection is a no-op."""
        self._connections.discard(connection)

    def for_user(self, user_id: object) -> list[Connection]:
        """Every connection authenticated as `user_id` (one per open tab)."""
        wanted = str(user_id)
        return [c for c in self._connections if c.user_id == wanted]

    def snapshot(self) -> list[Connection]:
        """Copy of the current members, safe to iterate across awaits."""
        return list(self._connections)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections

    def __iter__(self) -> Iterator[Connection]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._connections)
