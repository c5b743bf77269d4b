"""Client-side event dispatch: event type → stale cache keys.

Learn: Clients keep API responses in a cache keyed by the request path
split into segments, e.g. ("/api/files",) or ("/api/files", id, "versions").
An event never carries enough to patch a cached list in place, so the
client just marks every affected key stale and refetches on next read.
Invalidating by prefix means ("/api/files",) also covers every per-file
key below it.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

import structlog

from akcent.events import types as ev

logger = structlog.get_logger()

CacheKey = tuple[Hashable, ...]
EventHandler = Callable[[str, Any], None]


@dataclass
class CacheEntry:
    data: Any = None
    stale: bool = False


class QueryCache:
    """Response cache with prefix invalidation."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}

    def set(self, key: CacheKey, data: Any) -> None:
        self._entries[tuple(key)] = CacheEntry(data=data)

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        return self._entries.get(tuple(key))

    def is_stale(self, key: CacheKey) -> bool:
        """Missing keys count as stale — there is nothing fresh to serve."""
        entry = self._entries.get(tuple(key))
        return entry is None or entry.stale

    def keys(self) -> list[CacheKey]:
        return list(self._entries)

    def invalidate(self, prefix: CacheKey) -> int:
        """Mark every key starting with `prefix` stale.

        Idempotent: invalidating twice leaves the same state as once.
        Returns how many cached keys matched.
        """
        prefix = tuple(prefix)
        matched = 0
        for key, entry in self._entries.items():
            if key[: len(prefix)] == prefix:
                entry.stale = True
                matched += 1
        return matched

    def invalidate_all(self) -> None:
        for entry in self._entries.values():
            entry.stale = True


# ─── Invalidation map ────────────────────────────────────

_AUDIT = ("/api/admin/audit-logs",)
_STATS = ("/api/stats",)
_FILES = ("/api/files",)
_ADMIN_FILES = ("/api/admin/files",)
_COLLECTIONS = ("/api/collections",)
_FAVORITES = ("/api/favorites",)
_FAQ_PRODUCTS = ("/api/faq/products",)
_FAQ_ITEMS = ("/api/faq/items",)
_ANNOUNCEMENTS = ("/api/announcements",)
_ADMIN_ANNOUNCEMENTS = ("/api/admin/announcements",)
_NOTIFICATIONS = ("/api/notifications",)
_TAGS = ("/api/tags",)
_FORUM_CATEGORIES = ("/api/forum/categories",)
_FORUM_THREADS = ("/api/forum/threads",)
_MESSAGES = ("/api/messages",)
_WEBHOOKS = ("/api/admin/webhooks",)
_DOWNLOADS = ("/api/downloads/history",)
_ADMIN_DOWNLOADS = ("/api/admin/downloads/history",)
_ANALYTICS = ("/api/admin/analytics",)

INVALIDATION_MAP: dict[str, tuple[CacheKey, ...]] = {
    ev.USER_CREATED: (("/api/admin/users",), _STATS, _AUDIT),
    ev.USER_UPDATED: (("/api/admin/users",), _STATS, ("/api/profile",), ("/api/user",), _AUDIT),
    ev.INVITE_CODE_CREATED: (("/api/admin/invite-codes",), _AUDIT),
    ev.INVITE_CODE_DELETED: (("/api/admin/invite-codes",), _AUDIT),
    ev.FILE_UPLOADED: (_FILES, _ADMIN_FILES, _STATS, _AUDIT),
    ev.FILE_UPDATED: (_FILES, _ADMIN_FILES, _STATS, _COLLECTIONS, _FAVORITES, _AUDIT),
    ev.FILE_DELETED: (_FILES, _ADMIN_FILES, _STATS, _COLLECTIONS, _FAVORITES, _AUDIT),
    ev.FILE_VERSION_CREATED: (_FILES, _ADMIN_FILES, _AUDIT),
    ev.FILE_DOWNLOADED: (_STATS, _DOWNLOADS, _ADMIN_DOWNLOADS, _ANALYTICS),
    ev.FILE_COMMENT_CREATED: (_FILES, _AUDIT),
    ev.FILE_COMMENT_DELETED: (_FILES, _AUDIT),
    ev.FILE_TAG_ADDED: (_FILES, _TAGS, _AUDIT),
    ev.FILE_TAG_REMOVED: (_FILES, _TAGS, _AUDIT),
    ev.FAVORITE_ADDED: (_FAVORITES,),
    ev.FAVORITE_REMOVED: (_FAVORITES,),
    ev.FAQ_PRODUCT_CREATED: (_FAQ_PRODUCTS, _AUDIT),
    ev.FAQ_PRODUCT_UPDATED: (_FAQ_PRODUCTS, _AUDIT),
    ev.FAQ_PRODUCT_DELETED: (_FAQ_PRODUCTS, _FAQ_ITEMS, _AUDIT),
    ev.FAQ_ITEM_CREATED: (_FAQ_ITEMS, _AUDIT),
    ev.FAQ_ITEM_UPDATED: (_FAQ_ITEMS, _AUDIT),
    ev.FAQ_ITEM_DELETED: (_FAQ_ITEMS, _AUDIT),
    ev.ANNOUNCEMENT_CREATED: (_ANNOUNCEMENTS, _ADMIN_ANNOUNCEMENTS, _AUDIT),
    ev.ANNOUNCEMENT_UPDATED: (_ANNOUNCEMENTS, _ADMIN_ANNOUNCEMENTS, _AUDIT),
    ev.ANNOUNCEMENT_DELETED: (_ANNOUNCEMENTS, _ADMIN_ANNOUNCEMENTS, _AUDIT),
    ev.NEW_NOTIFICATION: (_NOTIFICATIONS,),
    ev.NOTIFICATION_READ: (_NOTIFICATIONS,),
    ev.NOTIFICATIONS_READ_ALL: (_NOTIFICATIONS,),
    ev.TAG_CREATED: (_TAGS, _AUDIT),
    ev.TAG_UPDATED: (_TAGS, _FILES, _AUDIT),
    ev.TAG_DELETED: (_TAGS, _FILES, _AUDIT),
    ev.COLLECTION_CREATED: (_COLLECTIONS, _AUDIT),
    ev.COLLECTION_UPDATED: (_COLLECTIONS, _AUDIT),
    ev.COLLECTION_DELETED: (_COLLECTIONS, _AUDIT),
    ev.COLLECTION_FILE_ADDED: (_COLLECTIONS, _AUDIT),
    ev.COLLECTION_FILE_REMOVED: (_COLLECTIONS, _AUDIT),
    ev.CHAT_MESSAGE: (("/api/chat/messages",),),
    ev.FORUM_CATEGORY_CREATED: (_FORUM_CATEGORIES, _AUDIT),
    ev.FORUM_CATEGORY_UPDATED: (_FORUM_CATEGORIES, _AUDIT),
    ev.FORUM_CATEGORY_DELETED: (_FORUM_CATEGORIES, _FORUM_THREADS, _AUDIT),
    ev.FORUM_THREAD_CREATED: (_FORUM_THREADS, _FORUM_CATEGORIES),
    ev.FORUM_THREAD_UPDATED: (_FORUM_THREADS,),
    ev.FORUM_THREAD_DELETED: (_FORUM_THREADS, _FORUM_CATEGORIES),
    ev.FORUM_POST_CREATED: (_FORUM_THREADS,),
    ev.FORUM_POST_UPDATED: (_FORUM_THREADS,),
    ev.FORUM_POST_DELETED: (_FORUM_THREADS,),
    ev.DIRECT_MESSAGE_SENT: (_MESSAGES,),
    ev.DIRECT_MESSAGES_READ: (_MESSAGES,),
    ev.WEBHOOK_CREATED: (_WEBHOOKS, _AUDIT),
    ev.WEBHOOK_UPDATED: (_WEBHOOKS, _AUDIT),
    ev.WEBHOOK_DELETED: (_WEBHOOKS, _AUDIT),
}


class InvalidationDispatcher:
    """Turns raw push-channel frames into cache invalidations."""

    def __init__(
        self,
        cache: QueryCache,
        handler: Optional[EventHandler] = None,
        mapping: Optional[dict[str, tuple[CacheKey, ...]]] = None,
    ):
        self.cache = cache
        self.handler = handler
        self.mapping = INVALIDATION_MAP if mapping is None else mapping

    def keys_for(self, event_type: str) -> tuple[CacheKey, ...]:
        return self.mapping.get(event_type, ())

    def dispatch(self, raw: str) -> tuple[CacheKey, ...]:
        """Apply one frame. Returns the keys it invalidated.

        Malformed frames are logged and dropped; unknown event types
        invalidate nothing but still reach the handler.
        """
        try:
            frame = json.loads(raw)
            event_type = frame["type"]
            data = frame.get("data")
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.warning("realtime.bad_frame", error=str(e))
            return ()
        if not isinstance(event_type, str):
            logger.warning("realtime.bad_frame", error="type is not a string")
            return ()

        keys = self.keys_for(event_type)
        for key in keys:
            self.cache.invalidate(key)

        if self.handler is not None:
            self.handler(event_type, data)
        return keys
