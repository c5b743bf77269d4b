"""Optional Redis connection used for rate limiting.

Learn: The push channel is in-process, so Redis is not on the event path.
It only backs the per-IP request counters. If Redis is down at startup the
app still runs, just without rate limits.
"""

from typing import Optional

import redis.asyncio as aioredis

from akcent.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Connect and ping; raises if Redis is unreachable."""
    global _redis
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await client.ping()
    except aioredis.RedisError:
        await client.aclose()
        raise
    _redis = client
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> Optional[aioredis.Redis]:
    """Return the shared client, or None when Redis is not configured."""
    return _redis
