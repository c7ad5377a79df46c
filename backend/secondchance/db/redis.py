"""Redis client for the coach progress snapshot cache.

Redis is optional. When ``init_redis`` fails the app keeps running and every
progress read recomputes from ``user_activity``.
"""

import redis.asyncio as redis

from secondchance.core.config import get_settings

_redis: redis.Redis | None = None


async def init_redis(url: str | None = None) -> None:
    """Connect the shared client and ping it once.

    Raises:
        RedisError/OSError: If the server cannot be reached; the caller decides
            whether to continue uncached
    """
    global _redis

    if _redis is not None:
        return

    settings = get_settings()
    client = redis.from_url(
        url or settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.redis_connect_timeout_seconds,
        socket_timeout=settings.redis_connect_timeout_seconds,
    )
    _redis = client
    await client.ping()


async def close_redis() -> None:
    global _redis

    client, _redis = _redis, None
    if client is not None:
        await client.aclose()


def get_redis_or_none() -> redis.Redis | None:
    """Shared client, or None when the cache is not connected."""
    return _redis
