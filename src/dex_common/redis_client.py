"""Redis client factory: pool display cache and swap session context only.

Trade records never live here; the trade store is PostgreSQL. Losing Redis
costs the display cache (quotes read the ledger directly anyway) and the
per-wallet duplicate markers.
"""

import redis.asyncio as aioredis

from config.settings import settings

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Get or create the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
    return _redis_pool


async def ping_redis() -> None:
    """Raise ``redis.exceptions.ConnectionError`` if Redis is unreachable."""
    redis = await get_redis()
    await redis.ping()


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
