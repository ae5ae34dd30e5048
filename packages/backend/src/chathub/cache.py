"""Redis connection pool — shared by the rate limiter and health check.

Learn: Redis is optional. The hub fans out in-process, so Redis only backs
per-IP rate-limit counters. If init_redis() fails at startup the app keeps
running and get_redis() raises, which the rate limiter treats as "skip".
"""

from typing import Optional

import redis.asyncio as aioredis

from chathub.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool and verify it answers."""
    global _redis
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await client.ping()
    _redis = client
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
