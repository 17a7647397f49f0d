"""Redis connection pool.

Learn: Redis is provisioned alongside Postgres but kept off the
authenticated request path: tokens are verified statelessly and users
are re-read from the database. The health check pings it and the rate
limiter keeps its per-minute counters here. Everything works without it.
"""

from typing import Optional

import redis.asyncio as aioredis

from ngobrol.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool."""
    global _redis
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Verify connection
    await client.ping()
    _redis = client
    return _redis


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
