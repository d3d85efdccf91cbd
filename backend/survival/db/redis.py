"""Shared Redis connection backing the consistency counters."""

import redis.asyncio as redis

from survival.config import settings

redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """The process-wide client, connected on first use."""
    global redis_client
    if redis_client is None:
        redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return redis_client


async def close_redis() -> None:
    """Release the connection pool at shutdown; a no-op before first use."""
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None


async def get_redis() -> redis.Redis:
    """Request dependency handing out the shared client for monitor counters."""
    return get_redis_client()
