"""Redis client for shared rate-limit counters."""

import redis.asyncio as redis

redis_client: redis.Redis | None = None


async def get_redis(url: str) -> redis.Redis:
    """
    Get Redis client, creating if needed.

    Returns a singleton Redis client instance. The URL is only used on the
    first call.
    """
    global redis_client
    if redis_client is None:
        redis_client = redis.from_url(url, decode_responses=True)
    return redis_client


async def close_redis() -> None:
    """
    Close Redis connection.

    Should be called during application shutdown.
    """
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
