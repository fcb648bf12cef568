"""
Redis Connection

Shared async client for the redis throttle backend. Opened by the lifespan
only when ``THROTTLE_BACKEND=redis``; every other backend leaves it unset.
"""

import logging

from redis.asyncio import Redis, from_url

from app.core.config import settings

logger = logging.getLogger(__name__)

redis_client: Redis | None = None


async def init_redis(url: str | None = None) -> Redis:
    """
    Open the shared client and check it answers PING.

    Args:
        url: connection URL, defaults to ``settings.redis_url``

    Raises:
        redis.exceptions.ConnectionError: server unreachable
    """
    global redis_client
    client = from_url(url or settings.redis_url, encoding="utf-8", decode_responses=True)
    await client.ping()
    redis_client = client
    logger.info("Redis connection established")
    return client


def get_redis() -> Redis:
    """
    Return the shared client.

    Raises:
        RuntimeError: ``init_redis`` has not been awaited
    """
    if redis_client is None:
        raise RuntimeError("Redis throttle backend selected but Redis is not initialised")
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
