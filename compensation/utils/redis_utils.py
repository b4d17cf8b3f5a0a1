"""Redis connection utilities.

Batch jobs share one way of building a Redis client from settings.
"""

import redis.asyncio as redis

from compensation.config.settings import settings


def get_redis_client() -> redis.Redis:
    """
    Create a Redis client with settings from config.

    Returns:
        redis.Redis: Client with decode_responses=True

    Example:
        >>> client = get_redis_client()
        >>> await client.set("key", "value")
        >>> await client.aclose()
    """
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )


def get_redis_url_masked() -> str:
    """
    Build Redis URL with masked password for safe logging.

    Returns:
        str: redis://[:****@]host:port/db
    """
    auth = ":****@" if settings.redis_password else ""
    return (
        f"redis://{auth}{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
    )
