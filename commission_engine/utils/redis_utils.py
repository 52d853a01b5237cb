"""Redis connection utilities.

Provides helper functions for creating Redis connections with configuration
from settings to avoid code duplication.
"""

import redis.asyncio as redis

from commission_engine.config.settings import Settings, settings


def get_redis_client(config: Settings | None = None) -> redis.Redis | None:
    """
    Create a Redis client with settings from config.

    Returns:
        Configured client with decode_responses=True, or None when no
        Redis host is configured (caching disabled)

    Example:
        >>> redis_client = get_redis_client()
        >>> if redis_client:
        ...     await redis_client.get("key")
    """
    config = config or settings
    if not config.redis_enabled:
        return None
    return redis.Redis(
        host=config.redis_host,
        port=config.redis_port,
        password=config.redis_password,
        db=config.redis_db,
        decode_responses=True,
    )


def get_redis_url_masked(config: Settings | None = None) -> str:
    """
    Build Redis URL with masked password for safe logging.

    Returns:
        str: Redis connection URL with masked password
    """
    config = config or settings
    auth = ":****@" if config.redis_password else ""
    return f"redis://{auth}{config.redis_host}:{config.redis_port}/{config.redis_db}"
