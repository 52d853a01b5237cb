"""
Commission summary cache.

Read-through Redis cache in front of the ledger aggregation. Entries are
invalidated explicitly after each distribution; the TTL only bounds how
long a missed invalidation can linger. Redis failures degrade to a miss.
"""

import json
from typing import Any

from loguru import logger
from redis.exceptions import RedisError

from commission_engine.models.wallet import wallet_key


CACHE_KEY_PREFIX = "commission_summary"


def cache_key(recipient_id: int | None) -> str:
    """Redis key of a recipient's summary."""
    return f"{CACHE_KEY_PREFIX}:{wallet_key(recipient_id)}"


class WalletCache:
    """Thin JSON cache over an optional Redis client."""

    def __init__(self, redis_client: Any | None, ttl_seconds: int) -> None:
        """
        Initialize wallet cache.

        Args:
            redis_client: Async Redis client, or None to disable caching
            ttl_seconds: Expiry of cached summaries
        """
        self.redis_client = redis_client
        self.ttl_seconds = ttl_seconds

    @property
    def enabled(self) -> bool:
        return self.redis_client is not None and self.ttl_seconds > 0

    async def get(self, recipient_id: int | None) -> dict | None:
        if not self.enabled:
            return None
        key = cache_key(recipient_id)
        try:
            raw = await self.redis_client.get(key)
            return json.loads(raw) if raw else None
        except (RedisError, ConnectionError, TimeoutError) as e:
            logger.warning(
                f"Redis error reading {key}: {type(e).__name__}: {e}. "
                "Falling back to ledger.",
            )
        except ValueError as e:
            logger.error(f"Invalid cached summary in {key}: {e}")
        return None

    async def set(self, recipient_id: int | None, payload: dict) -> None:
        if not self.enabled:
            return
        key = cache_key(recipient_id)
        try:
            await self.redis_client.setex(
                key, self.ttl_seconds, json.dumps(payload)
            )
        except (RedisError, ConnectionError, TimeoutError) as e:
            logger.warning(
                f"Redis error caching {key}: {type(e).__name__}: {e}"
            )

    async def invalidate(self, recipient_ids: list[int | None]) -> int:
        """
        Drop cached summaries of the given recipients.

        Returns:
            Number of keys deleted
        """
        if not self.enabled or not recipient_ids:
            return 0

        keys = sorted({cache_key(r) for r in recipient_ids})
        try:
            deleted = await self.redis_client.delete(*keys)
        except (RedisError, ConnectionError, TimeoutError) as e:
            # Stale entries expire with the TTL
            logger.warning(
                f"Failed to invalidate commission summary cache: {e}",
                extra={"keys": keys},
            )
            return 0

        logger.debug(
            f"Invalidated {deleted} commission summary cache keys",
            extra={"keys": keys},
        )
        return deleted
