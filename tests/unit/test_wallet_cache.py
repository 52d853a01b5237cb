"""
Unit tests for the commission summary cache.

Tests cover:
- Key layout for promoters and the admin account
- Read-through get/set and explicit invalidation
- Redis failures degrade to cache misses
"""

import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from commission_engine.services.wallet.wallet_cache import (
    WalletCache,
    cache_key,
)


class TestCacheKey:
    """Test cache_key()."""

    def test_promoter_key(self):
        assert cache_key(7) == "commission_summary:promoter:7"

    def test_admin_key(self):
        assert cache_key(None) == "commission_summary:admin"


class TestWalletCache:
    """Test WalletCache."""

    @pytest.mark.asyncio
    async def test_disabled_without_client(self):
        cache = WalletCache(None, ttl_seconds=300)

        assert cache.enabled is False
        assert await cache.get(1) is None
        assert await cache.invalidate([1]) == 0

    @pytest.mark.asyncio
    async def test_disabled_with_zero_ttl(self, mock_redis_client):
        cache = WalletCache(mock_redis_client, ttl_seconds=0)

        await cache.set(1, {"balance": "1"})

        mock_redis_client.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_set_and_get(self, mock_redis_client):
        cache = WalletCache(mock_redis_client, ttl_seconds=300)
        payload = {"recipient_id": 1, "balance": "500"}

        await cache.set(1, payload)
        key, ttl, raw = mock_redis_client.setex.await_args.args
        assert key == "commission_summary:promoter:1"
        assert ttl == 300

        mock_redis_client.get.return_value = raw
        assert await cache.get(1) == payload

    @pytest.mark.asyncio
    async def test_invalidate_deduplicates_keys(self, mock_redis_client):
        cache = WalletCache(mock_redis_client, ttl_seconds=300)
        mock_redis_client.delete.return_value = 2

        deleted = await cache.invalidate([1, None, 1])

        assert deleted == 2
        mock_redis_client.delete.assert_awaited_once_with(
            "commission_summary:admin", "commission_summary:promoter:1"
        )

    @pytest.mark.asyncio
    async def test_redis_error_is_a_miss(self, mock_redis_client):
        cache = WalletCache(mock_redis_client, ttl_seconds=300)
        mock_redis_client.get.side_effect = RedisConnectionError("down")
        mock_redis_client.delete.side_effect = RedisConnectionError("down")

        assert await cache.get(1) is None
        assert await cache.invalidate([1]) == 0

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, mock_redis_client):
        cache = WalletCache(mock_redis_client, ttl_seconds=300)
        mock_redis_client.get.return_value = "{not json"

        assert await cache.get(1) is None

    @pytest.mark.asyncio
    async def test_cached_payload_is_json(self, mock_redis_client):
        cache = WalletCache(mock_redis_client, ttl_seconds=60)

        await cache.set(None, {"balance": "300"})

        raw = mock_redis_client.setex.await_args.args[2]
        assert json.loads(raw) == {"balance": "300"}
