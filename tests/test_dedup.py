"""Tests for the Redis duplicate-delivery guard."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from questbot.security.dedup import DeliveryGuard


@pytest.fixture()
def redis():
    mock = AsyncMock()
    mock.exists = AsyncMock(return_value=0)
    mock.set = AsyncMock(return_value=True)
    return mock


class TestDeliveryGuard:
    @pytest.mark.asyncio()
    async def test_unseen_message(self, redis):
        guard = DeliveryGuard(redis, ttl=60)
        assert await guard.seen("wamid.1") is False
        redis.exists.assert_awaited_once_with("wamid:wamid.1")

    @pytest.mark.asyncio()
    async def test_seen_message(self, redis):
        redis.exists = AsyncMock(return_value=1)
        assert await DeliveryGuard(redis, ttl=60).seen("wamid.1") is True

    @pytest.mark.asyncio()
    async def test_remember_sets_with_ttl(self, redis):
        await DeliveryGuard(redis, ttl=120, prefix="test:").remember("wamid.1")
        redis.set.assert_awaited_once_with("test:wamid.1", "1", nx=True, ex=120)

    @pytest.mark.asyncio()
    async def test_missing_id_never_duplicate(self, redis):
        guard = DeliveryGuard(redis, ttl=60)
        assert await guard.seen(None) is False
        await guard.remember(None)
        redis.exists.assert_not_awaited()
        redis.set.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_redis_down_fails_open(self, redis):
        redis.exists = AsyncMock(side_effect=ConnectionError("redis down"))
        redis.set = AsyncMock(side_effect=ConnectionError("redis down"))
        guard = DeliveryGuard(redis, ttl=60)

        assert await guard.seen("wamid.1") is False
        await guard.remember("wamid.1")
