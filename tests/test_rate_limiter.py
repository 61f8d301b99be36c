"""Tests for the per-client create quota."""

import asyncio
from unittest.mock import MagicMock

import pytest
import redis.asyncio as redis

from shortlink.core.exceptions import CacheUnavailableError
from shortlink.services.rate_limiter import QuotaRateLimiter, rate_limit_key


@pytest.fixture
def limiter(redis_client):
    return QuotaRateLimiter(redis_client, quota=3, window_seconds=60)


class TestCheck:
    async def test_first_request_opens_window(self, limiter, redis_client):
        decision = await limiter.check("ip:1.2.3.4")

        assert decision.allowed
        assert decision.remaining == 3
        assert 0 < decision.retry_after <= 60
        assert await redis_client.get(rate_limit_key("ip:1.2.3.4")) == "3"

    async def test_check_alone_does_not_spend(self, limiter):
        for _ in range(5):
            decision = await limiter.check("ip:1.2.3.4")

        assert decision.allowed
        assert decision.remaining == 3

    async def test_rejects_once_quota_is_spent(self, limiter):
        for _ in range(3):
            assert (await limiter.check("ip:1.2.3.4")).allowed
            await limiter.consume("ip:1.2.3.4")

        decision = await limiter.check("ip:1.2.3.4")

        assert not decision.allowed
        assert decision.remaining == 0
        assert 0 < decision.retry_after <= 60

    async def test_negative_counter_still_rejects(self, limiter, redis_client):
        await redis_client.set(rate_limit_key("ip:1.2.3.4"), -2, ex=60)

        assert not (await limiter.check("ip:1.2.3.4")).allowed

    async def test_clients_are_independent(self, limiter):
        for _ in range(3):
            await limiter.check("ip:1.2.3.4")
            await limiter.consume("ip:1.2.3.4")

        assert not (await limiter.check("ip:1.2.3.4")).allowed
        assert (await limiter.check("ip:5.6.7.8")).allowed

    async def test_window_resets_when_key_expires(self, redis_client):
        limiter = QuotaRateLimiter(redis_client, quota=1, window_seconds=1)
        await limiter.check("ip:1.2.3.4")
        await limiter.consume("ip:1.2.3.4")
        assert not (await limiter.check("ip:1.2.3.4")).allowed

        await asyncio.sleep(1.2)

        decision = await limiter.check("ip:1.2.3.4")
        assert decision.allowed
        assert decision.remaining == 1


class TestConsume:
    async def test_decrements_remaining(self, limiter):
        await limiter.check("user:7")

        first = await limiter.consume("user:7")
        second = await limiter.consume("user:7")

        assert (first.remaining, second.remaining) == (2, 1)
        assert 0 < second.retry_after <= 60

    async def test_key_without_ttl_starts_new_window(self, limiter, redis_client):
        await redis_client.set(rate_limit_key("user:7"), 1)

        decision = await limiter.consume("user:7")

        assert decision.remaining == 2
        assert decision.retry_after == 60
        assert 0 < await redis_client.ttl(rate_limit_key("user:7")) <= 60


class TestRedisFailure:
    @pytest.fixture
    def broken_limiter(self):
        client = MagicMock()
        client.pipeline.side_effect = redis.ConnectionError("connection refused")
        return QuotaRateLimiter(client, quota=3, window_seconds=60)

    async def test_check_raises_unavailable(self, broken_limiter):
        with pytest.raises(CacheUnavailableError):
            await broken_limiter.check("ip:1.2.3.4")

    async def test_consume_raises_unavailable(self, broken_limiter):
        with pytest.raises(CacheUnavailableError):
            await broken_limiter.consume("ip:1.2.3.4")
