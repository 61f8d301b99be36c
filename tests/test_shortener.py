"""Tests for the create path: validation, dual write and compensation."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from shortlink.core.exceptions import (
    CacheKeyExistsError,
    CacheWriteError,
    CollisionError,
    DependencyUnavailableError,
    InvalidExpiryError,
    InvalidShortCodeError,
    InvalidURLError,
    LinkNotFoundError,
)
from shortlink.services import link as link_service
from shortlink.services.link_cache import LinkCache, link_cache_key
from shortlink.services.resolver import RedirectResolver
from shortlink.services.shortener import LinkShortener


@pytest.fixture
def shortener(session, link_cache, settings):
    return LinkShortener(session, link_cache, settings)


class TestNormalizeURL:
    def test_adds_missing_scheme(self, shortener):
        assert shortener.normalize_url("example.com/page") == "http://example.com/page"

    def test_keeps_existing_scheme(self, shortener):
        assert shortener.normalize_url(" https://example.com ") == "https://example.com"

    @pytest.mark.parametrize("raw", ["", "not a url", "ftp://example.com", "http://"])
    def test_rejects_invalid(self, shortener, raw):
        with pytest.raises(InvalidURLError):
            shortener.normalize_url(raw)

    def test_rejects_own_domain(self, shortener):
        with pytest.raises(InvalidURLError, match="this service"):
            shortener.normalize_url("https://sho.rt/abc123")


class TestShorten:
    async def test_creates_readable_link(self, shortener, session, link_cache):
        link = await shortener.shorten("example.com")

        assert link.original_url == "http://example.com"
        assert link.expiry_hours == 24
        assert link.expires_at - link.created_at == timedelta(hours=24)
        assert await link_cache.get(link.short_code) == "http://example.com"
        stored = await link_service.get_link_by_short_code(session, link.short_code)
        assert stored is not None and stored.id == link.id

    async def test_cache_ttl_follows_expiry(self, shortener, redis_client):
        link = await shortener.shorten("https://example.com", expiry_hours=2)

        ttl = await redis_client.ttl(link_cache_key(link.short_code))
        assert 2 * 3600 - 5 < ttl <= 2 * 3600
        assert link.expires_at - link.created_at == timedelta(hours=2)

    async def test_zero_expiry_means_default(self, shortener):
        link = await shortener.shorten("https://example.com", expiry_hours=0)

        assert link.expiry_hours == 24

    async def test_custom_code_and_owner(self, shortener):
        link = await shortener.shorten("https://example.com", custom_code="promo1", owner_id=None)

        assert link.short_code == "promo1"
        assert link.owner_id is None

    async def test_duplicate_custom_code(self, shortener):
        await shortener.shorten("https://example.com/a", custom_code="promo1")

        with pytest.raises(CollisionError):
            await shortener.shorten("https://example.com/b", custom_code="promo1")

    async def test_invalid_custom_code(self, shortener):
        with pytest.raises(InvalidShortCodeError):
            await shortener.shorten("https://example.com", custom_code="x")

    async def test_invalid_url_writes_nothing(self, shortener, session):
        with pytest.raises(InvalidURLError):
            await shortener.shorten("not a url", custom_code="promo1")

        assert await link_service.get_link_by_short_code(session, "promo1") is None

    async def test_oversized_expiry_is_rejected(self, shortener, session):
        with pytest.raises(InvalidExpiryError):
            await shortener.shorten(
                "https://example.com", custom_code="promo1", expiry_hours=100_000_000
            )

        assert await link_service.get_link_by_short_code(session, "promo1") is None

    async def test_maximum_expiry_is_accepted(self, shortener, settings):
        link = await shortener.shorten("https://example.com", expiry_hours=settings.max_expiry_hours)

        assert link.expires_at - link.created_at == timedelta(hours=settings.max_expiry_hours)

    async def test_generated_code_taken_at_insert_is_regenerated(
        self, shortener, session_factory, monkeypatch
    ):
        real_insert = link_service.insert_link
        raced: list[str] = []

        async def insert_after_competitor(session, short_code, **kwargs):
            if not raced:
                raced.append(short_code)
                async with session_factory() as other:
                    await real_insert(other, short_code, "https://other.example.com", 24)
            return await real_insert(session, short_code, **kwargs)

        monkeypatch.setattr(link_service, "insert_link", insert_after_competitor)

        link = await shortener.shorten("https://example.com")

        assert link.short_code != raced[0]
        assert link.original_url == "https://example.com"

    async def test_generated_code_gives_up_after_insert_attempts(
        self, session, link_cache, settings, monkeypatch
    ):
        insert = AsyncMock(side_effect=CollisionError())
        monkeypatch.setattr(link_service, "insert_link", insert)
        shortener = LinkShortener(session, link_cache, settings, insert_attempts=2)

        with pytest.raises(DependencyUnavailableError):
            await shortener.shorten("https://example.com")

        assert insert.await_count == 2


class TestCompensation:
    async def test_existing_cache_entry_rolls_back_store_row(self, shortener, session, link_cache):
        await link_cache.put("promo1", "https://stale.example.com")

        with pytest.raises(CacheKeyExistsError):
            await shortener.shorten("https://example.com", custom_code="promo1")

        assert await link_service.get_link_by_short_code(session, "promo1") is None
        assert await link_cache.get("promo1") == "https://stale.example.com"

    async def test_cache_write_failure_rolls_back_store_row(self, session, redis_client, settings):
        redis_client.set = AsyncMock(side_effect=redis.ConnectionError("connection refused"))
        shortener = LinkShortener(session, LinkCache(redis_client), settings)

        with pytest.raises(CacheWriteError):
            await shortener.shorten("https://example.com", custom_code="promo1")

        assert await link_service.get_link_by_short_code(session, "promo1") is None

    async def test_failed_cache_verification_leaves_nothing_behind(
        self, session, redis_client, settings
    ):
        redis_client.get = AsyncMock(side_effect=redis.TimeoutError("timed out"))
        cache = LinkCache(redis_client)
        shortener = LinkShortener(session, cache, settings)

        with pytest.raises(CacheWriteError):
            await shortener.shorten("https://example.com", custom_code="promo1")

        del redis_client.get
        assert await link_service.get_link_by_short_code(session, "promo1") is None
        assert await cache.get("promo1") is None
        with pytest.raises(LinkNotFoundError):
            await RedirectResolver(session, cache).resolve("promo1")

        retry = await shortener.shorten("https://example.com", custom_code="promo1")
        assert retry.short_code == "promo1"


class TestConcurrentCreates:
    async def test_same_custom_code_has_one_winner(self, session_factory, redis_client, settings):
        async def create(url: str):
            async with session_factory() as session:
                shortener = LinkShortener(session, LinkCache(redis_client), settings)
                return await shortener.shorten(url, custom_code="promo1")

        results = await asyncio.gather(
            create("https://example.com/a"),
            create("https://example.com/b"),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, BaseException)]
        losers = [r for r in results if isinstance(r, BaseException)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], CollisionError)

        cached = await LinkCache(redis_client).get("promo1")
        assert cached == winners[0].original_url
