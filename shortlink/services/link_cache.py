"""Redis-backed fast-path cache mapping short codes to target URLs."""

import redis.asyncio as redis
import structlog

from shortlink.core.exceptions import (
    CacheKeyExistsError,
    CacheUnavailableError,
    CacheWriteError,
)
from shortlink.core.redis import LINK_CACHE_PREFIX

logger = structlog.get_logger()

DEFAULT_TTL_SECONDS = 24 * 60 * 60


def link_cache_key(short_code: str) -> str:
    """Generate cache key for a link."""
    return f"{LINK_CACHE_PREFIX}{short_code}"


class LinkCache:
    """Code → URL entries with native Redis TTL.

    The cache is its own uniqueness domain: `put` refuses to overwrite an
    existing entry even if the durable store accepted the code.
    """

    def __init__(self, client: redis.Redis, default_ttl: int = DEFAULT_TTL_SECONDS) -> None:
        self._client = client
        self._default_ttl = default_ttl

    async def put(self, short_code: str, url: str, ttl: int = 0) -> None:
        """Store a new entry and verify it by reading it back.

        Args:
            short_code: The short code for the link
            url: Target URL
            ttl: Time to live in seconds; 0 means the default (24 hours)

        Raises:
            CacheKeyExistsError: the code already has an entry.
            CacheWriteError: Redis failed or the read-back did not match.
        """
        ttl = ttl or self._default_ttl
        key = link_cache_key(short_code)
        try:
            created = await self._client.set(key, url, ex=ttl, nx=True)
        except redis.RedisError as e:
            raise CacheWriteError() from e

        if not created:
            raise CacheKeyExistsError(f"Short code '{short_code}' already exists in cache")

        try:
            stored = await self._client.get(key)
        except redis.RedisError as e:
            await self._discard(key)
            raise CacheWriteError("Failed to verify cached URL") from e
        if stored != url:
            await self._discard(key)
            raise CacheWriteError("Cached URL did not match after write")

        logger.debug("Link cached", short_code=short_code, ttl=ttl)

    async def _discard(self, key: str) -> None:
        """Best-effort removal of an entry this put wrote but could not verify."""
        try:
            await self._client.delete(key)
        except redis.RedisError as e:
            logger.error("Failed to discard unverified cache entry", key=key, error=str(e))

    async def get(self, short_code: str) -> str | None:
        """Get a URL from cache by short code.

        Returns None if the key is absent or expired.
        """
        try:
            url = await self._client.get(link_cache_key(short_code))
        except redis.RedisError as e:
            raise CacheUnavailableError() from e

        if url is None:
            logger.debug("Cache miss", short_code=short_code)
        else:
            logger.debug("Cache hit", short_code=short_code)
        return url

    async def backfill(self, short_code: str, url: str, ttl: int) -> bool:
        """Repopulate an entry after a store hit. Best-effort, never raises.

        Returns True when the entry was written.
        """
        if ttl <= 0:
            return False
        try:
            written = await self._client.set(link_cache_key(short_code), url, ex=ttl, nx=True)
        except redis.RedisError as e:
            logger.warning("Cache backfill failed", short_code=short_code, error=str(e))
            return False
        return bool(written)

    async def delete(self, short_code: str) -> None:
        """Invalidate (delete) a link from cache."""
        try:
            await self._client.delete(link_cache_key(short_code))
        except redis.RedisError as e:
            raise CacheUnavailableError() from e
        logger.debug("Cache invalidated", short_code=short_code)
