"""Per-client create quota with a TTL-driven window."""

from dataclasses import dataclass

import redis.asyncio as redis
import structlog

from shortlink.core.exceptions import CacheUnavailableError
from shortlink.core.redis import RATE_LIMIT_PREFIX

logger = structlog.get_logger()


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int  # seconds until the window resets


def rate_limit_key(client_key: str) -> str:
    return f"{RATE_LIMIT_PREFIX}{client_key}"


class QuotaRateLimiter:
    """Each client gets `quota` requests per window.

    Algorithm:
    - First request in a window: SET key quota NX EX window (lazily starts it)
    - check(): read remaining; reject while remaining <= 0
    - consume(): DECR, called only once the request has fully succeeded
    - The window resets when Redis expires the key

    Two requests may pass check() concurrently and push the counter below
    zero; the boundary check still rejects everything after that.
    """

    def __init__(self, client: redis.Redis, quota: int, window_seconds: int) -> None:
        self._client = client
        self.quota = quota
        self.window_seconds = window_seconds

    async def check(self, client_key: str) -> RateLimitDecision:
        """Decide whether the client may issue another request in this window."""
        key = rate_limit_key(client_key)
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(key, self.quota, ex=self.window_seconds, nx=True)
                pipe.get(key)
                pipe.ttl(key)
                _, value, ttl = await pipe.execute()
        except redis.RedisError as e:
            raise CacheUnavailableError("Failed to reach the rate limiter") from e

        remaining = int(value) if value is not None else self.quota
        retry_after = self._retry_after(ttl)

        if remaining <= 0:
            logger.info("Rate limit exceeded", client_key=client_key, retry_after=retry_after)
            return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)

        return RateLimitDecision(allowed=True, remaining=remaining, retry_after=retry_after)

    async def consume(self, client_key: str) -> RateLimitDecision:
        """Spend one unit of the client's quota."""
        key = rate_limit_key(client_key)
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.decr(key)
                pipe.ttl(key)
                remaining, ttl = await pipe.execute()

            if ttl == -1:
                # The window expired between check() and consume(); DECR recreated
                # the key without a TTL. Start a fresh window with this request counted.
                await self._client.set(key, self.quota - 1, ex=self.window_seconds)
                remaining, ttl = self.quota - 1, self.window_seconds
        except redis.RedisError as e:
            raise CacheUnavailableError("Failed to reach the rate limiter") from e

        return RateLimitDecision(
            allowed=True,
            remaining=max(0, int(remaining)),
            retry_after=self._retry_after(ttl),
        )

    def _retry_after(self, ttl: int | None) -> int:
        """TTL in seconds, falling back to the full window (best-effort)."""
        return ttl if isinstance(ttl, int) and ttl > 0 else self.window_seconds
