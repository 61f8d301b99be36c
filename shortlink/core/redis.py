"""Redis client shared by the link cache, rate limiter and GeoIP cache."""

from typing import Annotated

import redis.asyncio as redis
import structlog
from fastapi import Depends, Request

from shortlink.core.config import Settings

logger = structlog.get_logger()

# Key prefixes
LINK_CACHE_PREFIX = "link:"
RATE_LIMIT_PREFIX = "ratelimit:"
GEOIP_CACHE_PREFIX = "geoip:"


def create_redis_client(settings: Settings) -> redis.Redis:
    """Create the Redis client used for the lifetime of the process.

    Socket timeouts bound every command so a stalled Redis turns into a
    prompt error instead of a hung request.
    """
    client = redis.from_url(
        settings.redis_dsn,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.redis_timeout,
        socket_connect_timeout=settings.redis_timeout,
        health_check_interval=30,
    )
    logger.info("Redis client initialized", host=settings.redis_host, db=settings.redis_db)
    return client


async def close_redis(client: redis.Redis) -> None:
    """Close the Redis connection pool."""
    await client.aclose()
    logger.info("Redis connection closed")


def get_redis(request: Request) -> redis.Redis:
    """The Redis client built during application startup."""
    return request.app.state.redis


RedisDep = Annotated[redis.Redis, Depends(get_redis)]
