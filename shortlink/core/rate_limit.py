"""Coarse per-IP request throttling using slowapi.

The create quota (remaining requests per client window) lives in
`shortlink.services.rate_limiter`; this limiter only guards the redirect hot
path against floods.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from shortlink.core.config import get_settings

settings = get_settings()


def get_real_client_ip(request: Request) -> str:
    """Get the real client IP address, handling proxies.

    Checks X-Forwarded-For and X-Real-IP headers before falling back
    to the direct client address.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs: client, proxy1, proxy2
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_real_client_ip,
    storage_uri=settings.rate_limit_storage_uri or settings.redis_dsn,
    strategy="fixed-window",
    enabled=settings.rate_limit_enabled,
)

RATE_LIMIT_REDIRECT = settings.rate_limit_redirect
