"""Business logic services."""

from shortlink.services.analytics import AnalyticsService
from shortlink.services.geoip import GeoIPService, GeoLocation
from shortlink.services.link_cache import LinkCache
from shortlink.services.notifications import ExpirationNotifier
from shortlink.services.rate_limiter import QuotaRateLimiter, RateLimitDecision
from shortlink.services.resolver import RedirectResolver, ResolvedLink, ResolveSource
from shortlink.services.shortcode import ShortCodeGenerator
from shortlink.services.shortener import LinkShortener

__all__ = [
    "AnalyticsService",
    "ExpirationNotifier",
    "GeoIPService",
    "GeoLocation",
    "LinkCache",
    "LinkShortener",
    "QuotaRateLimiter",
    "RateLimitDecision",
    "RedirectResolver",
    "ResolveSource",
    "ResolvedLink",
    "ShortCodeGenerator",
]
