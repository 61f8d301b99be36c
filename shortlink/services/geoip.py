"""GeoIP service for IP to location lookup."""

import ipaddress
import json
from dataclasses import asdict, dataclass
from pathlib import Path

import geoip2.database
import geoip2.errors
import httpx
import redis.asyncio as redis
import structlog

from shortlink.core.config import Settings
from shortlink.core.redis import GEOIP_CACHE_PREFIX

logger = structlog.get_logger()


@dataclass(frozen=True)
class GeoLocation:
    """Geographic location data from IP lookup. Empty strings mean unknown."""

    country: str = ""
    city: str = ""


class GeoIPService:
    """Service for looking up geographic location from IP addresses.

    Supports two backends:
    1. GeoIP2 database (MaxMind) - for production use
    2. IP-API.com - HTTP API fallback for development

    Results (including "unknown") are cached in Redis when a client is given.
    Loopback, private and otherwise non-routable addresses resolve to an empty
    location without any lookup. Lookup failures are logged and also yield an
    empty location; this service never raises to its caller.

    Usage:
        service = GeoIPService.from_settings(settings, redis_client)
        location = await service.lookup("8.8.8.8")
        print(location.country, location.city)
    """

    def __init__(
        self,
        database_path: str = "",
        api_url: str = "http://ip-api.com/json",
        timeout: float = 2.0,
        cache: redis.Redis | None = None,
        cache_ttl: int = 24 * 60 * 60,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._geoip_reader: geoip2.database.Reader | None = None
        self._api_url = api_url.rstrip("/")
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

        if database_path:
            self._init_geoip2(database_path)

    @classmethod
    def from_settings(cls, settings: Settings, cache: redis.Redis | None = None) -> "GeoIPService":
        return cls(
            database_path=settings.geoip_database_path,
            api_url=settings.geoip_api_url,
            timeout=settings.geoip_timeout,
            cache=cache,
            cache_ttl=settings.geoip_cache_ttl,
        )

    def _init_geoip2(self, database_path: str) -> None:
        """Initialize GeoIP2 database reader."""
        path = Path(database_path)
        if not path.exists():
            logger.warning("GeoIP2 database not found", path=str(path))
            return
        self._geoip_reader = geoip2.database.Reader(str(path))
        logger.info("GeoIP2 database loaded", path=str(path))

    async def lookup(self, ip_address: str | None) -> GeoLocation:
        """Look up geographic location for an IP address."""
        if not ip_address or not self.is_public_ip(ip_address):
            return GeoLocation()

        cached = await self._get_cached(ip_address)
        if cached is not None:
            return cached

        if self._geoip_reader:
            location = self._lookup_geoip2(ip_address)
        else:
            location = await self._lookup_ip_api(ip_address)

        await self._set_cached(ip_address, location)
        return location

    @staticmethod
    def is_public_ip(ip_address: str) -> bool:
        """True for globally routable addresses; False for private, loopback or garbage."""
        try:
            return ipaddress.ip_address(ip_address.strip()).is_global
        except ValueError:
            return False

    def _lookup_geoip2(self, ip_address: str) -> GeoLocation:
        """Look up location using GeoIP2 database."""
        try:
            response = self._geoip_reader.city(ip_address)
        except (geoip2.errors.GeoIP2Error, ValueError) as e:
            logger.debug("GeoIP2 lookup failed", ip=ip_address, error=str(e))
            return GeoLocation()
        return GeoLocation(
            country=response.country.name or "",
            city=response.city.name or "",
        )

    async def _lookup_ip_api(self, ip_address: str) -> GeoLocation:
        """Look up location using the IP-API.com compatible HTTP endpoint.

        Note: IP-API has rate limits (45 requests/minute for free tier).
        Use GeoIP2 database for production.
        """
        try:
            response = await self._http.get(
                f"{self._api_url}/{ip_address}",
                params={"fields": "status,country,city"},
            )
            if response.status_code == 200:
                data = response.json()
                if data.get("status") == "success":
                    return GeoLocation(
                        country=data.get("country") or "",
                        city=data.get("city") or "",
                    )
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("IP-API lookup failed", ip=ip_address, error=str(e))

        return GeoLocation()

    async def _get_cached(self, ip_address: str) -> GeoLocation | None:
        if self._cache is None:
            return None
        try:
            data = await self._cache.get(f"{GEOIP_CACHE_PREFIX}{ip_address}")
        except redis.RedisError as e:
            logger.debug("GeoIP cache read failed", ip=ip_address, error=str(e))
            return None
        if data is None:
            return None
        return GeoLocation(**json.loads(data))

    async def _set_cached(self, ip_address: str, location: GeoLocation) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.set(
                f"{GEOIP_CACHE_PREFIX}{ip_address}",
                json.dumps(asdict(location)),
                ex=self._cache_ttl,
            )
        except redis.RedisError as e:
            logger.debug("GeoIP cache write failed", ip=ip_address, error=str(e))

    async def close(self) -> None:
        """Close the GeoIP2 database reader and the HTTP client."""
        if self._geoip_reader:
            self._geoip_reader.close()
            self._geoip_reader = None
        if self._owns_http_client:
            await self._http.aclose()
