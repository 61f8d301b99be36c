import os

# Settings are read once per process; pin them before shortlink is imported.
os.environ["DOMAIN"] = "https://sho.rt"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
os.environ["RATE_LIMIT_QUOTA"] = "5"
os.environ["RATE_LIMIT_WINDOW_SECONDS"] = "1800"
os.environ["GEOIP_DATABASE_PATH"] = ""
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""
os.environ["SENTRY_DSN"] = ""
os.environ["OTLP_ENDPOINT"] = ""

import fakeredis
import fakeredis.aioredis
import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from shortlink.core.config import get_settings
from shortlink.core.database import create_session_factory, init_db
from shortlink.main import create_app
from shortlink.services.geoip import GeoIPService
from shortlink.services.link_cache import LinkCache

GEO_API_URL = "http://geo.test/json"

# Canned answers of the geolocation HTTP API
GEO_RESULTS = {
    "8.8.8.8": {"status": "success", "country": "United States", "city": "Mountain View"},
    "81.2.69.142": {"status": "success", "country": "United Kingdom", "city": "London"},
    "1.1.1.1": {"status": "success", "country": "Australia", "city": "Sydney"},
}


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
async def redis_client():
    client = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'shortlink.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def link_cache(redis_client):
    return LinkCache(redis_client)


@pytest.fixture
def geo_requests():
    """IPs the geolocation API was asked about, in order."""
    return []


@pytest.fixture
async def geoip(redis_client, geo_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        ip = request.url.path.rsplit("/", 1)[-1]
        geo_requests.append(ip)
        return httpx.Response(200, json=GEO_RESULTS.get(ip, {"status": "fail"}))

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    service = GeoIPService(api_url=GEO_API_URL, cache=redis_client, http_client=http_client)
    yield service
    await service.close()
    await http_client.aclose()


@pytest.fixture
def app(engine, session_factory, redis_client, geoip):
    application = create_app()
    application.state.engine = engine
    application.state.session_factory = session_factory
    application.state.redis = redis_client
    application.state.geoip = geoip
    return application


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
async def auth_headers(client):
    """Register a user, log in, and return a bearer Authorization header."""
    await client.post(
        "/api/v1/register",
        json={"email": "alice@acme.io", "password": "s3cret-pass", "name": "Alice"},
    )
    response = await client.post(
        "/api/v1/login",
        json={"email": "alice@acme.io", "password": "s3cret-pass"},
    )
    return {"Authorization": f"Bearer {response.json()['token']}"}
