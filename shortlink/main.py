"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shortlink.api.redirect import router as redirect_router
from shortlink.api.v1.router import router as v1_router
from shortlink.core.config import get_settings
from shortlink.core.database import close_db, create_engine, create_session_factory, init_db
from shortlink.core.exceptions import register_exception_handlers
from shortlink.core.middleware import SecurityHeadersMiddleware
from shortlink.core.observability import RequestContextMiddleware, setup_observability
from shortlink.core.rate_limit import limiter
from shortlink.core.redis import close_redis, create_redis_client
from shortlink.services.geoip import GeoIPService

settings = get_settings()

# Get logger (will be configured by setup_observability)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the shared clients on startup and release them on shutdown.

    Handles already present on `app.state` (set by tests or an embedding
    process) are used as-is and left open on shutdown.
    """
    state = app.state
    owned: list[str] = []

    logger.info("Starting Shortlink API", version=settings.app_version)

    if getattr(state, "engine", None) is None:
        state.engine = create_engine(settings)
        owned.append("engine")
    if getattr(state, "session_factory", None) is None:
        state.session_factory = create_session_factory(state.engine)
    if getattr(state, "redis", None) is None:
        state.redis = create_redis_client(settings)
        owned.append("redis")
    if getattr(state, "geoip", None) is None:
        state.geoip = GeoIPService.from_settings(settings, cache=state.redis)
        owned.append("geoip")

    if settings.database_auto_create:
        await init_db(state.engine)
        logger.info("Database tables created")

    yield

    # Shutdown
    logger.info("Shutting down Shortlink API")
    if "geoip" in owned:
        await state.geoip.close()
    if "redis" in owned:
        await close_redis(state.redis)
    if "engine" in owned:
        await close_db(state.engine)
        logger.info("Database connections closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="URL shortener with cache-first redirects and click analytics",
        lifespan=lifespan,
    )

    # Set up observability (logging, tracing, metrics, Sentry)
    setup_observability(app, settings)
    register_exception_handlers(app)

    # Redirect throttle state and exception handler
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Middleware stack (last added = outermost)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        SecurityHeadersMiddleware,
        enable_hsts=not settings.debug,  # Enable HSTS in production
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Retry-After", "X-Request-ID"],
    )

    app.include_router(v1_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "Welcome to Shortlink", "version": settings.app_version}

    # Must come last: /{short_code} would otherwise shadow the fixed routes
    app.include_router(redirect_router)

    return app


app = create_app()
