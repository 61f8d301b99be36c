"""Structured logging, Prometheus metrics, and optional Sentry/OTLP export."""

import logging
import time
import uuid
from contextvars import ContextVar

import sentry_sdk
import structlog
from fastapi import FastAPI, Request, Response
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from sentry_sdk.integrations.fastapi import FastApiIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from shortlink.core.config import Settings

REQUEST_ID_HEADER = "X-Request-ID"

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
REDIRECT_COUNT = Counter("redirects_total", "Redirects served", ["source"])
LINK_OPERATIONS = Counter("link_operations_total", "Link creates and rollbacks", ["operation"])
RATE_LIMIT_REJECTIONS = Counter(
    "rate_limit_rejections_total",
    "Create requests rejected by the quota",
)
CLICKS_RECORDED = Counter("clicks_recorded_total", "Click events by outcome", ["result"])

# Prefixes of fixed routes; every other single-segment path is a short code
_FIXED_PATHS = ("/api/", "/metrics", "/docs", "/redoc", "/openapi.json")


def get_request_id() -> str | None:
    return request_id_ctx.get()


def normalize_endpoint(path: str) -> str:
    """Map a request path to a metric label with bounded cardinality."""
    for prefix in ("/api/v1/stats/", "/api/v1/debug/"):
        if path.startswith(prefix):
            return prefix + "{code}"
    if path == "/" or path.startswith(_FIXED_PATHS):
        return path
    return "/{code}"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id, then logs and measures it.

    The id comes from `X-Request-ID` when the client sends one. It is bound to
    the structlog context for the duration of the request and echoed back on
    the response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = request_id_ctx.set(request_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        elapsed = time.perf_counter() - started

        endpoint = normalize_endpoint(request.url.path)
        REQUEST_COUNT.labels(request.method, endpoint, response.status_code).inc()
        REQUEST_LATENCY.labels(request.method, endpoint).observe(elapsed)
        structlog.get_logger().info(
            "Request handled",
            status_code=response.status_code,
            duration_ms=round(elapsed * 1000, 2),
            client_ip=request.client.host if request.client else None,
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def configure_logging(debug: bool = False) -> None:
    """JSON logs through the stdlib root logger, with request context merged in."""
    logging.basicConfig(format="%(message)s", level=logging.DEBUG if debug else logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _init_sentry(settings: Settings) -> bool:
    if not settings.sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment="development" if settings.debug else "production",
        release=settings.app_version,
        traces_sample_rate=0.1,
        integrations=[FastApiIntegration(transaction_style="endpoint")],
        # Click events carry client IPs
        send_default_pii=False,
    )
    return True


def _init_tracing(app: FastAPI, settings: Settings) -> bool:
    if not settings.otlp_endpoint:
        return False
    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: "shortlink"}))
    exporter = OTLPSpanExporter(
        endpoint=settings.otlp_endpoint,
        insecure=not settings.otlp_endpoint.startswith("https://"),
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app, excluded_urls="metrics")
    return True


def setup_observability(app: FastAPI, settings: Settings) -> None:
    """Configure logging, error tracking and tracing, and mount `/metrics`."""
    configure_logging(settings.debug)
    sentry = _init_sentry(settings)
    tracing = _init_tracing(app, settings)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    structlog.get_logger().info("Observability configured", sentry=sentry, tracing=tracing)


def record_redirect(source: str) -> None:
    """Count a redirect by where the target came from (cache or store)."""
    REDIRECT_COUNT.labels(source=source).inc()


def record_link_operation(operation: str) -> None:
    LINK_OPERATIONS.labels(operation=operation).inc()


def record_rate_limited() -> None:
    RATE_LIMIT_REJECTIONS.inc()


def record_click(result: str) -> None:
    CLICKS_RECORDED.labels(result=result).inc()
