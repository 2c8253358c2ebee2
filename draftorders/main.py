"""Draft Order Service - Main Application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from draftorders.cache import IdempotencyStore, build_cache
from draftorders.config import Settings, get_settings
from draftorders.observability import RequestSampler
from draftorders.orders.service import DraftOrderService
from draftorders.pricing.resolver import PriceResolver
from draftorders.routes import draft_orders_router
from draftorders.upstream.client import UpstreamClient

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

HEALTH_PATHS = ("/healthz", "/health")


class HealthCheckLogFilter(logging.Filter):
    """Drop uvicorn access lines for health check polling."""

    def filter(self, record: logging.LogRecord) -> bool:
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            return args[2] not in HEALTH_PATHS
        return True


logging.getLogger("uvicorn.access").addFilter(HealthCheckLogFilter())


def build_components(app: FastAPI, settings: Settings) -> None:
    """Create the cache, upstream client and services and attach them to app.state."""
    cache = build_cache(settings.redis_url)
    client = UpstreamClient(
        api_url=settings.admin_api_url,
        access_token=settings.admin_api_token,
        timeout=settings.upstream_timeout_seconds,
        max_attempts=settings.upstream_max_attempts,
        backoff_base_seconds=settings.upstream_backoff_base_ms / 1000,
    )
    resolver = PriceResolver(
        client,
        cache,
        ttl_seconds=settings.cache_ttl_seconds,
        max_batch_size=settings.max_batch_size,
    )
    idempotency = IdempotencyStore(cache, ttl_seconds=settings.idempotency_ttl_seconds)

    app.state.cache = cache
    app.state.upstream_client = client
    app.state.draft_order_service = DraftOrderService(
        client,
        resolver,
        idempotency,
        default_note=settings.draft_note,
        default_tag=settings.draft_tag,
    )
    app.state.request_sampler = RequestSampler(settings.request_log_interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Draft Order Service...")
    if not settings.shop or not settings.admin_api_token:
        logger.warning("SHOP or ADMIN_API_TOKEN is not set; upstream calls will fail")
    build_components(app, settings)
    yield
    logger.info("Shutting down...")
    await app.state.upstream_client.close()
    await app.state.cache.close()


app = FastAPI(
    title="Draft Order Service",
    description="""
    Prices fabric orders against the Shopify catalog and creates draft orders.

    - Lines priced at or below the catalog keep their variant and get a per-unit discount
    - Lines priced above the catalog become custom lines at the desired price
    - `prevDraftId` replaces the lines of an existing draft (sticky draft)
    - `idempotencyKey` makes retries return the original draft
    """,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins or ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Answer 500 for errors the routes do not map to a status."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.include_router(draft_orders_router)


# Health endpoints
@app.get("/healthz", tags=["Health"], response_class=PlainTextResponse)
async def healthz():
    """Liveness check."""
    return "ok"


@app.get("/health", tags=["Health"])
async def health():
    """Basic health check."""
    return {"status": "healthy"}


@app.get("/", tags=["Root"])
async def root():
    """API root - returns basic info."""
    return {
        "name": "Draft Order Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }
