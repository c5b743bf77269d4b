"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (tables, Redis, upload dir).
Middleware, exception handlers, and routers all registered here.

The push-channel registry, the broadcaster, the blob store and the webhook
notifier are built per app and hung on app.state, so tests get fresh ones
with every create_app() call and routes reach them through dependencies.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from akcent import __version__
from akcent.api import api_router
from akcent.config import settings
from akcent.services.errors import ServiceError

logger = structlog.get_logger()

_LOCATION_PARTS = {"body", "query", "path", "header", "cookie"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown.
    """
    logger.info(
        "akcent.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from akcent.db.engine import create_tables, engine
    await create_tables()
    app.state.blob_store.ensure_root()

    # Redis backs rate limiting only — the app works without it
    from akcent.db.redis import close_redis, init_redis
    try:
        await init_redis()
        logger.info("akcent.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("akcent.redis_unavailable", error=str(e))

    yield

    logger.info("akcent.shutdown", realtime_clients=len(app.state.registry))
    await close_redis()
    await engine.dispose()


# ─── Exception handlers ──────────────────────────────────


def _field_name(loc) -> str:
    return ".".join(str(p) for p in loc if p not in _LOCATION_PARTS) or "body"


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Every violation at once, as 400 rather than FastAPI's default 422."""
    errors = [
        {"field": _field_name(err.get("loc", ())), "message": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Validation failed", "errors": errors})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("http.unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Akcent Dashboard",
        description="Role-gated file dashboard with a realtime event channel",
        version=__version__,
        lifespan=lifespan,
    )

    from akcent.realtime.broadcaster import EventBroadcaster
    from akcent.realtime.registry import ConnectionRegistry
    from akcent.services.webhook_service import WebhookNotifier
    from akcent.storage.blob import BlobStore

    app.state.registry = ConnectionRegistry()
    app.state.broadcaster = EventBroadcaster(app.state.registry)
    app.state.blob_store = BlobStore(settings.upload_dir, settings.max_upload_bytes)
    app.state.notifier = WebhookNotifier(timeout=settings.webhook_timeout_seconds)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.

    from akcent.middleware.rate_limit import RateLimitMiddleware
    from akcent.middleware.request_id import RequestIdMiddleware
    from akcent.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Mount API routes
    app.include_router(api_router)

    # Mount the push channel
    from akcent.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: akcent.main:app)
app = create_app()
