"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import api_router
from app.config import Settings, get_settings
from app.core.exceptions import AppException
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.database import Database
from app.gateways.simulated import SimulatedVerifier
from app.services.booking_cache import BookingCache
from app.services.booking_service import BookingService
from app.services.booking_store import BookingStore
from app.services.notification_service import EmailNotifier
from app.services.profile_service import ProfileService
from app.services.realtime import ChangeFeed

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open every collaborator at startup and close it at shutdown."""
    settings: Settings = app.state.settings

    # Startup
    database = Database(
        settings.database_url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    database.connect()
    if settings.auto_create_tables:
        await database.create_all()

    retry = {
        "retry_attempts": settings.retry_max_attempts,
        "retry_initial_delay": settings.retry_initial_delay_seconds,
        "retry_backoff_factor": settings.retry_backoff_factor,
    }
    feed = ChangeFeed(queue_size=settings.realtime_queue_size)
    http_client = httpx.AsyncClient(timeout=settings.email_timeout_seconds)
    verifier = SimulatedVerifier(delay_seconds=settings.payment_validation_delay_seconds)
    store = BookingStore(database, feed, **retry)
    profiles = ProfileService(database, feed, **retry)
    cache = BookingCache(store, max_entries=settings.booking_cache_size)
    cache.start(feed)

    app.state.database = database
    app.state.change_feed = feed
    app.state.http_client = http_client
    app.state.payment_verifier = verifier
    app.state.booking_store = store
    app.state.profile_service = profiles
    app.state.booking_cache = cache
    app.state.booking_service = BookingService(
        store=store,
        profiles=profiles,
        verifier=verifier,
        notifier=EmailNotifier(
            http_client,
            function_url=settings.email_function_url,
            function_key=settings.email_function_key,
            timeout=settings.email_timeout_seconds,
        ),
        cache=cache,
        call_link_base_url=settings.call_link_base_url,
        default_timezone=settings.default_timezone,
        min_hours=Decimal(str(settings.min_booking_hours)),
        max_hours=Decimal(str(settings.max_booking_hours)),
        step_hours=Decimal(str(settings.booking_hours_step)),
        validation_timeout=timedelta(seconds=settings.payment_validation_timeout_seconds),
    )
    logger.info(f"{settings.app_name} {settings.app_version} started ({settings.environment})")

    yield

    # Shutdown
    await cache.stop()
    feed.close()
    await verifier.close()
    await http_client.aclose()
    await database.dispose()


def create_application(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="DevCall - paid developer consultations API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Exception handlers
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Render application errors as their kind and message."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": exc.code},
            headers=exc.headers,
        )

    # Middleware (order matters - first added = last executed)
    # 1. Security headers (outermost)
    app.add_middleware(
        SecurityHeadersMiddleware,
        hsts=settings.environment == "production",
        api_prefix=settings.api_prefix,
    )

    # 2. Request logging
    app.add_middleware(RequestLoggingMiddleware)

    # 3. CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 4. Gzip compression (innermost)
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Include API routes
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @app.get("/")
    async def root() -> dict:
        """Root endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs" if settings.debug else None,
        }

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
    )
