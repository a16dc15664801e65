"""
FastAPI application factory for the admin API.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.dependencies import (
    cleanup_dependencies,
    get_credential_pool,
    get_data_source_service,
)
from src.api.models import error_body
from src.api.routes import credentials, data_sources, health, keywords, sync
from src.config.settings import get_settings
from src.credentials.config import CredentialsConfig
from src.observability.logging import bind_context, clear_context
from src.sources.config import SourcesConfig
from src.sync.errors import SyncError, UpstreamError

logger = structlog.get_logger(__name__)


async def _bootstrap() -> None:
    """Seed default sources and mirror the env cookie into the credential pool."""
    settings = get_settings()

    if SourcesConfig().seed_on_init:
        service = await get_data_source_service()
        await service.ensure_seeded()

    if settings.bilibili_cookie and CredentialsConfig().register_env_cookie:
        pool = await get_credential_pool()
        await pool.register_env("bilibili", settings.bilibili_cookie)
        logger.info("Registered BILIBILI_COOKIE in the credential pool")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Admin API starting up")

    try:
        await _bootstrap()
    except Exception as e:
        logger.warning("Startup bootstrap failed, continuing without it", error=str(e))

    yield

    logger.info("Admin API shutting down")
    await cleanup_dependencies()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    openapi_tags = [
        {"name": "health", "description": "Service liveness"},
        {"name": "data-sources", "description": "Source config, sync, health checks and logs"},
        {"name": "sync", "description": "Keyword-driven syncs"},
        {"name": "credentials", "description": "Credential pool management"},
        {"name": "keywords", "description": "Keyword subscriptions"},
    ]

    app = FastAPI(
        title="Embodied Sync Admin API",
        description="""
Admin API for the embodied-AI content sync engine.

Syncs papers, repositories, models, videos and news from external
providers into the content store, and tracks per-source health.

## Responses

Every endpoint answers with `{code, message, data}`; `code` is 0 on
success and the HTTP status otherwise.

## Authentication

Requires `X-API-KEY` header for all requests except `/health`.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )

    # CORS (origins from CORS_ORIGINS env var, comma-separated)
    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Request logging and correlation ID
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        bind_context(request_id=request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response
        finally:
            clear_context()

    # Rate limiting (opt-in via RATE_LIMIT_ENABLED=true)
    if settings.rate_limit_enabled:
        from slowapi import _rate_limit_exceeded_handler
        from slowapi.errors import RateLimitExceeded

        from src.api.rate_limit import limiter

        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Exception handlers
    @app.exception_handler(SyncError)
    async def sync_error_handler(request: Request, exc: SyncError):
        data = None
        if isinstance(exc, UpstreamError):
            data = {
                "kind": exc.kind,
                "retryable": exc.retryable,
                "attempts": exc.attempts,
                "upstream_status": exc.status_code,
                "request_url": exc.request_url,
            }
        log = logger.warning if exc.http_status < 500 else logger.error
        log("Request failed", error_type=type(exc).__name__, error=str(exc))
        return JSONResponse(
            status_code=exc.http_status,
            content=error_body(exc.http_status, str(exc), data),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=error_body(422, "Request validation failed", errors),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body(500, "Internal server error"),
        )

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(data_sources.router, tags=["data-sources"])
    app.include_router(sync.router, tags=["sync"])
    app.include_router(credentials.router, tags=["credentials"])
    app.include_router(keywords.router, tags=["keywords"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Embodied Sync Admin API",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app
