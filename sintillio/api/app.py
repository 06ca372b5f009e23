"""
FastAPI application factory.

The lifespan starts tracing and the ledger reconciler when configured.
Every error leaves the API as `{"error", "details"}` JSON: pipeline errors
with their own status, validation errors as 400, anything else as 500.
"""

import time
import uuid
from contextlib import asynccontextmanager, nullcontext

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sintillio.api.dependencies import cleanup_dependencies, get_database
from sintillio.api.middleware.timeout import TimeoutMiddleware
from sintillio.api.routes import admin, crypto_news, embeddings, feed, health, search, twitter_feed
from sintillio.config.settings import get_settings
from sintillio.errors import PipelineError
from sintillio.ledger.reconciler import LedgerReconciler
from sintillio.ledger.repository import LedgerRepository
from sintillio.observability.logging import bind_request_context, clear_request_context
from sintillio.observability.tracing import get_tracer, is_tracing_enabled, setup_tracing

logger = structlog.get_logger(__name__)


def _validation_details(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query"))
        message = str(error.get("msg", "")).removeprefix("Value error, ")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Sintillio API starting up")

    settings = get_settings()
    if settings.tracing_enabled:
        setup_tracing(
            service_name=settings.otel_service_name,
            otlp_endpoint=settings.otel_exporter_otlp_endpoint,
        )

    reconciler: LedgerReconciler | None = None
    if settings.ledger_reconcile_interval_seconds > 0:
        try:
            database = await get_database()
            reconciler = LedgerReconciler(LedgerRepository(database))
            reconciler.start()
        except Exception as e:
            logger.warning("Failed to start ledger reconciler: %s", e)
            reconciler = None

    yield

    logger.info("Sintillio API shutting down")
    if reconciler is not None:
        await reconciler.stop()
    await cleanup_dependencies()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    openapi_tags = [
        {"name": "health", "description": "Service health checks"},
        {"name": "acquisition", "description": "Web search and crypto news acquisition"},
        {"name": "embeddings", "description": "Embedding generation and publication"},
        {"name": "feed", "description": "Published content and tweet lists"},
        {"name": "admin", "description": "Administrator tools"},
    ]

    app = FastAPI(
        title="Sintillio Pipeline API",
        description="""
Content acquisition and publication pipeline.

## Flow

1. `POST /search` or `GET /crypto-news` records an acquisition and stores its results
2. `POST /embeddings` embeds the stored results and publishes them
3. `GET /feed` serves published content

## Authentication

Requires `Authorization: Bearer <token>` for all requests except `/health`.
Acquisition, embedding and admin endpoints also require admin privilege.
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
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    # Added before the request middleware below, so it runs inside it and the
    # 504 response still gets a request id and an access log line.
    if settings.request_timeout_seconds > 0:
        app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        bind_request_context(request_id)
        span_scope = (
            get_tracer("sintillio.api").start_as_current_span(
                f"{request.method} {request.url.path}",
                attributes={"http.method": request.method, "http.request_id": request_id},
            )
            if is_tracing_enabled()
            else nullcontext()
        )

        started = time.perf_counter()
        try:
            with span_scope as span:
                response = await call_next(request)
                elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
                if span is not None:
                    span.set_attributes(
                        {"http.status_code": response.status_code, "http.duration_ms": elapsed_ms}
                    )

            response.headers["X-Request-ID"] = request_id
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=elapsed_ms,
            )
            return response
        finally:
            clear_request_context()

    if settings.rate_limit_enabled:
        from slowapi.errors import RateLimitExceeded

        from sintillio.api.rate_limit import limiter

        app.state.limiter = limiter

        @app.exception_handler(RateLimitExceeded)
        async def rate_limited_handler(request: Request, exc: RateLimitExceeded):
            logger.info("rate_limited", path=request.url.path, limit=str(exc.detail))
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests", "details": f"Rate limit exceeded: {exc.detail}"},
            )

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(request: Request, exc: PipelineError):
        if exc.status_code >= 500:
            logger.error("request_failed", error=exc.error, details=exc.details, path=request.url.path)
        else:
            logger.info("request_rejected", status_code=exc.status_code, error=exc.error)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": _validation_details(exc)},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_exception", path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "An unexpected error occurred", "details": str(exc)},
        )

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(search.router, tags=["acquisition"])
    app.include_router(crypto_news.router, tags=["acquisition"])
    app.include_router(embeddings.router, tags=["embeddings"])
    app.include_router(feed.router, tags=["feed"])
    app.include_router(twitter_feed.router, tags=["feed"])
    app.include_router(admin.router, tags=["admin"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Sintillio Pipeline API",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app
