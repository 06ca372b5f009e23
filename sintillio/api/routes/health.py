"""
Health check endpoint.

No authentication. The database decides between healthy and unhealthy;
Redis only backs the embedding cache and rate limits, so losing it (or
running without an identity provider) degrades the service.
"""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import APIRouter, Depends

from sintillio.api.dependencies import get_database, get_embedding_service, get_redis_client
from sintillio.api.models import ComponentHealth, HealthResponse
from sintillio.config.settings import get_settings
from sintillio.embedding.service import EmbeddingService
from sintillio.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _probe(check: Callable[[], Awaitable[object]]) -> ComponentHealth:
    """Run ``check`` and time it; a falsy result or an exception is unhealthy."""
    start = time.perf_counter()
    details = None
    try:
        ok = bool(await check())
    except Exception as e:
        ok = False
        details = {"error": str(e)}
    return ComponentHealth(
        status="healthy" if ok else "unhealthy",
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
        details=details,
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Database, Redis and provider configuration status.",
)
async def health_check(
    db: Database = Depends(get_database),
    redis_client=Depends(get_redis_client),
    service: EmbeddingService = Depends(get_embedding_service),
) -> HealthResponse:
    settings = get_settings()

    components = {
        "database": await _probe(db.health_check),
        "redis": await _probe(redis_client.ping),
        "identity_provider": ComponentHealth(
            status="healthy" if settings.identity_configured else "not_configured"
        ),
    }

    if components["database"].status != "healthy":
        overall = "unhealthy"
    elif any(c.status != "healthy" for c in components.values()):
        overall = "degraded"
    else:
        overall = "healthy"

    if overall != "healthy":
        logger.warning("health_check_degraded", status=overall)

    return HealthResponse(
        status=overall,
        components=components,
        providers={
            "firecrawl": settings.firecrawl_configured,
            "cryptopanic": settings.cryptopanic_configured,
            "rapidapi": settings.rapidapi_configured,
        },
        embedding=service.get_stats(),
    )
