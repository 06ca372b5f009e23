"""
Request timeout middleware.

A provider that accepts the connection and then stalls would otherwise hold
the request open until the client gives up. Routes under ``exempt_paths``
run unbounded: ``/health`` must answer even when the deadline is tiny, and
an ``/embeddings`` run embeds every stored row of a query. A
``/crypto-news`` run scrapes and embeds each headline in turn, so a
deadline would cut it off partway.
"""

import asyncio

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

DEFAULT_EXEMPT_PATHS = ("/health", "/embeddings", "/crypto-news")


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Answer 504 when a request outlives ``timeout_seconds``."""

    def __init__(
        self,
        app,
        timeout_seconds: float = 120.0,
        exempt_paths: tuple[str, ...] = DEFAULT_EXEMPT_PATHS,
    ):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds
        self.exempt_paths = exempt_paths

    def is_exempt(self, path: str) -> bool:
        return path.startswith(self.exempt_paths)

    async def dispatch(self, request: Request, call_next):
        if self.is_exempt(request.url.path):
            return await call_next(request)

        try:
            async with asyncio.timeout(self.timeout_seconds):
                return await call_next(request)
        except TimeoutError:
            logger.warning(
                "request_deadline_exceeded",
                method=request.method,
                path=request.url.path,
                deadline_seconds=self.timeout_seconds,
            )
            return JSONResponse(
                status_code=504,
                content={
                    "error": "Request timed out",
                    "details": f"No response within {self.timeout_seconds}s",
                },
            )
