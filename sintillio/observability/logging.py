"""
Structured logging for the pipeline.

Production writes one JSON object per line; development uses structlog's
console renderer. The HTTP middleware binds ``request_id``, the caller
dependency binds ``user_id`` and acquisition runs bind ``query_id`` on
their own loggers, so one acquisition can be followed end to end.

Provider credentials travel in headers and, for CryptoPanic, in the query
string. ``redact_secrets`` masks them if they ever end up in an event.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from sintillio.config.settings import get_settings

SECRET_KEYS = frozenset(
    {"auth_token", "api_key", "apikey", "authorization", "x-rapidapi-key", "service_key"}
)
REDACTED = "[REDACTED]"


def redact_secrets(logger_: Any, method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Structlog processor masking credential-bearing keys."""
    for key in event_dict:
        if key.lower() in SECRET_KEYS and event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging() -> None:
    """
    Configure structlog and route stdlib logging through the same handler.

    Library modules log with ``logging.getLogger(__name__)``; the API and
    service layers use ``structlog.get_logger``. Both end up on stdout.
    """
    settings = get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
    ]

    if settings.tracing_enabled:
        from sintillio.observability.tracing import add_trace_context

        shared_processors.append(add_trace_context)

    if settings.is_production:
        renderer: Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    # httpx logs full request URLs, including the CryptoPanic token
    for name in ("httpx", "httpcore", "asyncio", "transformers", "asyncpg"):
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(request_id: str) -> None:
    structlog.contextvars.bind_contextvars(request_id=request_id)


def bind_caller(user_id: str) -> None:
    """Attach the authenticated caller to every later log line of the request."""
    structlog.contextvars.bind_contextvars(user_id=user_id)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
