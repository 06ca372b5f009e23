"""
OpenTelemetry tracing for acquisition and embedding runs.

Spans:
- ``<METHOD> <path>`` per HTTP request (API middleware)
- ``<source>.fetch`` per connector call, with ``items.*`` counts
- ``embedding.generate`` per embedding run, with ``embedding.*`` counts

Tracing stays a no-op until ``setup_tracing`` installs a provider, so
library code can call ``get_tracer`` unconditionally.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Span, StatusCode, Tracer

logger = logging.getLogger(__name__)

_tracing_enabled = False


def setup_tracing(
    service_name: str,
    otlp_endpoint: str | None = None,
    *,
    exporter: SpanExporter | None = None,
) -> TracerProvider:
    """
    Install the global TracerProvider.

    Without an explicit exporter spans are batched to an OTLP gRPC collector.
    A supplied exporter (tests use ``InMemorySpanExporter``) gets a
    synchronous processor so spans are visible as soon as they end.
    """
    global _tracing_enabled

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
    else:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        endpoint = otlp_endpoint or "http://localhost:4317"
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
        )

    trace.set_tracer_provider(provider)
    _tracing_enabled = True
    logger.info("Tracing enabled for %s", service_name)
    return provider


def get_tracer(name: str) -> Tracer:
    return trace.get_tracer(name)


def is_tracing_enabled() -> bool:
    return _tracing_enabled


@contextmanager
def traced(
    tracer: Tracer,
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Open a span; an exception marks it failed and propagates."""
    with tracer.start_as_current_span(
        name,
        attributes=attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(StatusCode.ERROR, f"{type(exc).__name__}: {exc}")
            raise


def record_counts(span: Span, prefix: str, **counts: int) -> None:
    """Set ``<prefix>.<name>`` integer attributes, e.g. ``items.returned``."""
    span.set_attributes({f"{prefix}.{name}": value for name, value in counts.items()})


def add_trace_context(logger_: Any, method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Structlog processor adding ``trace_id``/``span_id`` inside a span."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict
