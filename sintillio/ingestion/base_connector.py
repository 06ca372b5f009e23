"""
Base connector interface shared by the source integrations.

A connector is a request/response adapter: it turns pipeline parameters
into one provider call and the provider payload into normalized items.
Subclasses implement:
    - _fetch_raw(): call the provider, return its raw items
    - _transform(): map one raw item (None filters it out)

The base class handles:
    - Credential presence check before any request
    - Translation of HTTP failures into ConnectorError
    - Per-item failure isolation, so one bad item never aborts a batch
    - Latency/error metrics, tracing span and a summary log line
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from sintillio.errors import ConfigurationError, ConnectorError
from sintillio.ingestion.http_client import HTTPClientError, RetryConfig
from sintillio.ingestion.schemas import Source
from sintillio.observability.metrics import get_metrics
from sintillio.observability.tracing import get_tracer, record_counts, traced

logger = logging.getLogger(__name__)

_tracer = get_tracer("sintillio.ingestion")


@dataclass
class ConnectorStats:
    """Statistics for a connector run."""

    items_received: int = 0
    items_returned: int = 0
    items_filtered: int = 0
    errors: int = 0
    start_time: float = field(default_factory=time.monotonic)

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.start_time


def describe_error_body(body: str | None, status: int | None, reason: str | None) -> Any:
    """
    Best-effort rendering of an upstream error body.

    JSON bodies are re-serialized compactly; anything else falls back to
    ``"Status <code>: <reason>"``.
    """
    if body:
        try:
            return json.dumps(json.loads(body))
        except ValueError:
            pass
    if status is None:
        return "No response from provider"
    return f"Status {status}: {reason or ''}".rstrip()


class BaseConnector(ABC):
    """
    Abstract base class for source connectors.

    Args:
        api_key: Provider credential; None means not configured
        retry_config: Retry behaviour for provider calls
        timeout: Explicit per-request timeout in seconds
    """

    source: Source
    display_name: str
    credential_env_var: str
    failure_message: str | None = None

    def __init__(
        self,
        api_key: str | None,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
    ):
        self._api_key = api_key
        self._retry_config = retry_config or RetryConfig()
        self._timeout = timeout
        self._stats = ConnectorStats()

    @property
    def name(self) -> str:
        return f"{self.source.value}_connector"

    @property
    def stats(self) -> ConnectorStats:
        return self._stats

    def require_api_key(self) -> str:
        """Return the credential or raise ConfigurationError without touching the network."""
        if not self._api_key:
            raise ConfigurationError(
                f"{self.display_name} API key not configured",
                f"The {self.credential_env_var} environment variable is not set",
            )
        return self._api_key

    @abstractmethod
    async def _fetch_raw(self, params: Any, api_key: str) -> list[dict[str, Any]]:
        """Call the provider and return its raw items. HTTPClientError propagates."""
        ...

    @abstractmethod
    async def _transform(self, raw: dict[str, Any], params: Any) -> Any | None:
        """Map one raw provider item. May raise; the base class isolates failures."""
        ...

    def _connector_error(self, exc: HTTPClientError) -> ConnectorError:
        return ConnectorError(
            self.failure_message or f"{self.display_name} API request failed",
            status=exc.status_code,
            status_text=exc.reason_phrase,
            details=describe_error_body(exc.response_body, exc.status_code, exc.reason_phrase)
            if exc.status_code is not None
            else str(exc),
        )

    async def fetch(self, params: Any) -> list[Any]:
        """
        Fetch and transform items from the provider.

        Raises:
            ConfigurationError: credential missing (no request made)
            ConnectorError: provider returned a non-success response
        """
        api_key = self.require_api_key()
        metrics = get_metrics()
        self._stats = ConnectorStats()

        logger.info(f"Starting fetch for {self.name}")

        with traced(_tracer, f"{self.source.value}.fetch") as span:
            try:
                raw_items = await self._fetch_raw(params, api_key)
            except HTTPClientError as e:
                metrics.record_connector_error(self.source.value, type(e).__name__)
                logger.error(
                    f"{self.name} upstream failure: status={e.status_code} {e}"
                )
                raise self._connector_error(e) from e
            finally:
                metrics.record_connector_latency(
                    self.source.value, self._stats.elapsed_seconds
                )

            self._stats.items_received = len(raw_items)
            items: list[Any] = []
            for raw in raw_items:
                try:
                    item = await self._transform(raw, params)
                except Exception as e:
                    self._stats.errors += 1
                    metrics.record_connector_error(self.source.value, "transform")
                    logger.error(
                        f"Error transforming item in {self.name}: {e}",
                        exc_info=True,
                    )
                    continue

                if item is None:
                    self._stats.items_filtered += 1
                    continue

                items.append(item)

            self._stats.items_returned = len(items)
            record_counts(
                span,
                "items",
                received=self._stats.items_received,
                returned=self._stats.items_returned,
                filtered=self._stats.items_filtered,
                errors=self._stats.errors,
            )

        logger.info(
            f"Completed fetch for {self.name}: "
            f"received={self._stats.items_received}, "
            f"returned={self._stats.items_returned}, "
            f"filtered={self._stats.items_filtered}, "
            f"errors={self._stats.errors}, "
            f"elapsed={self._stats.elapsed_seconds:.2f}s"
        )
        return items
