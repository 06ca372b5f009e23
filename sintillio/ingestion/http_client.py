"""
HTTP transport shared by the source connectors and the article scraper.

``HTTPClient`` wraps ``httpx.AsyncClient`` with an explicit timeout and a
bounded retry loop: 429, transient 5xx and transport failures are retried
with exponential backoff, everything else surfaces immediately as
``HTTPClientError``. Connectors translate that into ``ConnectorError``;
nothing here knows about providers.

Some providers (CryptoPanic) take their credential in the query string, so
callers can pass a redacted ``log_url`` that is used in every log line and
error message instead of the real URL.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
RETRYABLE_EXCEPTIONS = (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError)


@dataclass
class RetryConfig:
    """
    Backoff policy.

    Delay for attempt ``n`` (0-indexed) is
    ``min(max_backoff_seconds, base_delay * 2**n)`` plus up to
    ``jitter_factor`` of that as random jitter. A numeric ``Retry-After``
    header on a 429 replaces the computed delay, still capped.
    """

    max_retries: int = 2
    max_backoff_seconds: float = 10.0
    base_delay: float = 0.5
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        return delay + delay * self.jitter_factor * random.random()

    def backoff_for(self, attempt: int, response: httpx.Response | None = None) -> float:
        if response is not None and response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "")
            if retry_after.isdigit():
                return min(float(retry_after), self.max_backoff_seconds)
        return self.calculate_backoff(attempt)

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in RETRYABLE_STATUSES

    def is_retryable_exception(self, exc: Exception) -> bool:
        return isinstance(exc, RETRYABLE_EXCEPTIONS)


class HTTPClientError(Exception):
    """
    A request that ended without a success response.

    ``status_code``, ``reason_phrase`` and ``response_body`` are None when
    no response arrived (timeout, refused connection).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        reason_phrase: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
        self.reason_phrase = reason_phrase

    @classmethod
    def from_response(cls, response: httpx.Response, message: str) -> "HTTPClientError":
        return cls(
            message,
            status_code=response.status_code,
            response_body=response.text,
            reason_phrase=response.reason_phrase,
        )


class RateLimitError(HTTPClientError):
    """Still rate limited (429) after the last retry."""


class HTTPClient:
    """
    Retrying async HTTP client; use as an async context manager.

    Example:
        async with HTTPClient(RetryConfig(max_retries=2), timeout=20.0) as client:
            response = await client.get(
                "https://cryptopanic.com/api/v1/posts/",
                params={"auth_token": key, "currencies": "BTC"},
                log_url="https://cryptopanic.com/api/v1/posts/?auth_token=[REDACTED]",
            )
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
        follow_redirects: bool = False,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self.follow_redirects = follow_redirects
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=self.follow_redirects)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        log_url: str | None = None,
    ) -> httpx.Response:
        """
        GET with retries.

        Raises:
            HTTPClientError: non-retryable status or transport failure, or
                retries exhausted
            RateLimitError: still 429 after the last retry
        """
        return await self._send("GET", url, params=params, headers=headers, log_url=log_url)

    async def post(
        self,
        url: str,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self._send("POST", url, headers=headers, json_body=json_body)

    async def _send(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        log_url: str | None = None,
    ) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("HTTPClient must be used as async context manager")

        shown_url = log_url or url
        policy = self.retry_config
        attempt = 0

        while True:
            final = attempt >= policy.max_retries
            try:
                response = await self._client.request(
                    method, url, params=params or None, headers=headers or None, json=json_body
                )
            except RETRYABLE_EXCEPTIONS as e:
                if final:
                    raise HTTPClientError(
                        f"Request to {shown_url} failed after {attempt + 1} attempts: {type(e).__name__}"
                    ) from e
                reason = type(e).__name__
                delay = policy.backoff_for(attempt)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise HTTPClientError(f"Request to {shown_url} failed: {type(e).__name__}") from e
            else:
                if response.status_code < 400:
                    return response
                if not policy.is_retryable_status(response.status_code):
                    raise HTTPClientError.from_response(
                        response, f"{method} {shown_url} returned {response.status_code}"
                    )
                if final:
                    error_cls = RateLimitError if response.status_code == 429 else HTTPClientError
                    raise error_cls.from_response(
                        response,
                        f"{method} {shown_url} returned {response.status_code} after {attempt + 1} attempts",
                    )
                reason = f"status {response.status_code}"
                delay = policy.backoff_for(attempt, response)

            logger.warning(
                "Retrying %s %s after %s (attempt %d/%d, sleeping %.2fs)",
                method,
                shown_url,
                reason,
                attempt + 1,
                policy.max_retries + 1,
                delay,
            )
            await asyncio.sleep(delay)
            attempt += 1
