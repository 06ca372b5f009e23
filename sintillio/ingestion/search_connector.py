"""
Web search/scrape connector backed by the Firecrawl search API.

The provider performs the page fetch and render; this connector only
forwards the caller's parameters verbatim and normalizes the results.

Stored row shape per result:
    content      markdown body ('' when markdown was not requested)
    metadata     {"links": [...], "originalMetadata": {...}}
"""

import logging
from typing import Any

from sintillio.config.settings import get_settings
from sintillio.errors import ConnectorError
from sintillio.ingestion.base_connector import BaseConnector
from sintillio.ingestion.http_client import HTTPClient, RetryConfig
from sintillio.ingestion.schemas import CandidateDocument, SearchParams, Source

logger = logging.getLogger(__name__)


class SearchConnector(BaseConnector):
    """
    Firecrawl ``/search`` integration.

    Usage:
        connector = SearchConnector(api_key=settings.firecrawl_api_key)
        docs = await connector.fetch(SearchParams(query="blockchain regulation", limit=5))
    """

    source = Source.FIRECRAWL
    display_name = "Firecrawl"
    credential_env_var = "FIRECRAWL_API_KEY"

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        retry_config: RetryConfig | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        super().__init__(
            api_key,
            retry_config=retry_config or RetryConfig(
                max_retries=settings.max_http_retries,
                max_backoff_seconds=settings.max_backoff_seconds,
            ),
            timeout=timeout or settings.search_timeout_seconds,
        )
        self._base_url = (base_url or settings.firecrawl_base_url).rstrip("/")

    async def _fetch_raw(self, params: SearchParams, api_key: str) -> list[dict[str, Any]]:
        logger.info(
            f"Firecrawl search: query={params.query!r} limit={params.limit} "
            f"formats={params.scrape_options.formats}"
        )
        async with HTTPClient(self._retry_config, timeout=self._timeout) as client:
            response = await client.post(
                f"{self._base_url}/search",
                json_body=params.to_provider_body(),
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
            )

        try:
            payload = response.json()
        except ValueError:
            payload = response.text[:500]
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(payload, dict) or payload.get("success") is not True or data is None:
            raise ConnectorError(
                "Firecrawl API returned an error",
                status=response.status_code,
                status_text=response.reason_phrase,
                details=payload,
            )

        # Providers occasionally overshoot the requested limit
        return list(data)[: params.limit]

    async def _transform(self, raw: dict[str, Any], params: SearchParams) -> CandidateDocument | None:
        url = raw.get("url") or ""
        if not url:
            logger.debug("Skipping Firecrawl result without url")
            return None

        provider_metadata = raw.get("metadata")
        title = raw.get("title") or (provider_metadata or {}).get("title") or url
        description = raw.get("description") or (provider_metadata or {}).get("description") or ""

        return CandidateDocument(
            source=Source.FIRECRAWL,
            title=title,
            description=description,
            url=url,
            markdown=raw.get("markdown"),
            links=raw.get("links"),
            html=raw.get("html") or raw.get("rawHtml"),
            screenshot=raw.get("screenshot"),
            metadata=provider_metadata,
            storage_metadata={
                "links": raw.get("links") or [],
                "originalMetadata": provider_metadata or {},
            },
        )
