"""
Crypto news connector backed by the CryptoPanic posts API.

For every headline the publisher page is scraped for the full article.
The body of the stored document degrades in three steps:

    1. scraped article text (when the post links a publisher page)
    2. the aggregator's short description
    3. the headline alone

Headlines are processed sequentially and independently; a failure on
one post is logged and the rest of the batch continues.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from sintillio.config.settings import get_settings
from sintillio.errors import ConnectorError
from sintillio.ingestion.article_scraper import ArticleScraper
from sintillio.ingestion.base_connector import BaseConnector
from sintillio.ingestion.http_client import HTTPClient, RetryConfig
from sintillio.ingestion.schemas import CandidateDocument, CryptoNewsParams, Source
from sintillio.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

USER_AGENT = "Sintillio/1.0 (admin@example.com)"


def _parse_published_at(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def render_post_markdown(
    title: str,
    link: str,
    domain: str,
    description: str | None = None,
    body: str | None = None,
    currencies: list[dict[str, Any]] | None = None,
) -> str:
    """Synthesize the markdown document stored for a headline."""
    md = f"# {title}\n\n"
    if description:
        md += f"{description}\n\n"
    if body:
        md += f"## Article Content\n\n{body}\n\n"
    md += f"Source: [{domain}]({link})\n"

    if currencies:
        md += "\n## Related Cryptocurrencies\n\n"
        for currency in currencies:
            md += f"- {currency.get('title', '')} ({currency.get('code', '')})\n"

    return md


class CryptoNewsConnector(BaseConnector):
    """
    CryptoPanic ``/posts/`` integration with per-headline article scraping.

    The auth token travels in the query string, so every log line uses a
    redacted URL.
    """

    source = Source.CRYPTOPANIC
    display_name = "CryptoPanic"
    credential_env_var = "CRYPTOPANIC_API_KEY"

    def __init__(
        self,
        api_key: str | None,
        scraper: ArticleScraper | None = None,
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
            timeout=timeout or settings.crypto_timeout_seconds,
        )
        self._scraper = scraper or ArticleScraper()
        self._base_url = (base_url or settings.cryptopanic_base_url).rstrip("/")

    async def _fetch_raw(self, params: CryptoNewsParams, api_key: str) -> list[dict[str, Any]]:
        query = {
            "public": "true",
            "currencies": params.currencies,
            "filter": params.filter,
            "kind": params.kind,
            "regions": params.regions,
            "metadata": "true",
        }
        url = f"{self._base_url}/posts/"
        redacted = (
            f"{url}?auth_token=[REDACTED]&"
            + "&".join(f"{k}={v}" for k, v in query.items())
        )
        logger.info(f"Calling CryptoPanic API: {redacted}")

        async with HTTPClient(self._retry_config, timeout=self._timeout) as client:
            response = await client.get(
                url,
                params={"auth_token": api_key, **query},
                headers={"User-Agent": USER_AGENT},
                log_url=redacted,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ConnectorError(
                "CryptoPanic API request failed",
                status=response.status_code,
                status_text=response.reason_phrase,
                details="Response body is not valid JSON",
            ) from e

        results = payload.get("results") if isinstance(payload, dict) else None
        return list(results or [])[: params.limit]

    async def _transform(self, raw: dict[str, Any], params: CryptoNewsParams) -> CandidateDocument | None:
        title = (raw.get("title") or "").strip()
        if not title:
            return None

        logger.debug(f"Processing post: {title}")

        url = raw.get("url") or ""
        domain = raw.get("domain") or ""
        post_meta = raw.get("metadata") or {}
        description = post_meta.get("description") or ""
        currencies = raw.get("currencies") or []
        source_info = raw.get("source") or {}
        source_url = source_info.get("url")

        article = None
        if url and source_url:
            try:
                article = await self._scraper.scrape(source_url)
            except Exception as e:
                logger.warning(f"Scrape failed for {source_url}, using fallback: {e}")
                article = None

        if article is not None:
            body_text = article.text
            markdown = render_post_markdown(
                title, source_url, domain, description, article.text, currencies
            )
            outcome = "body"
        elif description:
            body_text = description
            markdown = render_post_markdown(title, url, domain, description, None, currencies)
            outcome = "description"
        else:
            body_text = title
            markdown = render_post_markdown(title, url, domain)
            outcome = "title"

        get_metrics().record_scrape(outcome)

        return CandidateDocument(
            source=Source.CRYPTOPANIC,
            title=title,
            description=description,
            url=url,
            markdown=markdown,
            published_at=_parse_published_at(raw.get("published_at")),
            body_text=body_text,
            storage_metadata={
                "source": Source.CRYPTOPANIC.value,
                "sourceMetadata": {
                    "domain": domain,
                    "source": source_info or None,
                    "currencies": currencies,
                    "kind": raw.get("kind"),
                    "originalId": raw.get("id"),
                },
                "image": post_meta.get("image"),
                "panic_score": raw.get("panic_score"),
            },
        )
