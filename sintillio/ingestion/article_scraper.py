"""
Best-effort article body extraction for crypto headlines.

Fetches the publisher page with a short timeout and pulls the prose out
of it. Every failure (timeout, non-2xx, unparsable markup, nothing
found) yields None; callers fall back to the aggregator description.
"""

import logging
import re
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sintillio.ingestion.http_client import HTTPClient, HTTPClientError, RetryConfig

logger = logging.getLogger(__name__)

# Markup that never carries article prose
NON_CONTENT_TAGS = ["script", "style", "nav", "footer", "header", "aside"]

# Semantic containers tried first, in document order
CONTENT_SELECTORS = "article, .article, .post, .content, main"


class ScraperConfig(BaseSettings):
    """Article scraper settings, env prefix SCRAPER_."""

    model_config = SettingsConfigDict(
        env_prefix="SCRAPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    timeout_seconds: float = Field(default=10.0, gt=0, le=60)
    min_paragraph_chars: int = Field(default=100, ge=0)
    max_body_chars: int = Field(default=50_000, ge=1000)
    user_agent: str = "Mozilla/5.0 (compatible; CryptoNewsBot/1.0; +http://example.com)"


@dataclass
class ScrapedArticle:
    url: str
    text: str


def extract_article_text(html: str, min_paragraph_chars: int = 100) -> str:
    """
    Extract substantive prose from an HTML page.

    Non-content markup is dropped first. Text of semantic content
    containers is concatenated; if none exist, paragraphs longer than
    ``min_paragraph_chars`` are used instead.

    Returns:
        Extracted text, or "" when nothing qualified
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for element in soup(NON_CONTENT_TAGS):
        element.decompose()

    blocks = [
        text
        for el in soup.select(CONTENT_SELECTORS)
        if (text := el.get_text(" ", strip=True))
    ]

    if not blocks:
        blocks = [
            text
            for p in soup.find_all("p")
            if len(text := p.get_text(" ", strip=True)) > min_paragraph_chars
        ]

    body = "\n\n".join(blocks)
    return re.sub(r"[ \t]+", " ", body).strip()


class ArticleScraper:
    """
    Fetches publisher pages one at a time.

    Retries are disabled: the timeout bounds the whole attempt, and a slow
    publisher simply degrades that headline to its description.
    """

    def __init__(self, config: ScraperConfig | None = None):
        self.config = config or ScraperConfig()

    async def scrape(self, url: str) -> ScrapedArticle | None:
        """Return the extracted article, or None on any failure."""
        try:
            async with HTTPClient(
                RetryConfig(max_retries=0),
                timeout=self.config.timeout_seconds,
                follow_redirects=True,
            ) as client:
                response = await client.get(
                    url, headers={"User-Agent": self.config.user_agent}
                )
        except (HTTPClientError, httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Article fetch failed for {url}: {e}")
            return None

        try:
            text = extract_article_text(response.text, self.config.min_paragraph_chars)
        except Exception as e:
            logger.warning(f"Article parse failed for {url}: {e}")
            return None

        if not text:
            logger.debug(f"No article body found at {url}")
            return None

        return ScrapedArticle(url=url, text=text[: self.config.max_body_chars])
