"""Fixtures for connector tests."""

from unittest.mock import AsyncMock

import pytest

from sintillio.ingestion.article_scraper import ArticleScraper, ScrapedArticle


@pytest.fixture
def stub_scraper():
    """ArticleScraper double that finds no article unless told otherwise."""
    scraper = AsyncMock(spec=ArticleScraper)
    scraper.scrape.return_value = None
    return scraper


@pytest.fixture
def scraped_article():
    def _make(url: str, text: str = "Full article body about the ETF decision.") -> ScrapedArticle:
        return ScrapedArticle(url=url, text=text)

    return _make


@pytest.fixture
def crypto_post():
    """Factory for a CryptoPanic post payload."""

    def _make(i: int, **overrides) -> dict:
        post = {
            "id": 1000 + i,
            "kind": "news",
            "title": f"Bitcoin headline {i}",
            "url": f"https://cryptopanic.com/news/{1000 + i}/",
            "domain": "coindesk.com",
            "published_at": "2024-03-01T12:00:00Z",
            "source": {"title": "CoinDesk", "url": f"https://www.coindesk.com/story-{i}"},
            "currencies": [{"code": "BTC", "title": "Bitcoin"}],
            "metadata": {"description": f"Short description {i}", "image": None},
            "panic_score": 42,
        }
        post.update(overrides)
        return post

    return _make
