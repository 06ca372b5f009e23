"""Tests for the CryptoPanic connector."""

import logging

import httpx
import pytest
import respx

from sintillio.errors import ConfigurationError, ConnectorError
from sintillio.ingestion.crypto_connector import CryptoNewsConnector, render_post_markdown
from sintillio.ingestion.http_client import RetryConfig
from sintillio.ingestion.schemas import CryptoNewsParams, Source

POSTS_URL = "https://cryptopanic.com/api/v1/posts/"


def _connector(scraper, api_key: str | None = "cp-secret-token") -> CryptoNewsConnector:
    return CryptoNewsConnector(
        api_key, scraper=scraper, retry_config=RetryConfig(max_retries=0), timeout=5
    )


class TestRenderPostMarkdown:
    def test_full_document(self):
        md = render_post_markdown(
            "ETF approved",
            "https://www.coindesk.com/etf",
            "coindesk.com",
            description="Regulators sign off",
            body="Long body",
            currencies=[{"code": "BTC", "title": "Bitcoin"}],
        )

        assert md.startswith("# ETF approved\n\n")
        assert "Regulators sign off" in md
        assert "## Article Content\n\nLong body" in md
        assert "Source: [coindesk.com](https://www.coindesk.com/etf)" in md
        assert "- Bitcoin (BTC)" in md

    def test_title_only(self):
        md = render_post_markdown("Headline", "https://x.example/1", "x.example")

        assert "## Article Content" not in md
        assert "## Related Cryptocurrencies" not in md
        assert md == "# Headline\n\nSource: [x.example](https://x.example/1)\n"


class TestCryptoNewsConnector:
    """Tests for CryptoNewsConnector.fetch."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_request_parameters(self, stub_scraper, crypto_post):
        route = respx.get(POSTS_URL).mock(
            return_value=httpx.Response(200, json={"results": [crypto_post(1)]})
        )

        params = CryptoNewsParams(currencies="btc, eth", filter="rising", limit=3)
        await _connector(stub_scraper).fetch(params)

        query = route.calls.last.request.url.params
        assert query["auth_token"] == "cp-secret-token"
        assert query["currencies"] == "BTC,ETH"
        assert query["filter"] == "rising"
        assert query["kind"] == "news"
        assert query["regions"] == "en"
        assert query["public"] == "true"
        assert query["metadata"] == "true"

    @pytest.mark.asyncio
    @respx.mock
    async def test_token_not_logged(self, stub_scraper, crypto_post, caplog):
        respx.get(POSTS_URL).mock(
            return_value=httpx.Response(200, json={"results": [crypto_post(1)]})
        )

        with caplog.at_level(logging.DEBUG):
            await _connector(stub_scraper).fetch(CryptoNewsParams())

        messages = " ".join(
            r.getMessage() for r in caplog.records if r.name.startswith("sintillio")
        )
        assert "cp-secret-token" not in messages
        assert "auth_token=[REDACTED]" in messages

    @pytest.mark.asyncio
    @respx.mock
    async def test_scraped_body_preferred(self, stub_scraper, scraped_article, crypto_post):
        post = crypto_post(1)
        stub_scraper.scrape.return_value = scraped_article(post["source"]["url"])
        respx.get(POSTS_URL).mock(return_value=httpx.Response(200, json={"results": [post]}))

        docs = await _connector(stub_scraper).fetch(CryptoNewsParams())

        stub_scraper.scrape.assert_awaited_once_with("https://www.coindesk.com/story-1")
        doc = docs[0]
        assert doc.source == Source.CRYPTOPANIC
        assert doc.body_text == "Full article body about the ETF decision."
        assert "## Article Content" in doc.content
        assert doc.url == post["url"]
        assert doc.published_at is not None
        assert doc.storage_metadata["sourceMetadata"]["originalId"] == 1001

    @pytest.mark.asyncio
    @respx.mock
    async def test_falls_back_to_description(self, stub_scraper, crypto_post):
        respx.get(POSTS_URL).mock(
            return_value=httpx.Response(200, json={"results": [crypto_post(1)]})
        )

        docs = await _connector(stub_scraper).fetch(CryptoNewsParams())

        assert docs[0].body_text == "Short description 1"
        assert "## Article Content" not in docs[0].content
        assert "Short description 1" in docs[0].content

    @pytest.mark.asyncio
    @respx.mock
    async def test_falls_back_to_title(self, stub_scraper, crypto_post):
        post = crypto_post(1, metadata={}, source=None)
        respx.get(POSTS_URL).mock(return_value=httpx.Response(200, json={"results": [post]}))

        docs = await _connector(stub_scraper).fetch(CryptoNewsParams())

        stub_scraper.scrape.assert_not_awaited()
        assert docs[0].body_text == "Bitcoin headline 1"
        assert docs[0].description == ""

    @pytest.mark.asyncio
    @respx.mock
    async def test_untitled_posts_filtered(self, stub_scraper, crypto_post):
        connector = _connector(stub_scraper)
        respx.get(POSTS_URL).mock(
            return_value=httpx.Response(
                200, json={"results": [crypto_post(1), crypto_post(2, title="  ")]}
            )
        )

        docs = await connector.fetch(CryptoNewsParams())

        assert len(docs) == 1
        assert connector.stats.items_received == 2
        assert connector.stats.items_filtered == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_scrape_exception_falls_back_to_description(self, stub_scraper, crypto_post):
        connector = _connector(stub_scraper)
        stub_scraper.scrape.side_effect = [RuntimeError("parser exploded"), None, None]
        respx.get(POSTS_URL).mock(
            return_value=httpx.Response(
                200, json={"results": [crypto_post(1), crypto_post(2), crypto_post(3)]}
            )
        )

        docs = await connector.fetch(CryptoNewsParams())

        assert [d.title for d in docs] == [
            "Bitcoin headline 1",
            "Bitcoin headline 2",
            "Bitcoin headline 3",
        ]
        assert docs[0].body_text == "Short description 1"
        assert "## Article Content" not in docs[0].markdown
        assert connector.stats.errors == 0

    @pytest.mark.asyncio
    @respx.mock
    async def test_scrape_exception_without_description_falls_back_to_title(
        self, stub_scraper, crypto_post
    ):
        connector = _connector(stub_scraper)
        stub_scraper.scrape.side_effect = RuntimeError("parser exploded")
        respx.get(POSTS_URL).mock(
            return_value=httpx.Response(
                200, json={"results": [crypto_post(1, metadata={"description": ""})]}
            )
        )

        docs = await connector.fetch(CryptoNewsParams())

        assert len(docs) == 1
        assert docs[0].body_text == "Bitcoin headline 1"

    @pytest.mark.asyncio
    @respx.mock
    async def test_results_truncated_to_limit(self, stub_scraper, crypto_post):
        connector = _connector(stub_scraper)
        respx.get(POSTS_URL).mock(
            return_value=httpx.Response(
                200, json={"results": [crypto_post(i) for i in range(20)]}
            )
        )

        docs = await connector.fetch(CryptoNewsParams(limit=4))

        assert len(docs) == 4
        assert connector.stats.items_received == 4

    @pytest.mark.asyncio
    @respx.mock
    async def test_empty_results(self, stub_scraper):
        respx.get(POSTS_URL).mock(return_value=httpx.Response(200, json={"results": []}))

        docs = await _connector(stub_scraper).fetch(CryptoNewsParams())

        assert docs == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_upstream_failure(self, stub_scraper):
        respx.get(POSTS_URL).mock(
            return_value=httpx.Response(403, json={"status": "api_error", "info": "Token invalid"})
        )

        with pytest.raises(ConnectorError) as exc_info:
            await _connector(stub_scraper).fetch(CryptoNewsParams())

        assert exc_info.value.error == "CryptoPanic API request failed"
        assert exc_info.value.status == 403
        assert exc_info.value.status_text == "Forbidden"

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_body(self, stub_scraper):
        respx.get(POSTS_URL).mock(return_value=httpx.Response(200, text="<html>maintenance</html>"))

        with pytest.raises(ConnectorError, match="CryptoPanic API request failed"):
            await _connector(stub_scraper).fetch(CryptoNewsParams())

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_key_makes_no_request(self, stub_scraper):
        route = respx.get(POSTS_URL).mock(return_value=httpx.Response(200, json={}))

        with pytest.raises(ConfigurationError, match="CryptoPanic API key not configured"):
            await _connector(stub_scraper, api_key="").fetch(CryptoNewsParams())

        assert route.call_count == 0


class TestCryptoNewsParams:
    def test_query_text(self):
        params = CryptoNewsParams(currencies="sol", filter="bullish")
        assert params.query_text == "CryptoPanic: SOL (bullish)"

    def test_rejects_empty_currencies(self):
        with pytest.raises(ValueError):
            CryptoNewsParams(currencies=" , ")

    def test_rejects_unknown_filter(self):
        with pytest.raises(ValueError):
            CryptoNewsParams(filter="spicy")
