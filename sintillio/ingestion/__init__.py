"""Source connectors - web search/scrape, crypto news and social timeline."""

from sintillio.ingestion.article_scraper import ArticleScraper, ScraperConfig, extract_article_text
from sintillio.ingestion.base_connector import BaseConnector
from sintillio.ingestion.crypto_connector import CryptoNewsConnector
from sintillio.ingestion.http_client import HTTPClient, HTTPClientError, RetryConfig
from sintillio.ingestion.schemas import (
    CandidateDocument,
    CryptoNewsParams,
    SearchParams,
    Source,
    TimelineParams,
    Tweet,
)
from sintillio.ingestion.search_connector import SearchConnector
from sintillio.ingestion.timeline_connector import TimelineConnector

__all__ = [
    "ArticleScraper",
    "BaseConnector",
    "CandidateDocument",
    "CryptoNewsConnector",
    "CryptoNewsParams",
    "HTTPClient",
    "HTTPClientError",
    "RetryConfig",
    "ScraperConfig",
    "SearchConnector",
    "SearchParams",
    "Source",
    "TimelineConnector",
    "TimelineParams",
    "Tweet",
    "extract_article_text",
]
