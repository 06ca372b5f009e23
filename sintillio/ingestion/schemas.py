"""
Request parameters and normalized outputs of the source connectors.

Every connector emits CandidateDocument (or, for the read-through
timeline connector, Tweet). Field names of the API-facing parameter
models follow the provider conventions (``scrapeOptions``, ``listId``)
through aliases so request bodies can be forwarded verbatim.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Source(str, Enum):
    """Content origins known to the pipeline."""

    FIRECRAWL = "firecrawl"
    CRYPTOPANIC = "cryptopanic"
    TWITTER = "twitter"


CryptoFilter = Literal["rising", "hot", "bullish", "bearish", "important", "saved", "lol"]
CryptoKind = Literal["news", "media", "all"]


class ScrapeOptions(BaseModel):
    """
    Per-result scrape settings forwarded to the search provider.

    Unknown keys are kept so newer provider options pass through untouched.
    """

    model_config = ConfigDict(extra="allow")

    formats: list[str] = Field(default_factory=lambda: ["markdown"])


class SearchParams(BaseModel):
    """Parameters of a web search/scrape acquisition."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., description="Free-text search query")
    limit: int = Field(default=10, ge=1, le=100)
    lang: str = "en"
    country: str = "us"
    tbs: str = Field(default="", description="Time-window filter, e.g. qdr:d")
    scrape_options: ScrapeOptions = Field(default_factory=ScrapeOptions, alias="scrapeOptions")

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Query is required")
        return v

    def to_provider_body(self) -> dict[str, Any]:
        """Request body for the provider, parameters forwarded verbatim."""
        return {
            "query": self.query,
            "limit": self.limit,
            "lang": self.lang,
            "country": self.country,
            "tbs": self.tbs,
            "scrapeOptions": self.scrape_options.model_dump(),
        }


class CryptoNewsParams(BaseModel):
    """Parameters of a crypto news acquisition."""

    currencies: str = "BTC,ETH"
    filter: CryptoFilter = "hot"
    kind: CryptoKind = "news"
    regions: str = "en"
    limit: int = Field(default=10, ge=1, le=100)

    @field_validator("currencies")
    @classmethod
    def normalize_currencies(cls, v: str) -> str:
        codes = [c.strip().upper() for c in v.split(",") if c.strip()]
        if not codes:
            raise ValueError("At least one currency code is required")
        return ",".join(codes)

    @property
    def query_text(self) -> str:
        """Human-readable ledger query text."""
        return f"CryptoPanic: {self.currencies} ({self.filter})"


class TimelineParams(BaseModel):
    """Parameters of a tweet list read."""

    model_config = ConfigDict(populate_by_name=True)

    list_id: str = Field(..., alias="listId", min_length=1)
    limit: int = Field(default=5, ge=1, le=100)


class CandidateDocument(BaseModel):
    """
    One normalized document produced by a connector.

    The format fields (``markdown``, ``links``, ``html``, ``screenshot``)
    and ``metadata`` mirror what the provider returned and stay None when a
    format was not requested or not provided.
    ``storage_metadata`` is the origin-specific bag persisted with the row.
    """

    source: Source
    title: str = ""
    description: str = ""
    url: str = ""
    markdown: str | None = None
    links: list[Any] | None = None
    html: str | None = None
    screenshot: str | None = None
    metadata: dict[str, Any] | None = None
    published_at: datetime | None = None
    storage_metadata: dict[str, Any] = Field(default_factory=dict)
    body_text: str | None = Field(
        default=None,
        description="Plain body used for embedding when it differs from markdown",
    )

    @property
    def content(self) -> str:
        return self.markdown or ""

    def to_response(self) -> dict[str, Any]:
        """API representation; absent formats are omitted."""
        return self.model_dump(
            include={
                "title", "description", "url", "markdown", "links", "html", "screenshot", "metadata",
            },
            exclude_none=True,
        )


class TweetUser(BaseModel):
    name: str | None = None
    screen_name: str | None = None
    profile_image_url_https: str | None = None
    verified: bool = False


class TweetMetrics(BaseModel):
    retweet_count: int = 0
    favorite_count: int = 0
    reply_count: int = 0


class Tweet(BaseModel):
    """Provider tweet mapped to the shape the feed carousel consumes."""

    id: str
    text: str
    created_at: datetime | None = None
    user: TweetUser = Field(default_factory=TweetUser)
    metrics: TweetMetrics = Field(default_factory=TweetMetrics)
    entities: dict[str, Any] | None = None
