"""
Query ledger models.

One AcquisitionQuery row exists per acquisition attempt. Its metadata
column holds the typed configuration snapshot of the connector that ran
(tagged by ``source``) plus audit fields merged in by later transitions.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class QueryStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"
    EMBEDDED = "embedded"


# Statuses a row may be in when moving to the key status
ALLOWED_PREVIOUS: dict[QueryStatus, frozenset[QueryStatus]] = {
    QueryStatus.COMPLETED: frozenset({QueryStatus.PROCESSING}),
    QueryStatus.FAILED: frozenset({QueryStatus.PROCESSING}),
    QueryStatus.PARTIAL: frozenset({QueryStatus.PROCESSING}),
    QueryStatus.EMBEDDED: frozenset(
        {QueryStatus.COMPLETED, QueryStatus.PARTIAL, QueryStatus.EMBEDDED}
    ),
    QueryStatus.PROCESSING: frozenset(),
}


class SearchQueryConfig(BaseModel):
    """Configuration snapshot of a web search/scrape acquisition."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    source: Literal["firecrawl"] = "firecrawl"
    limit: int
    lang: str
    country: str
    tbs: str = ""
    scrape_options: dict[str, Any] = Field(default_factory=dict, alias="scrapeOptions")


class CryptoFilters(BaseModel):
    currencies: str
    filter: str
    kind: str
    regions: str


class CryptoQueryConfig(BaseModel):
    """Configuration snapshot of a crypto news acquisition."""

    model_config = ConfigDict(extra="ignore")

    source: Literal["cryptopanic"] = "cryptopanic"
    filters: CryptoFilters
    limit: int


QueryConfig = Annotated[SearchQueryConfig | CryptoQueryConfig, Field(discriminator="source")]

_config_adapter: TypeAdapter = TypeAdapter(QueryConfig)


class LedgerPatch(BaseModel):
    """Audit fields merged into the metadata on a status transition."""

    error: Any = None
    message: str | None = None
    processed: int | None = None
    total: int | None = None
    upstream_response: Any = None

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def config_to_json(config: SearchQueryConfig | CryptoQueryConfig) -> dict[str, Any]:
    return config.model_dump(by_alias=True, mode="json")


def parse_config(metadata: dict[str, Any]) -> SearchQueryConfig | CryptoQueryConfig | None:
    """Typed view of a stored snapshot; None for rows written by other tools."""
    if "source" not in metadata:
        return None
    try:
        return _config_adapter.validate_python(metadata)
    except ValidationError:
        return None


@dataclass
class AcquisitionQuery:
    """A ledger entry."""

    id: str
    query: str
    user_id: str | None
    status: QueryStatus
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def config(self) -> SearchQueryConfig | CryptoQueryConfig | None:
        return parse_config(self.metadata)

    @property
    def audit(self) -> dict[str, Any]:
        return {k: self.metadata[k] for k in LedgerPatch.model_fields if k in self.metadata}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "query": self.query,
            "user_id": self.user_id,
            "status": self.status.value,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
