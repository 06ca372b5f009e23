"""
Request and response models for the pipeline API.

Acquisition request parameters reuse the connector parameter models in
``sintillio.ingestion.schemas``.
"""

import datetime as dt
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sintillio.ingestion.schemas import Tweet


class ErrorResponse(BaseModel):
    """Error body returned by every endpoint."""

    error: str
    details: Any = None


class UpstreamErrorResponse(ErrorResponse):
    """Error body for provider failures (502)."""

    status: int | None = None
    statusText: str | None = None


class SearchResponse(BaseModel):
    success: bool = True
    message: str
    query_id: str
    results: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Documents with title, description, url and the formats the provider returned",
    )


class ProcessedPost(BaseModel):
    id: str
    title: str


class CryptoNewsResponse(BaseModel):
    success: bool = True
    message: str
    query_id: str
    processed_posts: list[ProcessedPost] | None = None


class EmbeddingsRequest(BaseModel):
    """Request model for an embedding run."""

    model_config = ConfigDict(populate_by_name=True)

    query_id: str = Field(..., alias="queryId", description="Ledger id whose results to embed")

    @field_validator("query_id")
    @classmethod
    def query_id_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Query ID is required")
        return v


class EmbeddingsResponse(BaseModel):
    success: bool = True
    message: str
    processed: int = Field(..., description="Rows embedded and published by this run")
    total: int = Field(..., description="Rows that were still unembedded")


class TwitterFeedResponse(BaseModel):
    success: bool = True
    tweets: list[Tweet] = Field(default_factory=list)


class FeedItem(BaseModel):
    id: str
    title: str
    description: str
    url: str
    content: str
    published_at: dt.datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class FeedResponse(BaseModel):
    success: bool = True
    items: list[FeedItem] = Field(default_factory=list)
    total: int = 0
    limit: int
    offset: int


class AdminVerificationItem(BaseModel):
    user_id: str
    email: str
    has_admin_role: bool
    is_admin_flag: bool
    domain_eligible: bool
    repaired: bool = False


class VerifyRolesResponse(BaseModel):
    success: bool = True
    message: str
    users: list[AdminVerificationItem] = Field(default_factory=list)
    fixed: int = 0


class APIKeyItem(BaseModel):
    id: str
    service: str
    key: str = Field(..., description="Masked to the last four characters")
    description: str = ""
    configured: bool
    updated_at: dt.datetime | None = None


class APIKeysResponse(BaseModel):
    success: bool = True
    keys: list[APIKeyItem] = Field(default_factory=list)


class APIKeyUpdateRequest(BaseModel):
    key: str = Field(..., min_length=1)
    description: str = ""


class APIKeyUpdateResponse(BaseModel):
    success: bool = True
    key: APIKeyItem


class ComponentHealth(BaseModel):
    """Health status of an infrastructure component."""

    status: str = Field(..., description="healthy, unhealthy, or not_configured")
    latency_ms: float | None = None
    details: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(
        ...,
        description="Overall service status: healthy, degraded, or unhealthy",
    )
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
    providers: dict[str, bool] = Field(
        default_factory=dict,
        description="Whether each provider credential is set in the environment",
    )
    embedding: dict[str, Any] = Field(default_factory=dict)
