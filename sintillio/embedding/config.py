"""
Embedding configuration.

Defaults reproduce the gte-small setup the feed's semantic retrieval is
built on: 384 dimensions, attention-masked mean pooling, L2 normalized.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingConfig(BaseSettings):
    """
    Configuration for the embedding service.

    Settings can be overridden via environment variables prefixed with EMBEDDING_.
    """

    model_config = SettingsConfigDict(
        env_prefix="EMBEDDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    model_name: str = Field(
        default="thenlper/gte-small",
        description="HuggingFace model name",
    )
    embedding_dim: int = Field(
        default=384,
        description="Embedding vector dimension; must match search_results.embedding",
    )
    max_sequence_length: int = Field(
        default=512,
        description="Maximum token sequence length for the model",
    )
    normalize: bool = Field(
        default=True,
        description="L2-normalize output vectors",
    )
    device: Literal["auto", "cpu", "cuda", "mps"] = Field(
        default="auto",
        description="Device for model inference (auto detects best available)",
    )
    chunk_overlap: int = Field(
        default=50,
        ge=0,
        description="Overlapping tokens between chunks of long documents",
    )

    # Caching
    cache_enabled: bool = Field(
        default=False,
        description="Cache embeddings in Redis keyed by content hash",
    )
    cache_ttl_hours: int = Field(default=168, ge=1)
    cache_key_prefix: str = Field(default="emb:gte:")

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache_ttl_hours * 3600
