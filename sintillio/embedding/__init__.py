"""
Embedding generation for semantic retrieval.

This module provides:
- EmbeddingService: gte-small sentence embeddings (384 dims)
- EmbeddingGenerator: embeds and publishes the pending rows of a query
- EmbeddingConfig: configuration settings for the embedding service
"""

from sintillio.embedding.config import EmbeddingConfig
from sintillio.embedding.generator import EmbeddingGenerator, EmbedOutcome
from sintillio.embedding.service import EmbeddingService, get_embedding_service

__all__ = [
    "EmbedOutcome",
    "EmbeddingConfig",
    "EmbeddingGenerator",
    "EmbeddingService",
    "get_embedding_service",
]
