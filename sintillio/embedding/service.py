"""
Sentence embedding service (gte-small).

- Lazy model loading on first use
- Automatic device detection (CUDA > MPS > CPU)
- Chunking with mean pooling for documents over the context window
- L2 normalization so cosine similarity is a dot product
- Optional Redis cache keyed by content hash
"""

import asyncio
import hashlib
import json
import threading
from functools import lru_cache
from typing import Any

import numpy as np
import redis.asyncio as redis
import structlog
import torch
from transformers import AutoModel, AutoTokenizer

from sintillio.embedding.config import EmbeddingConfig
from sintillio.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)


class EmbeddingService:
    """
    Computes fixed-length semantic vectors for documents.

    Inference runs in a worker thread so the event loop keeps serving
    requests while a batch is embedded.

    Usage:
        service = EmbeddingService()
        vector = await service.embed("Bitcoin ETF approval ...")
        len(vector)  # 384
    """

    def __init__(
        self,
        config: EmbeddingConfig | None = None,
        redis_client: redis.Redis | None = None,
    ):
        self._config = config or EmbeddingConfig()
        self._redis = redis_client

        self._model: AutoModel | None = None
        self._tokenizer: AutoTokenizer | None = None
        self._device: torch.device | None = None
        self._init_lock = threading.Lock()

        logger.info(
            "embedding_service_created",
            model=self._config.model_name,
            cache_enabled=self._config.cache_enabled and redis_client is not None,
        )

    @property
    def dimension(self) -> int:
        return self._config.embedding_dim

    @property
    def model_name(self) -> str:
        return self._config.model_name

    @property
    def is_initialized(self) -> bool:
        return self._model is not None

    def _detect_device(self) -> torch.device:
        if self._device is not None:
            return self._device

        if self._config.device != "auto":
            self._device = torch.device(self._config.device)
        elif torch.cuda.is_available():
            self._device = torch.device("cuda")
        elif torch.backends.mps.is_available():
            self._device = torch.device("mps")
        else:
            self._device = torch.device("cpu")

        logger.info("embedding_device_selected", device=str(self._device))
        return self._device

    def _initialize(self) -> None:
        if self._model is not None:
            return

        # Concurrent embed() calls each reach here from their own worker thread
        with self._init_lock:
            if self._model is not None:
                return

            device = self._detect_device()
            logger.info("embedding_model_loading", model=self._config.model_name)

            tokenizer = AutoTokenizer.from_pretrained(
                self._config.model_name,
                model_max_length=self._config.max_sequence_length,
            )
            model = AutoModel.from_pretrained(self._config.model_name)
            model.to(device)
            model.eval()

            self._tokenizer = tokenizer
            self._model = model
            logger.info("embedding_model_loaded", device=str(device))

    def _make_cache_key(self, text: str) -> str:
        digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:32]
        return f"{self._config.cache_key_prefix}{digest}"

    async def _get_cached(self, text: str) -> list[float] | None:
        if not self._config.cache_enabled or not self._redis:
            return None
        try:
            cached = await self._redis.get(self._make_cache_key(text))
        except Exception as e:
            logger.warning("embedding_cache_get_failed", error=str(e))
            return None
        get_metrics().record_embedding_cache(cached is not None)
        return json.loads(cached) if cached else None

    async def _store_cached(self, text: str, embedding: list[float]) -> None:
        if not self._config.cache_enabled or not self._redis:
            return
        try:
            await self._redis.setex(
                self._make_cache_key(text),
                self._config.cache_ttl_seconds,
                json.dumps(embedding),
            )
        except Exception as e:
            logger.warning("embedding_cache_set_failed", error=str(e))

    def _chunk_text(self, text: str) -> list[str]:
        """Split text into overlapping token windows that fit the model context."""
        tokens = self._tokenizer.encode(text, add_special_tokens=False)
        max_tokens = self._config.max_sequence_length - 2  # [CLS] and [SEP]

        if len(tokens) <= max_tokens:
            return [text]

        chunks = []
        stride = max(1, max_tokens - self._config.chunk_overlap)
        start = 0
        while start < len(tokens):
            end = min(start + max_tokens, len(tokens))
            chunks.append(self._tokenizer.decode(tokens[start:end], skip_special_tokens=True))
            if end >= len(tokens):
                break
            start += stride
        return chunks

    def _embed_chunk(self, text: str) -> np.ndarray:
        """Attention-masked mean pooling over the last hidden state."""
        inputs = self._tokenizer(
            text,
            return_tensors="pt",
            truncation=True,
            max_length=self._config.max_sequence_length,
            padding=True,
        )
        inputs = {k: v.to(self._device) for k, v in inputs.items()}

        with torch.no_grad():
            outputs = self._model(**inputs)

        token_embeddings = outputs.last_hidden_state
        mask = inputs["attention_mask"].unsqueeze(-1).expand(token_embeddings.size()).float()
        summed = torch.sum(token_embeddings * mask, dim=1)
        counts = torch.clamp(mask.sum(dim=1), min=1e-9)
        return (summed / counts).cpu().numpy()[0]

    def _embed_sync(self, text: str) -> list[float]:
        self._initialize()
        chunks = self._chunk_text(text)
        if len(chunks) == 1:
            vector = self._embed_chunk(chunks[0])
        else:
            vector = np.mean(np.array([self._embed_chunk(c) for c in chunks]), axis=0)

        if self._config.normalize:
            norm = np.linalg.norm(vector)
            if norm > 0:
                vector = vector / norm

        return vector.astype(float).tolist()

    async def embed(self, text: str) -> list[float]:
        """
        Embed one text.

        Raises:
            ValueError: text is blank (blank rows are never embedded)
        """
        if not text or not text.strip():
            raise ValueError("Cannot embed blank text")

        cached = await self._get_cached(text)
        if cached is not None:
            return cached

        embedding = await asyncio.to_thread(self._embed_sync, text)
        if len(embedding) != self._config.embedding_dim:
            raise ValueError(
                f"Model produced {len(embedding)} dimensions, "
                f"expected {self._config.embedding_dim}"
            )

        await self._store_cached(text, embedding)
        return embedding

    async def is_cache_available(self) -> bool:
        if not self._config.cache_enabled or not self._redis:
            return False
        try:
            await self._redis.ping()
            return True
        except Exception:
            return False

    async def close(self) -> None:
        self._model = None
        self._tokenizer = None
        logger.info("embedding_service_closed")

    def get_stats(self) -> dict[str, Any]:
        return {
            "model": self._config.model_name,
            "dimension": self._config.embedding_dim,
            "initialized": self.is_initialized,
            "device": str(self._device) if self._device else "not initialized",
            "cache_enabled": self._config.cache_enabled,
        }


@lru_cache
def get_embedding_service() -> EmbeddingService:
    """Get cached embedding service instance (no Redis cache)."""
    return EmbeddingService()
