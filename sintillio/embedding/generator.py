"""
Embedding generator: embeds and publishes the unembedded rows of one query.

Each row is embedded and published in a single guarded update, so a row
is either untouched or both embedded and visible in the feed. Re-running
for the same query is a no-op.
"""

import logging
import time
from dataclasses import dataclass

from sintillio.ledger.repository import LedgerRepository
from sintillio.ledger.schemas import LedgerPatch, QueryStatus
from sintillio.observability.metrics import get_metrics
from sintillio.observability.tracing import get_tracer, record_counts, traced
from sintillio.results.repository import ResultRepository

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


@dataclass
class EmbedOutcome:
    processed: int = 0
    total: int = 0

    @property
    def message(self) -> str:
        return f"Generated embeddings for {self.processed} out of {self.total} results"


class EmbeddingGenerator:
    """
    Usage:
        generator = EmbeddingGenerator(results, ledger, get_embedding_service())
        outcome = await generator.embed(query_id)
    """

    def __init__(self, results: ResultRepository, ledger: LedgerRepository, service) -> None:
        self._results = results
        self._ledger = ledger
        self._service = service

    async def embed(self, query_id: str) -> EmbedOutcome:
        with traced(tracer, "embedding.generate", {"query_id": query_id}) as span:
            outcome = await self._embed(query_id)
            record_counts(span, "embedding", processed=outcome.processed, total=outcome.total)
        return outcome

    async def _embed(self, query_id: str) -> EmbedOutcome:
        rows = await self._results.get_unembedded(query_id)
        if not rows:
            logger.info("No unembedded results for query %s", query_id)
            return EmbedOutcome()

        metrics = get_metrics()
        outcome = EmbedOutcome(total=len(rows))

        for row in rows:
            text = row.embedding_text()
            if not text:
                metrics.record_embedding_skipped("blank")
                logger.info("Skipping result %s with no text", row.id)
                continue

            start = time.perf_counter()
            try:
                vector = await self._service.embed(text)
                published = await self._results.publish_embedding(row.id, vector)
            except Exception as e:
                metrics.record_embedding_skipped("error")
                logger.error("Failed to embed result %s: %s", row.id, e)
                continue

            if not published:
                metrics.record_embedding_skipped("race")
                logger.info("Result %s was embedded by another run", row.id)
                continue

            outcome.processed += 1
            metrics.record_embedding(time.perf_counter() - start)

        try:
            await self._ledger.close(
                query_id,
                QueryStatus.EMBEDDED,
                LedgerPatch(processed=outcome.processed, total=outcome.total),
            )
        except Exception as e:
            logger.error("Failed to mark query %s embedded: %s", query_id, e)

        logger.info("Embedded %d/%d results for query %s", outcome.processed, outcome.total, query_id)
        return outcome
