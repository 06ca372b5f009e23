"""
Acquisition service - runs one content acquisition end to end.

    resolve credential -> ledger.open -> connector.fetch -> store -> ledger.close

The ledger row is opened before the provider is contacted so every
attempt is attributable, and every caught failure closes it before the
error propagates. A cancelled run (client gone, shutdown) is closed
``failed`` before the cancellation continues; only a process crash is
left to the LedgerReconciler.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import structlog

from sintillio.apikeys.resolver import SecretResolver
from sintillio.auth.schemas import Caller
from sintillio.errors import ConnectorError, PersistenceError
from sintillio.ingestion.crypto_connector import CryptoNewsConnector
from sintillio.ingestion.schemas import CandidateDocument, CryptoNewsParams, SearchParams, Source
from sintillio.ingestion.search_connector import SearchConnector
from sintillio.ledger.repository import LedgerRepository
from sintillio.ledger.schemas import (
    CryptoFilters,
    CryptoQueryConfig,
    LedgerPatch,
    QueryStatus,
    SearchQueryConfig,
)
from sintillio.observability.metrics import get_metrics
from sintillio.results.repository import ResultRepository
from sintillio.results.schemas import compose_embedding_text

logger = structlog.get_logger(__name__)

NO_RESULTS_MESSAGE = "No results found"
CANCELLED_MESSAGE = "Acquisition cancelled before completion"


@dataclass
class SearchOutcome:
    query_id: str
    results: list[dict[str, Any]] = field(default_factory=list)
    message: str = "Search completed successfully"


@dataclass
class CryptoOutcome:
    query_id: str
    processed_posts: list[dict[str, str]] = field(default_factory=list)
    total: int = 0
    message: str = NO_RESULTS_MESSAGE


def _failure_patch(error: ConnectorError) -> LedgerPatch:
    # A 2xx body that reported failure is kept verbatim for audit
    if error.status is not None and error.status < 400:
        return LedgerPatch(error=error.error, upstream_response=error.details)
    return LedgerPatch(error=error.details if error.details is not None else error.error)


class AcquisitionService:
    """
    Orchestrates the search and crypto news acquisition paths.

    Connectors are built per call with the resolved credential; tests
    inject factories to substitute them.
    """

    def __init__(
        self,
        ledger: LedgerRepository,
        results: ResultRepository,
        resolver: SecretResolver,
        embedding_service=None,
        search_connector_factory=SearchConnector,
        crypto_connector_factory=CryptoNewsConnector,
    ):
        self._ledger = ledger
        self._results = results
        self._resolver = resolver
        self._embedding_service = embedding_service
        self._search_factory = search_connector_factory
        self._crypto_factory = crypto_connector_factory
        self._metrics = get_metrics()

    async def _close(self, source: Source, query_id: str, status: QueryStatus, patch: LedgerPatch) -> None:
        await self._ledger.close(query_id, status, patch)
        self._metrics.record_acquisition(source.value, status.value)

    async def _close_cancelled(self, source: Source, query_id: str) -> None:
        # Guarded transitions make this a no-op if the run already closed the row
        try:
            await self._close(source, query_id, QueryStatus.FAILED, LedgerPatch(error=CANCELLED_MESSAGE))
        except Exception as e:
            logger.error("ledger_close_on_cancel_failed", query_id=query_id, error=str(e))
        logger.warning("acquisition_cancelled", query_id=query_id, source=source.value)

    async def _open(self, caller: Caller, query_text: str, config):
        try:
            return await self._ledger.open(caller.id, query_text, config)
        except Exception as e:
            logger.error("ledger_open_failed", source=config.source, error=str(e))
            raise PersistenceError("Failed to create search query", str(e)) from e

    async def run_search(self, caller: Caller, params: SearchParams) -> SearchOutcome:
        """
        Search the web, store every result atomically and return them.

        Raises:
            ConfigurationError: no Firecrawl credential (nothing recorded)
            ConnectorError: provider failure (ledger closed ``failed``)
            PersistenceError: batch insert failed (ledger closed ``partial``)
        """
        api_key = await self._resolver.resolve(Source.FIRECRAWL)

        config = SearchQueryConfig(
            limit=params.limit,
            lang=params.lang,
            country=params.country,
            tbs=params.tbs,
            scrape_options=params.scrape_options.model_dump(exclude_none=True),
        )
        entry = await self._open(caller, params.query, config)
        try:
            return await self._search(entry.id, api_key, params)
        except asyncio.CancelledError:
            await self._close_cancelled(Source.FIRECRAWL, entry.id)
            raise

    async def _search(self, query_id: str, api_key: str, params: SearchParams) -> SearchOutcome:
        log = logger.bind(query_id=query_id, source=Source.FIRECRAWL.value)

        try:
            documents = await self._search_factory(api_key).fetch(params)
        except ConnectorError as e:
            log.warning("search_connector_failed", status=e.status, error=e.error)
            await self._close(Source.FIRECRAWL, query_id, QueryStatus.FAILED, _failure_patch(e))
            raise
        except Exception as e:
            await self._close(Source.FIRECRAWL, query_id, QueryStatus.FAILED, LedgerPatch(error=str(e)))
            raise

        try:
            stored = await self._results.write_batch(query_id, documents)
        except PersistenceError as e:
            log.error("search_results_store_failed", error=e.details)
            self._metrics.record_results(Source.FIRECRAWL.value, 0, len(documents))
            await self._close(Source.FIRECRAWL, query_id, QueryStatus.PARTIAL, LedgerPatch(error=e.details))
            raise

        self._metrics.record_results(Source.FIRECRAWL.value, len(stored))
        await self._close(
            Source.FIRECRAWL,
            query_id,
            QueryStatus.COMPLETED,
            LedgerPatch(processed=len(stored), total=len(documents)),
        )
        log.info("search_completed", results=len(stored))

        return SearchOutcome(
            query_id=query_id,
            results=[doc.to_response() for doc in documents],
        )

    async def _embed_inline(self, document: CandidateDocument) -> list[float] | None:
        if self._embedding_service is None:
            return None
        text = compose_embedding_text(
            document.title, document.description, document.body_text or document.content
        )
        if not text:
            return None
        try:
            return await self._embedding_service.embed(text)
        except Exception as e:
            # The row is stored unpublished and picked up by the generator later
            logger.warning("inline_embedding_failed", title=document.title, error=str(e))
            return None

    async def run_crypto(self, caller: Caller, params: CryptoNewsParams) -> CryptoOutcome:
        """
        Fetch crypto headlines, enrich them, and store one row per headline.

        Rows whose embedding was computed are published immediately; the
        rest wait for the embedding generator.

        Raises:
            ConfigurationError: no CryptoPanic credential (nothing recorded)
            ConnectorError: provider failure (ledger closed ``failed``)
        """
        api_key = await self._resolver.resolve(Source.CRYPTOPANIC)

        config = CryptoQueryConfig(
            filters=CryptoFilters(
                currencies=params.currencies,
                filter=params.filter,
                kind=params.kind,
                regions=params.regions,
            ),
            limit=params.limit,
        )
        entry = await self._open(caller, params.query_text, config)
        try:
            return await self._crypto(entry.id, api_key, params)
        except asyncio.CancelledError:
            await self._close_cancelled(Source.CRYPTOPANIC, entry.id)
            raise

    async def _crypto(self, query_id: str, api_key: str, params: CryptoNewsParams) -> CryptoOutcome:
        log = logger.bind(query_id=query_id, source=Source.CRYPTOPANIC.value)

        connector = self._crypto_factory(api_key)
        try:
            documents = await connector.fetch(params)
        except ConnectorError as e:
            log.warning("crypto_connector_failed", status=e.status, error=e.error)
            await self._close(Source.CRYPTOPANIC, query_id, QueryStatus.FAILED, _failure_patch(e))
            raise
        except Exception as e:
            await self._close(Source.CRYPTOPANIC, query_id, QueryStatus.FAILED, LedgerPatch(error=str(e)))
            raise

        total = connector.stats.items_received
        if total == 0:
            await self._close(
                Source.CRYPTOPANIC,
                query_id,
                QueryStatus.COMPLETED,
                LedgerPatch(message=NO_RESULTS_MESSAGE, processed=0, total=0),
            )
            log.info("crypto_no_results")
            return CryptoOutcome(query_id=query_id)

        try:
            embeddings = [await self._embed_inline(doc) for doc in documents]
            outcome = await self._results.write_each(query_id, documents, embeddings)
        except Exception as e:
            await self._close(Source.CRYPTOPANIC, query_id, QueryStatus.FAILED, LedgerPatch(error=str(e)))
            raise

        processed = len(outcome.inserted)
        self._metrics.record_results(Source.CRYPTOPANIC.value, processed, outcome.failed)
        await self._close(
            Source.CRYPTOPANIC,
            query_id,
            QueryStatus.COMPLETED,
            LedgerPatch(processed=processed, total=total),
        )
        log.info("crypto_completed", processed=processed, total=total)

        return CryptoOutcome(
            query_id=query_id,
            processed_posts=[{"id": r.id, "title": r.title} for r in outcome.inserted],
            total=total,
            message=f"Successfully processed {processed} out of {total} posts",
        )
