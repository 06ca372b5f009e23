"""
Database repository for content results (search_results).

Two write paths:
    write_batch  one atomic statement for a whole acquisition
    write_each   one insert per document, failures logged and skipped

The feed read path (list_published) only returns rows that are both
published and embedded.
"""

import json
import logging

import asyncpg

from sintillio.errors import PersistenceError
from sintillio.ingestion.schemas import CandidateDocument
from sintillio.results.schemas import ContentResult, WriteOutcome
from sintillio.storage.database import Database, parse_jsonb, parse_status_count

logger = logging.getLogger(__name__)

EMBEDDING_DIMENSION = 384

_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

_CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS search_results (
    id           UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    query_id     UUID NOT NULL REFERENCES search_queries(id) ON DELETE CASCADE,
    title        TEXT NOT NULL DEFAULT '',
    description  TEXT NOT NULL DEFAULT '',
    url          TEXT NOT NULL DEFAULT '',
    content      TEXT NOT NULL DEFAULT '',
    content_type TEXT NOT NULL DEFAULT 'markdown',
    metadata     JSONB NOT NULL DEFAULT '{{}}',
    embedding    vector({EMBEDDING_DIMENSION}),
    is_published BOOLEAN NOT NULL DEFAULT FALSE,
    published_at TIMESTAMPTZ,
    source       TEXT,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT published_requires_embedding
        CHECK (NOT is_published OR embedding IS NOT NULL)
);

CREATE INDEX IF NOT EXISTS idx_search_results_query
    ON search_results(query_id);
CREATE INDEX IF NOT EXISTS idx_search_results_unembedded
    ON search_results(query_id) WHERE embedding IS NULL;
CREATE INDEX IF NOT EXISTS idx_search_results_feed
    ON search_results(published_at DESC) WHERE is_published;
"""

_RETURNING = """
RETURNING id::text AS id, query_id::text AS query_id, title, description, url, content,
          content_type, metadata, source, is_published, published_at,
          embedding IS NOT NULL AS has_embedding, created_at
"""

_BATCH_INSERT_SQL = f"""
INSERT INTO search_results (
    query_id, title, description, url, content, content_type, metadata, source, published_at
)
SELECT $1::uuid, t.title, t.description, t.url, t.content, 'markdown', t.metadata, t.source, t.published_at
FROM unnest(
    $2::text[], $3::text[], $4::text[], $5::text[], $6::jsonb[], $7::text[], $8::timestamptz[]
) AS t(title, description, url, content, metadata, source, published_at)
{_RETURNING}
"""

_INSERT_ONE_SQL = f"""
INSERT INTO search_results (
    query_id, title, description, url, content, content_type, metadata, source,
    embedding, is_published, published_at
)
VALUES (
    $1::uuid, $2, $3, $4, $5, 'markdown', $6::jsonb, $7,
    $8::vector, $8::vector IS NOT NULL,
    CASE WHEN $8::vector IS NOT NULL THEN COALESCE($9::timestamptz, NOW()) ELSE $9::timestamptz END
)
{_RETURNING}
"""

_UNEMBEDDED_SQL = """
SELECT id::text AS id, query_id::text AS query_id, title, description, url, content,
       content_type, metadata, source, is_published, published_at,
       FALSE AS has_embedding, created_at
FROM search_results
WHERE query_id = $1::uuid AND embedding IS NULL
ORDER BY created_at, id
"""

# The embedding IS NULL guard makes a concurrent second writer a no-op
_PUBLISH_SQL = """
UPDATE search_results
SET embedding = $2::vector,
    is_published = TRUE,
    published_at = COALESCE(published_at, NOW())
WHERE id = $1::uuid AND embedding IS NULL
"""

_LIST_PUBLISHED_SQL = """
SELECT id::text AS id, query_id::text AS query_id, title, description, url, content,
       content_type, metadata, source, is_published, published_at,
       TRUE AS has_embedding, created_at
FROM search_results
WHERE is_published AND embedding IS NOT NULL
ORDER BY published_at DESC NULLS LAST, id
LIMIT $1 OFFSET $2
"""

_COUNT_PUBLISHED_SQL = """
SELECT COUNT(*) FROM search_results WHERE is_published AND embedding IS NOT NULL
"""


def format_vector(embedding: list[float]) -> str:
    """pgvector text literal, e.g. ``[0.1,0.2]``."""
    return f"[{','.join(str(float(x)) for x in embedding)}]"


def _record_to_result(record) -> ContentResult:
    return ContentResult(
        id=record["id"],
        query_id=record["query_id"],
        title=record["title"] or "",
        description=record["description"] or "",
        url=record["url"] or "",
        content=record["content"] or "",
        content_type=record["content_type"] or "markdown",
        metadata=parse_jsonb(record["metadata"]),
        source=record["source"],
        is_published=record["is_published"],
        published_at=record["published_at"],
        has_embedding=record["has_embedding"],
        created_at=record["created_at"],
    )


class ResultRepository:
    """Writes connector output and serves the published feed."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create search_results (requires search_queries to exist)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("search_results table ensured")

    async def write_batch(self, query_id: str, documents: list[CandidateDocument]) -> list[ContentResult]:
        """
        Insert all documents in one statement; either every row lands or none.

        Rows start unpublished with no embedding.

        Raises:
            PersistenceError: the insert failed
        """
        if not documents:
            return []

        try:
            rows = await self._db.fetch(
                _BATCH_INSERT_SQL,
                query_id,
                [d.title for d in documents],
                [d.description for d in documents],
                [d.url for d in documents],
                [d.content for d in documents],
                [json.dumps(d.storage_metadata, default=str) for d in documents],
                [d.source.value for d in documents],
                [d.published_at for d in documents],
            )
        except _STORE_ERRORS as e:
            logger.error("Batch insert of %d results for %s failed: %s", len(documents), query_id, e)
            raise PersistenceError("Failed to store search results", str(e)) from e

        logger.info("Stored %d results for query %s", len(rows), query_id)
        return [_record_to_result(row) for row in rows]

    async def write_one(
        self,
        query_id: str,
        document: CandidateDocument,
        embedding: list[float] | None = None,
    ) -> ContentResult:
        """
        Insert a single document; published only when ``embedding`` is given.

        Raises:
            PersistenceError: the insert failed
        """
        try:
            row = await self._db.fetchrow(
                _INSERT_ONE_SQL,
                query_id,
                document.title,
                document.description,
                document.url,
                document.content,
                json.dumps(document.storage_metadata, default=str),
                document.source.value,
                format_vector(embedding) if embedding is not None else None,
                document.published_at,
            )
        except _STORE_ERRORS as e:
            raise PersistenceError("Failed to store result", str(e)) from e
        return _record_to_result(row)

    async def write_each(
        self,
        query_id: str,
        documents: list[CandidateDocument],
        embeddings: list[list[float] | None] | None = None,
    ) -> WriteOutcome:
        """Insert documents one at a time; a failing row is logged and skipped."""
        outcome = WriteOutcome()
        for i, document in enumerate(documents):
            embedding = embeddings[i] if embeddings is not None else None
            try:
                result = await self.write_one(query_id, document, embedding)
            except PersistenceError as e:
                outcome.failed += 1
                logger.error("Error inserting result %r: %s", document.title, e.details)
                continue
            outcome.inserted.append(result)
        return outcome

    async def get_unembedded(self, query_id: str) -> list[ContentResult]:
        rows = await self._db.fetch(_UNEMBEDDED_SQL, query_id)
        return [_record_to_result(row) for row in rows]

    async def publish_embedding(self, result_id: str, embedding: list[float]) -> bool:
        """
        Store the embedding and publish the row in one update.

        Returns False when the row already had an embedding (another run
        got there first) or no longer exists.
        """
        status = await self._db.execute(_PUBLISH_SQL, result_id, format_vector(embedding))
        return parse_status_count(status) == 1

    async def list_published(self, limit: int = 20, offset: int = 0) -> list[ContentResult]:
        """Published, embedded rows, newest publication first."""
        rows = await self._db.fetch(_LIST_PUBLISHED_SQL, limit, offset)
        return [_record_to_result(row) for row in rows]

    async def count_published(self) -> int:
        return int(await self._db.fetchval(_COUNT_PUBLISHED_SQL) or 0)
