"""Database repository for the query ledger (search_queries)."""

import json
import logging
from datetime import timedelta
from typing import Any

from sintillio.ledger.schemas import (
    ALLOWED_PREVIOUS,
    AcquisitionQuery,
    CryptoQueryConfig,
    LedgerPatch,
    QueryStatus,
    SearchQueryConfig,
    config_to_json,
)
from sintillio.storage.database import Database, parse_jsonb

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS search_queries (
    id         UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    query      TEXT NOT NULL,
    user_id    UUID,
    metadata   JSONB NOT NULL DEFAULT '{}',
    status     TEXT NOT NULL DEFAULT 'processing'
               CHECK (status IN ('processing', 'completed', 'failed', 'partial', 'embedded')),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_search_queries_user_created
    ON search_queries(user_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_search_queries_processing
    ON search_queries(created_at) WHERE status = 'processing';
"""

_COLUMNS = "id::text AS id, query, user_id::text AS user_id, metadata, status, created_at, updated_at"

_OPEN_SQL = f"""
INSERT INTO search_queries (query, user_id, metadata, status)
VALUES ($1, $2::uuid, $3::jsonb, 'processing')
RETURNING {_COLUMNS}
"""

_CLOSE_SQL = f"""
UPDATE search_queries
SET status = $2,
    metadata = metadata || $3::jsonb,
    updated_at = NOW()
WHERE id = $1::uuid AND status = ANY($4::text[])
RETURNING {_COLUMNS}
"""

_GET_SQL = f"SELECT {_COLUMNS} FROM search_queries WHERE id = $1::uuid"

_LIST_RECENT_SQL = f"""
SELECT {_COLUMNS} FROM search_queries
WHERE ($1::uuid IS NULL OR user_id = $1::uuid)
ORDER BY created_at DESC
LIMIT $2
"""

_FAIL_STALE_SQL = """
UPDATE search_queries
SET status = 'failed',
    metadata = metadata || $2::jsonb,
    updated_at = NOW()
WHERE status = 'processing' AND created_at < NOW() - $1::interval
RETURNING id::text AS id
"""


def _record_to_query(record) -> AcquisitionQuery:
    return AcquisitionQuery(
        id=record["id"],
        query=record["query"],
        user_id=record["user_id"],
        status=QueryStatus(record["status"]),
        metadata=parse_jsonb(record["metadata"]),
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class LedgerRepository:
    """
    Opens and closes ledger entries.

    ``close`` only moves a row along an allowed transition; a row that is
    missing or already past that stage is left untouched and None is
    returned.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("search_queries table ensured")

    async def open(
        self,
        user_id: str | None,
        query_text: str,
        config: SearchQueryConfig | CryptoQueryConfig,
    ) -> AcquisitionQuery:
        """Insert a ``processing`` entry before the connector is called."""
        row = await self._db.fetchrow(
            _OPEN_SQL, query_text, user_id, json.dumps(config_to_json(config))
        )
        entry = _record_to_query(row)
        logger.info("Opened ledger entry %s (%s)", entry.id, config.source)
        return entry

    async def close(
        self,
        query_id: str,
        status: QueryStatus,
        patch: LedgerPatch | dict[str, Any] | None = None,
    ) -> AcquisitionQuery | None:
        """Merge ``patch`` into the metadata and set ``status``."""
        if isinstance(patch, LedgerPatch):
            patch_dict = patch.to_json_dict()
        else:
            patch_dict = patch or {}

        previous = [s.value for s in ALLOWED_PREVIOUS[status]]
        row = await self._db.fetchrow(
            _CLOSE_SQL, query_id, status.value, json.dumps(patch_dict, default=str), previous
        )
        if row is None:
            logger.warning(
                "Ledger entry %s not moved to %s (missing or not in %s)",
                query_id, status.value, previous,
            )
            return None

        logger.info("Ledger entry %s -> %s", query_id, status.value)
        return _record_to_query(row)

    async def get(self, query_id: str) -> AcquisitionQuery | None:
        row = await self._db.fetchrow(_GET_SQL, query_id)
        return _record_to_query(row) if row else None

    async def list_recent(self, user_id: str | None = None, limit: int = 50) -> list[AcquisitionQuery]:
        rows = await self._db.fetch(_LIST_RECENT_SQL, user_id, limit)
        return [_record_to_query(row) for row in rows]

    async def fail_stale(self, older_than: timedelta, reason: str) -> list[str]:
        """Mark ``processing`` rows older than ``older_than`` as failed; return their ids."""
        rows = await self._db.fetch(
            _FAIL_STALE_SQL, older_than, json.dumps({"error": reason})
        )
        return [row["id"] for row in rows]
