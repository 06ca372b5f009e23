"""Database repository for stored provider credentials (api_keys)."""

import logging
from dataclasses import dataclass
from datetime import datetime

from sintillio.storage.database import Database

logger = logging.getLogger(__name__)

# Keys seeded by the admin panel before a real value is entered
PLACEHOLDER_KEYS = frozenset({"", "YOUR_API_KEY_HERE"})

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS api_keys (
    id          TEXT PRIMARY KEY,
    service     TEXT NOT NULL,
    key         TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_api_keys_service ON api_keys(service);
"""

_LIST_SQL = """
SELECT id, service, key, description, created_at, updated_at
FROM api_keys
ORDER BY service, id
"""

_GET_FOR_SERVICE_SQL = """
SELECT key FROM api_keys
WHERE service = $1 OR id = $1
ORDER BY updated_at DESC
LIMIT 1
"""

_UPDATE_SQL = """
UPDATE api_keys
SET key = $2, description = $3, updated_at = NOW()
WHERE id = $1
RETURNING id, service, key, description, created_at, updated_at
"""


@dataclass
class APIKey:
    """An operational secret for one external service."""

    id: str
    service: str
    key: str
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_placeholder(self) -> bool:
        return self.key.strip() in PLACEHOLDER_KEYS

    @property
    def masked_key(self) -> str:
        if self.is_placeholder:
            return ""
        if len(self.key) <= 4:
            return "*" * len(self.key)
        return "*" * 8 + self.key[-4:]


def _record_to_api_key(record) -> APIKey:
    return APIKey(
        id=record["id"],
        service=record["service"],
        key=record["key"] or "",
        description=record["description"] or "",
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class APIKeyRepository:
    """Read access for administrators plus credential lookup for connectors."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("api_keys table ensured")

    async def list_keys(self) -> list[APIKey]:
        rows = await self._db.fetch(_LIST_SQL)
        return [_record_to_api_key(row) for row in rows]

    async def get_key(self, service: str) -> str | None:
        """Stored key for a service, or None when absent or still a placeholder."""
        value = await self._db.fetchval(_GET_FOR_SERVICE_SQL, service)
        if value is None or value.strip() in PLACEHOLDER_KEYS:
            return None
        return value

    async def update(self, key_id: str, key: str, description: str = "") -> APIKey | None:
        row = await self._db.fetchrow(_UPDATE_SQL, key_id, key, description)
        if row is None:
            return None
        logger.info("Updated api key %s", key_id)
        return _record_to_api_key(row)
