"""
PostgreSQL access for the ledger, result store, privilege and api key tables.

``Database`` owns one asyncpg pool. Connecting also makes sure the
extensions the schema depends on exist: ``vector`` for
``search_results.embedding`` and ``pgcrypto`` for ``gen_random_uuid()``.
"""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any

import asyncpg

from sintillio.config.settings import get_settings

logger = logging.getLogger(__name__)

REQUIRED_EXTENSIONS = ("vector", "pgcrypto")


class Database:
    """
    Async PostgreSQL pool wrapper.

    Repositories receive a Database and only use its query helpers or
    ``transaction()``; none of them hold a connection across awaits of
    other services.

    Usage:
        async with Database() as db:
            async with db.transaction() as conn:
                await conn.execute("INSERT INTO search_results ...", ...)
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
        command_timeout: float = 60.0,
    ):
        settings = get_settings()

        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size
        self._command_timeout = command_timeout

        self._pool: asyncpg.Pool | None = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        try:
            pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("Could not open database pool: %s", e)
            raise

        async with pool.acquire() as conn:
            for extension in REQUIRED_EXTENSIONS:
                await conn.execute(f"CREATE EXTENSION IF NOT EXISTS {extension}")

        self._pool = pool
        logger.info("Database pool ready (%d-%d connections)", self._min_size, self._max_size)

    async def close(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        logger.info("Database pool closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """One connection, one transaction; rolled back if the block raises."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement and return its status string, e.g. ``UPDATE 3``."""
        return await self.pool.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        return await self.pool.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        return await self.pool.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        return await self.pool.fetchval(query, *args)

    async def health_check(self) -> bool:
        if self._pool is None:
            return False
        try:
            return await self.fetchval("SELECT 1") == 1
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.warning("Database health check failed: %s", e)
            return False


def parse_jsonb(value: Any) -> dict[str, Any]:
    """Decode a jsonb column; asyncpg returns text unless a codec is set."""
    if value is None:
        return {}
    if isinstance(value, str):
        return json.loads(value) if value else {}
    return dict(value)


def parse_status_count(status: str) -> int:
    """
    Extract the row count from an asyncpg status string.

    ``"UPDATE 3"`` -> 3, ``"INSERT 0 1"`` -> 1. Unknown formats yield 0.
    """
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError, IndexError):
        return 0
