"""
Schema bootstrap.

Tables are created in foreign-key order: search_results references
search_queries.
"""

import logging

from sintillio.apikeys.repository import APIKeyRepository
from sintillio.auth.repository import PrivilegeRepository
from sintillio.ledger.repository import LedgerRepository
from sintillio.results.repository import ResultRepository
from sintillio.storage.database import Database

logger = logging.getLogger(__name__)


async def create_schema(database: Database) -> None:
    """Create every table and index the pipeline uses (idempotent)."""
    await LedgerRepository(database).create_table()
    await ResultRepository(database).create_table()
    await PrivilegeRepository(database).create_tables()
    await APIKeyRepository(database).create_table()
    logger.info("Database schema ensured")
