"""
Dependency injection for FastAPI endpoints.
"""

from typing import AsyncGenerator

import redis.asyncio as redis

from sintillio.apikeys.repository import APIKeyRepository
from sintillio.apikeys.resolver import SecretResolver
from sintillio.auth.gate import AuthorizationGate
from sintillio.auth.identity import IdentityClient
from sintillio.auth.repair import AdminRepairService
from sintillio.auth.repository import PrivilegeRepository
from sintillio.config.settings import get_settings
from sintillio.embedding.config import EmbeddingConfig
from sintillio.embedding.generator import EmbeddingGenerator
from sintillio.embedding.service import EmbeddingService
from sintillio.ingestion.timeline_connector import TimelineConnector
from sintillio.ledger.repository import LedgerRepository
from sintillio.results.feed import FeedReader
from sintillio.results.repository import ResultRepository
from sintillio.services.acquisition import AcquisitionService
from sintillio.storage.database import Database

# Global service instances (initialized on first request)
_database: Database | None = None
_redis_client: redis.Redis | None = None
_identity_client: IdentityClient | None = None
_embedding_service: EmbeddingService | None = None


def _get_or_create_redis() -> redis.Redis:
    global _redis_client

    if _redis_client is None:
        settings = get_settings()
        _redis_client = redis.from_url(
            str(settings.redis_url),
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_client


async def get_database() -> Database:
    """Get the shared connection pool, connecting on first use."""
    global _database

    if _database is None:
        database = Database()
        await database.connect()
        _database = database
    return _database


async def get_redis_client() -> AsyncGenerator[redis.Redis, None]:
    """Get Redis client for caching."""
    yield _get_or_create_redis()


async def get_identity_client() -> IdentityClient:
    global _identity_client

    if _identity_client is None:
        _identity_client = IdentityClient()
    return _identity_client


async def get_embedding_service() -> EmbeddingService:
    """
    Get embedding service instance.

    Creates a singleton service; the Redis cache is attached only when
    EMBEDDING_CACHE_ENABLED is set.
    """
    global _embedding_service

    if _embedding_service is None:
        config = EmbeddingConfig()
        _embedding_service = EmbeddingService(
            config=config,
            redis_client=_get_or_create_redis() if config.cache_enabled else None,
        )
    return _embedding_service


async def get_privilege_repository() -> PrivilegeRepository:
    database = await get_database()
    return PrivilegeRepository(database, users_table=get_settings().identity_users_table)


async def get_authorization_gate() -> AuthorizationGate:
    return AuthorizationGate(await get_privilege_repository())


async def get_admin_repair_service() -> AdminRepairService:
    return AdminRepairService(await get_privilege_repository())


async def get_ledger_repository() -> LedgerRepository:
    return LedgerRepository(await get_database())


async def get_result_repository() -> ResultRepository:
    return ResultRepository(await get_database())


async def get_api_key_repository() -> APIKeyRepository:
    return APIKeyRepository(await get_database())


async def get_secret_resolver() -> SecretResolver:
    return SecretResolver(await get_api_key_repository())


async def get_acquisition_service() -> AcquisitionService:
    database = await get_database()
    return AcquisitionService(
        ledger=LedgerRepository(database),
        results=ResultRepository(database),
        resolver=SecretResolver(APIKeyRepository(database)),
        embedding_service=await get_embedding_service(),
    )


async def get_embedding_generator() -> EmbeddingGenerator:
    database = await get_database()
    return EmbeddingGenerator(
        ResultRepository(database),
        LedgerRepository(database),
        await get_embedding_service(),
    )


async def get_feed_reader() -> FeedReader:
    return FeedReader(await get_result_repository())


def get_timeline_connector_factory() -> type[TimelineConnector]:
    return TimelineConnector


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    global _database, _redis_client, _identity_client, _embedding_service

    if _embedding_service is not None:
        await _embedding_service.close()
        _embedding_service = None

    if _identity_client is not None:
        await _identity_client.close()
        _identity_client = None

    if _database is not None:
        await _database.close()
        _database = None

    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None
