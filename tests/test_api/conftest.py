"""Shared fixtures for API tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from sintillio.api.app import create_app
from sintillio.api.dependencies import (
    get_acquisition_service,
    get_admin_repair_service,
    get_api_key_repository,
    get_authorization_gate,
    get_database,
    get_embedding_generator,
    get_embedding_service,
    get_feed_reader,
    get_identity_client,
    get_redis_client,
    get_secret_resolver,
    get_timeline_connector_factory,
)
from sintillio.apikeys.repository import APIKeyRepository
from sintillio.apikeys.resolver import SecretResolver
from sintillio.auth.gate import AuthorizationGate
from sintillio.auth.repair import AdminRepairService, RepairReport
from sintillio.auth.repository import PrivilegeRepository
from sintillio.embedding.generator import EmbeddingGenerator, EmbedOutcome
from sintillio.errors import Unauthenticated
from sintillio.ingestion.base_connector import ConnectorStats
from sintillio.results.feed import FeedPage, FeedReader
from sintillio.services.acquisition import AcquisitionService

ADMIN_HEADERS = {"Authorization": "Bearer admin-token"}
USER_HEADERS = {"Authorization": "Bearer user-token"}


class FakeIdentityClient:
    """Maps fixed tokens to callers; anything else is rejected like the provider does."""

    def __init__(self, callers):
        self._callers = callers

    async def get_user(self, token):
        if not token:
            raise Unauthenticated("Authorization header is required")
        if token not in self._callers:
            raise Unauthenticated("Unauthorized", "invalid JWT: unable to parse or verify signature")
        return self._callers[token]

    async def close(self):
        pass


@pytest.fixture
def admin_headers():
    return ADMIN_HEADERS


@pytest.fixture
def user_headers():
    return USER_HEADERS


@pytest.fixture
def mock_privilege_repo():
    """Privilege store where nobody holds a role or flag."""
    repo = AsyncMock(spec=PrivilegeRepository)
    repo.has_role.return_value = False
    repo.has_admin_flag.return_value = False
    return repo


@pytest.fixture
def mock_acquisition_service():
    return AsyncMock(spec=AcquisitionService)


@pytest.fixture
def mock_generator():
    generator = AsyncMock(spec=EmbeddingGenerator)
    generator.embed.return_value = EmbedOutcome()
    return generator


@pytest.fixture
def mock_feed_reader():
    reader = AsyncMock(spec=FeedReader)
    reader.list_published.return_value = FeedPage()
    return reader


@pytest.fixture
def mock_resolver():
    resolver = AsyncMock(spec=SecretResolver)
    resolver.resolve.return_value = "rapid-key"
    return resolver


@pytest.fixture
def mock_timeline_connector():
    connector = MagicMock()
    connector.fetch = AsyncMock(return_value=[])
    connector.stats = ConnectorStats()
    return connector


@pytest.fixture
def mock_timeline_factory(mock_timeline_connector):
    return MagicMock(return_value=mock_timeline_connector)


@pytest.fixture
def mock_repair_service():
    service = AsyncMock(spec=AdminRepairService)
    service.verify.return_value = RepairReport()
    return service


@pytest.fixture
def mock_api_key_repo():
    repo = AsyncMock(spec=APIKeyRepository)
    repo.list_keys.return_value = []
    repo.update.return_value = None
    return repo


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def mock_redis():
    redis_client = AsyncMock()
    redis_client.ping = AsyncMock(return_value=True)
    return redis_client


@pytest.fixture
def mock_embedding_service():
    """Mock EmbeddingService."""
    service = AsyncMock()
    service.get_stats = MagicMock(return_value={"model": "thenlper/gte-small", "initialized": False})
    service.close = AsyncMock()
    return service


@pytest.fixture
def app(
    admin_caller,
    regular_caller,
    mock_privilege_repo,
    mock_acquisition_service,
    mock_generator,
    mock_feed_reader,
    mock_resolver,
    mock_timeline_factory,
    mock_repair_service,
    mock_api_key_repo,
    mock_db,
    mock_redis,
    mock_embedding_service,
):
    """Application with every infrastructure dependency overridden."""
    app = create_app()
    identity = FakeIdentityClient({"admin-token": admin_caller, "user-token": regular_caller})

    app.dependency_overrides[get_identity_client] = lambda: identity
    app.dependency_overrides[get_authorization_gate] = lambda: AuthorizationGate(
        mock_privilege_repo, "blindvibe.com"
    )
    app.dependency_overrides[get_acquisition_service] = lambda: mock_acquisition_service
    app.dependency_overrides[get_embedding_generator] = lambda: mock_generator
    app.dependency_overrides[get_feed_reader] = lambda: mock_feed_reader
    app.dependency_overrides[get_secret_resolver] = lambda: mock_resolver
    app.dependency_overrides[get_timeline_connector_factory] = lambda: mock_timeline_factory
    app.dependency_overrides[get_admin_repair_service] = lambda: mock_repair_service
    app.dependency_overrides[get_api_key_repository] = lambda: mock_api_key_repo
    app.dependency_overrides[get_database] = lambda: mock_db
    app.dependency_overrides[get_redis_client] = lambda: mock_redis
    app.dependency_overrides[get_embedding_service] = lambda: mock_embedding_service

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """FastAPI TestClient with dependency overrides."""
    with TestClient(app) as c:
        yield c
