"""Tests for POST /search."""

from unittest.mock import AsyncMock

import httpx
import respx
from fastapi.testclient import TestClient

from sintillio.api.dependencies import get_acquisition_service
from sintillio.apikeys.resolver import SecretResolver
from sintillio.errors import ConfigurationError, ConnectorError, PersistenceError
from sintillio.ledger.repository import LedgerRepository
from sintillio.ledger.schemas import QueryStatus
from sintillio.results.repository import ResultRepository
from sintillio.services.acquisition import AcquisitionService, SearchOutcome

SEARCH_URL = "https://api.firecrawl.dev/v1/search"


class TestSearchAuth:
    """Caller checks on the search endpoint."""

    def test_missing_token(self, client):
        response = client.post("/search", json={"query": "q"})

        assert response.status_code == 401
        assert response.json() == {"error": "Authorization header is required"}

    def test_rejected_token(self, client):
        response = client.post(
            "/search", json={"query": "q"}, headers={"Authorization": "Bearer forged"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_non_admin(self, client, user_headers, mock_acquisition_service):
        response = client.post("/search", json={"query": "q"}, headers=user_headers)

        assert response.status_code == 403
        assert response.json() == {
            "error": "Admin privileges required",
            "details": "User is not an admin by email domain, role assignment, or profile flag",
        }
        mock_acquisition_service.run_search.assert_not_awaited()

    def test_profile_flag_is_enough(self, client, user_headers, mock_privilege_repo, mock_acquisition_service):
        mock_privilege_repo.has_admin_flag.return_value = True
        mock_acquisition_service.run_search.return_value = SearchOutcome(query_id="q-1")

        response = client.post("/search", json={"query": "q"}, headers=user_headers)

        assert response.status_code == 200

    def test_privilege_store_down(self, client, user_headers, mock_privilege_repo):
        mock_privilege_repo.has_role.side_effect = ConnectionError("connection refused")

        response = client.post("/search", json={"query": "q"}, headers=user_headers)

        assert response.status_code == 500
        assert response.json()["error"] == "Role verification failed"


class TestSearchRoute:
    """Request handling with a mocked acquisition service."""

    def test_success(self, client, admin_headers, mock_acquisition_service, admin_caller):
        mock_acquisition_service.run_search.return_value = SearchOutcome(
            query_id="q-1",
            results=[{"title": "T", "description": "D", "url": "https://x.example", "markdown": "# T"}],
        )

        response = client.post(
            "/search",
            json={"query": "stablecoins", "limit": 3, "scrapeOptions": {"formats": ["markdown"]}},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["query_id"] == "q-1"
        assert data["results"][0]["markdown"] == "# T"

        caller, params = mock_acquisition_service.run_search.await_args.args
        assert caller == admin_caller
        assert params.limit == 3

    def test_blank_query(self, client, admin_headers, mock_acquisition_service):
        response = client.post("/search", json={"query": "  "}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request", "details": "query: Query is required"}
        mock_acquisition_service.run_search.assert_not_awaited()

    def test_missing_credential(self, client, admin_headers, mock_acquisition_service):
        mock_acquisition_service.run_search.side_effect = ConfigurationError(
            "Firecrawl API key not configured",
            "The FIRECRAWL_API_KEY environment variable is not set",
        )

        response = client.post("/search", json={"query": "q"}, headers=admin_headers)

        assert response.status_code == 500
        assert response.json() == {
            "error": "Firecrawl API key not configured",
            "details": "The FIRECRAWL_API_KEY environment variable is not set",
        }

    def test_provider_failure(self, client, admin_headers, mock_acquisition_service):
        mock_acquisition_service.run_search.side_effect = ConnectorError(
            "Firecrawl API request failed",
            status=401,
            status_text="Unauthorized",
            details='{"error": "Unauthorized: Invalid token"}',
        )

        response = client.post("/search", json={"query": "q"}, headers=admin_headers)

        assert response.status_code == 502
        assert response.json() == {
            "error": "Firecrawl API request failed",
            "status": 401,
            "statusText": "Unauthorized",
            "details": '{"error": "Unauthorized: Invalid token"}',
        }

    def test_store_failure(self, client, admin_headers, mock_acquisition_service):
        mock_acquisition_service.run_search.side_effect = PersistenceError(
            "Failed to store search results", "connection reset"
        )

        response = client.post("/search", json={"query": "q"}, headers=admin_headers)

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to store search results"


class TestSearchEndToEnd:
    """Route, service and connector together; only the provider and store are doubles."""

    @respx.mock
    def test_blockchain_regulation(self, app, admin_headers, ledger_entry, make_result):
        ledger = AsyncMock(spec=LedgerRepository)
        ledger.open.return_value = ledger_entry
        results = AsyncMock(spec=ResultRepository)
        results.write_batch.return_value = [make_result(i) for i in range(5)]
        resolver = AsyncMock(spec=SecretResolver)
        resolver.resolve.return_value = "fc-key"
        app.dependency_overrides[get_acquisition_service] = lambda: AcquisitionService(
            ledger, results, resolver
        )

        route = respx.post(SEARCH_URL).mock(
            return_value=httpx.Response(
                200,
                json={
                    "success": True,
                    "data": [
                        {
                            "title": f"Blockchain regulation {i}",
                            "description": "Policy news",
                            "url": f"https://policy.example.com/{i}",
                            "markdown": f"# Regulation {i}",
                        }
                        for i in range(5)
                    ],
                },
            )
        )

        with TestClient(app) as client:
            response = client.post(
                "/search",
                json={
                    "query": "blockchain regulation",
                    "limit": 5,
                    "scrapeOptions": {"formats": ["markdown"]},
                },
                headers=admin_headers,
            )

        assert response.status_code == 200
        data = response.json()
        assert data["query_id"] == ledger_entry.id
        assert 0 < len(data["results"]) <= 5
        for result in data["results"]:
            assert result["title"] and result["url"] and result["markdown"]
            assert "links" not in result

        assert route.calls.last.request.headers["Authorization"] == "Bearer fc-key"
        status = ledger.close.await_args.args[1]
        assert status == QueryStatus.COMPLETED

    @respx.mock
    def test_provider_rejects_key(self, app, admin_headers, ledger_entry):
        ledger = AsyncMock(spec=LedgerRepository)
        ledger.open.return_value = ledger_entry
        resolver = AsyncMock(spec=SecretResolver)
        resolver.resolve.return_value = "bad-key"
        app.dependency_overrides[get_acquisition_service] = lambda: AcquisitionService(
            ledger, AsyncMock(spec=ResultRepository), resolver
        )
        respx.post(SEARCH_URL).mock(
            return_value=httpx.Response(401, json={"error": "Unauthorized: Invalid token"})
        )

        with TestClient(app) as client:
            response = client.post("/search", json={"query": "q"}, headers=admin_headers)

        assert response.status_code == 502
        assert response.json()["status"] == 401
        assert ledger.close.await_args.args[1] == QueryStatus.FAILED
