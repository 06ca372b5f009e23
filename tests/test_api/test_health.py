"""Tests for the health endpoint."""


class TestHealth:
    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["database"]["status"] == "healthy"
        assert data["components"]["identity_provider"]["status"] == "healthy"
        assert data["providers"] == {"firecrawl": False, "cryptopanic": False, "rapidapi": False}
        assert data["embedding"]["model"] == "thenlper/gte-small"

    def test_no_auth_required(self, client):
        assert client.get("/health").status_code == 200

    def test_database_down(self, client, mock_db):
        mock_db.health_check.side_effect = ConnectionError("refused")

        data = client.get("/health").json()

        assert data["status"] == "unhealthy"
        assert data["components"]["database"]["details"] == {"error": "refused"}

    def test_redis_down(self, client, mock_redis):
        mock_redis.ping.side_effect = ConnectionError("refused")

        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["components"]["redis"]["status"] == "unhealthy"

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_root(self, client):
        assert client.get("/").json()["docs"] == "/docs"
