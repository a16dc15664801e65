"""Tests for the service liveness endpoint."""

from unittest.mock import AsyncMock


class TestHealthEndpoint:
    def test_healthy_database(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["status"] == "healthy"
        assert body["data"]["components"]["database"]["status"] == "healthy"
        assert body["data"]["adapters"] == ["arxiv", "bilibili", "mock"]

    def test_database_failure_is_unhealthy(self, client, mock_db):
        mock_db.health_check = AsyncMock(side_effect=Exception("Connection refused"))

        resp = client.get("/health")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "unhealthy"
        assert data["components"]["database"]["details"]["error"] == "Connection refused"

    def test_request_id_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "req-42"})
        assert resp.headers["X-Request-ID"] == "req-42"
