"""
Tests for operational endpoints.
"""
from ballot.core.database import Database
from ballot.main import app


class TestHealth:
    """Test health, readiness and root endpoints."""

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["message"] == "Ballot Server API"

    async def test_ready(self, client):
        database = Database("sqlite+aiosqlite:///:memory:")
        database.connect()
        app.state.database = database
        try:
            response = await client.get("/health/ready")
        finally:
            await database.disconnect()

        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "checks": {"database": True, "redis": True},
        }

    async def test_not_ready_without_database(self, client):
        app.state.database = Database("sqlite+aiosqlite:///:memory:")

        response = await client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["database"] is False
