"""
Integration test for health endpoint.

Demonstrates:
- Testing critical path (API is reachable)
- Testing contracts (response structure matches HealthResponse)
- Health does not depend on the tool provider being reachable
"""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client():
    """Create FastAPI test client (lifespan not run: no tool provider needed)."""
    from hermes.main import app

    return TestClient(app)


def test_health_endpoint_returns_200(client: TestClient):
    """
    Demonstrates: Integration test for critical path.

    This proves the FastAPI app is configured correctly and can handle requests.
    """
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "hermes-search"}


def test_health_endpoint_uses_correct_content_type(client: TestClient):
    response = client.get("/health")

    assert "application/json" in response.headers["content-type"]
