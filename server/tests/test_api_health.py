"""Probe and documentation tests against the fully configured application."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from hotel.main import create_app


@pytest_asyncio.fixture
async def app_client():
    """Client for the production app wiring, middleware included."""
    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_api_health_endpoints(app_client):
    response = await app_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

    response = await app_client.get("/info")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "hotel-reservation-api"
    assert data["reservation_hold_minutes"] >= 0


@pytest.mark.asyncio
async def test_request_id_propagated(app_client):
    response = await app_client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["x-request-id"] == "req-123"


@pytest.mark.asyncio
async def test_metrics_endpoint(app_client):
    """Request metrics are recorded by the middleware and exposed for scraping."""
    await app_client.get("/health")
    response = await app_client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "http_requests_total" in response.text


@pytest.mark.asyncio
async def test_auth_failure_is_problem_json(app_client):
    response = await app_client.get("/v1/reservation/mine")

    assert response.status_code == 401
    assert response.headers["content-type"].startswith("application/problem+json")


@pytest.mark.asyncio
async def test_openapi_docs(app_client):
    """Interactive docs are served outside production."""
    response = await app_client.get("/docs")
    assert response.status_code == 200

    schema = await app_client.get("/openapi.json")
    assert "/v1/reservation/availability" in schema.json()["paths"]
