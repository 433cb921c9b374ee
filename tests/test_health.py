"""Health and metrics endpoint tests."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "healthy"}


@pytest.mark.asyncio
async def test_health_check_reports_unreachable_database(client: AsyncClient, broken_session_factory) -> None:
    from shorturl.database import get_session_factory
    from shorturl.main import app

    async def override_get_session_factory():
        return broken_session_factory

    app.dependency_overrides[get_session_factory] = override_get_session_factory

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "unhealthy", "database": "unhealthy"}


@pytest.mark.asyncio
async def test_metrics_exposed(client: AsyncClient, expires_in) -> None:
    await client.post("/", json={"url": "https://example.com", "expiration_timestamp": expires_in(days=1)})

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "shorturl_requests_total" in response.text
    assert "shorturl_database_writes_total" in response.text
