"""POST / endpoint behavior tests."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_shorten_creates_derived_id(client: AsyncClient, expires_in) -> None:
    response = await client.post("/", json={"url": "https://www.github.com", "expiration_timestamp": expires_in(days=1)})

    assert response.status_code == 200
    body = response.json()
    assert 6 <= len(body["shortened_url_id"]) <= 7
    assert body["shortened_url_id"].isalnum()
    assert body["long_url"] == "https://www.github.com"


@pytest.mark.asyncio
async def test_shorten_then_redirect(client: AsyncClient, expires_in) -> None:
    create_resp = await client.post(
        "/", json={"url": "https://www.github.com", "expiration_timestamp": expires_in(hours=1)}
    )
    short_id = create_resp.json()["shortened_url_id"]

    response = await client.get(f"/{short_id}", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "https://www.github.com"


@pytest.mark.asyncio
async def test_shorten_invalid_url(client: AsyncClient, expires_in) -> None:
    response = await client.post("/", json={"url": "not-a-valid-url", "expiration_timestamp": expires_in(days=1)})

    assert response.status_code == 400
    assert response.json()["error"].startswith("invalid URL")


@pytest.mark.asyncio
async def test_shorten_invalid_timestamp(client: AsyncClient) -> None:
    response = await client.post("/", json={"url": "https://www.github.com", "expiration_timestamp": "2030-01-01"})

    assert response.status_code == 400
    assert response.json()["error"].startswith("failed to parse timestamp")


@pytest.mark.asyncio
async def test_shorten_database_error(client: AsyncClient, broken_session_factory, expires_in) -> None:
    from shorturl.database import get_session_factory
    from shorturl.main import app

    async def override_get_session_factory():
        return broken_session_factory

    app.dependency_overrides[get_session_factory] = override_get_session_factory

    response = await client.post("/", json={"url": "https://www.github.com", "expiration_timestamp": expires_in(days=1)})

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"


@pytest.mark.asyncio
async def test_shorten_timestamp_outside_date_range(client: AsyncClient) -> None:
    response = await client.post(
        "/", json={"url": "https://www.github.com", "expiration_timestamp": "0001-01-01T00:00:00+01:00"}
    )

    assert response.status_code == 400
    assert set(response.json()) == {"error", "error_id"}
