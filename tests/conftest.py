"""Shared pytest fixtures for repository, service, and API tests."""

import datetime
from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shorturl.database import Base, get_session_factory, make_engine, make_session_factory
from shorturl.domain import ExpirationTime, ShortId, ShortUrl, format_rfc3339, utcnow
from shorturl.main import app
from shorturl.models import ShortUrlRecord
from shorturl.repository import SqlAlchemyUrlRepository
from shorturl.url_service import UrlShorteningService

FIXED_RETRY_SALT = b"\x07" * 32


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    test_engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
def broken_session_factory(tmp_path) -> async_sessionmaker[AsyncSession]:
    """Session factory whose database file can never be opened."""
    return make_session_factory(make_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'test.sqlite'}"))


@pytest.fixture
def repository(session_factory: async_sessionmaker[AsyncSession]) -> SqlAlchemyUrlRepository:
    return SqlAlchemyUrlRepository(session_factory)


@pytest.fixture
def service(repository: SqlAlchemyUrlRepository) -> UrlShorteningService:
    return UrlShorteningService(repository, salt_factory=lambda: FIXED_RETRY_SALT)


@pytest.fixture
def expires_in() -> Callable[..., str]:
    """Build an RFC 3339 timestamp relative to now, e.g. ``expires_in(days=1)``."""

    def _expires_in(**delta) -> str:
        return format_rfc3339(utcnow() + datetime.timedelta(**delta))

    return _expires_in


@pytest.fixture
def make_short_url() -> Callable[..., ShortUrl]:
    def _make_short_url(
        short_id: str = "abc123xy",
        url: str = "https://example.com",
        ttl: datetime.timedelta = datetime.timedelta(days=1),
    ) -> ShortUrl:
        return ShortUrl(ShortId(short_id), url, ExpirationTime(utcnow() + ttl))

    return _make_short_url


@pytest.fixture
def insert_record(session_factory: async_sessionmaker[AsyncSession]):
    """Write a row directly, bypassing validation (e.g. already expired rows)."""

    async def _insert_record(short_id: str, url: str, expiration_time: datetime.datetime) -> None:
        async with session_factory() as session:
            async with session.begin():
                session.add(ShortUrlRecord(id=short_id, long_url=url, expiration_time=expiration_time))

    return _insert_record


@pytest_asyncio.fixture(scope="function")
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_session_factory() -> async_sessionmaker[AsyncSession]:
        return session_factory

    app.dependency_overrides[get_session_factory] = override_get_session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
