"""SQLAlchemy repository tests against a throwaway SQLite database."""

import datetime
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from shorturl.domain import utcnow
from shorturl.exceptions import ItemAlreadyExistsError, RepositoryError
from shorturl.models import ShortUrlRecord
from shorturl.repository import SqlAlchemyUrlRepository


@pytest.mark.asyncio
async def test_save_then_retrieve(repository, make_short_url) -> None:
    short_url = make_short_url()

    assert await repository.save_url(short_url) == short_url
    assert await repository.retrieve_url("abc123xy") == short_url


@pytest.mark.asyncio
async def test_retrieve_absent_returns_none(repository) -> None:
    assert await repository.retrieve_url("missing1") is None


@pytest.mark.asyncio
async def test_save_twice_reports_existing_item(repository, make_short_url) -> None:
    short_url = make_short_url()
    await repository.save_url(short_url)

    with pytest.raises(ItemAlreadyExistsError) as exc_info:
        await repository.save_url(short_url)

    assert exc_info.value.existing == short_url
    assert await repository.retrieve_url("abc123xy") == short_url


@pytest.mark.asyncio
async def test_save_different_content_keeps_original(repository, make_short_url) -> None:
    original = make_short_url(url="https://example.com")
    await repository.save_url(original)

    with pytest.raises(ItemAlreadyExistsError) as exc_info:
        await repository.save_url(make_short_url(url="https://example.org"))

    assert exc_info.value.existing == original
    assert await repository.retrieve_url("abc123xy") == original


@pytest.mark.asyncio
async def test_retrieve_expired_returns_none(repository, insert_record) -> None:
    await insert_record("expired1", "https://example.com", utcnow() - datetime.timedelta(seconds=1))

    assert await repository.retrieve_url("expired1") is None


@pytest.mark.asyncio
async def test_save_recycles_expired_slot(repository, insert_record, make_short_url, session_factory) -> None:
    await insert_record("abc123xy", "https://old.example.com", utcnow() - datetime.timedelta(hours=1))
    replacement = make_short_url(url="https://new.example.com")

    assert await repository.save_url(replacement) == replacement
    assert await repository.retrieve_url("abc123xy") == replacement

    async with session_factory() as session:
        rows = (await session.execute(select(ShortUrlRecord))).scalars().all()
    assert [row.long_url for row in rows] == ["https://new.example.com"]


@pytest.mark.asyncio
async def test_delete_expired_urls_removes_only_expired(repository, insert_record, make_short_url) -> None:
    now = utcnow()
    await insert_record("expired1", "https://example.com/1", now - datetime.timedelta(days=1))
    await insert_record("expired2", "https://example.com/2", now - datetime.timedelta(seconds=1))
    alive = make_short_url(short_id="alive123")
    await repository.save_url(alive)

    assert await repository.delete_expired_urls() == 2
    assert await repository.retrieve_url("alive123") == alive
    assert await repository.delete_expired_urls() == 0


@pytest.mark.asyncio
async def test_delete_expired_urls_with_explicit_cutoff(repository, make_short_url) -> None:
    await repository.save_url(make_short_url(short_id="short123", ttl=datetime.timedelta(hours=1)))
    await repository.save_url(make_short_url(short_id="long1234", ttl=datetime.timedelta(days=2)))

    deleted = await repository.delete_expired_urls(now=utcnow() + datetime.timedelta(days=1))

    assert deleted == 1
    assert await repository.retrieve_url("short123") is None
    assert await repository.retrieve_url("long1234") is not None


@pytest.mark.asyncio
async def test_unreadable_row_raises_repository_error(repository, insert_record) -> None:
    await insert_record("bad-id!", "https://example.com", utcnow() + datetime.timedelta(days=1))

    with pytest.raises(RepositoryError):
        await repository.retrieve_url("bad-id!")


@pytest.mark.asyncio
async def test_store_fault_raises_repository_error(broken_session_factory, make_short_url) -> None:
    repository = SqlAlchemyUrlRepository(broken_session_factory)

    with pytest.raises(RepositoryError):
        await repository.retrieve_url("abc123xy")
    with pytest.raises(RepositoryError):
        await repository.save_url(make_short_url())
    with pytest.raises(RepositoryError):
        await repository.delete_expired_urls()


@pytest.mark.asyncio
async def test_lost_insert_race_reports_existing_item(repository, make_short_url) -> None:
    first = make_short_url(url="https://example.com")
    await repository.save_url(first)

    # The row lock misses the row, so the insert hits the primary key
    with patch.object(SqlAlchemyUrlRepository, "_select_for_update", AsyncMock(return_value=None)):
        with pytest.raises(ItemAlreadyExistsError) as exc_info:
            await repository.save_url(make_short_url(url="https://example.org"))

    assert exc_info.value.existing == first
    assert await repository.retrieve_url("abc123xy") == first


@pytest.mark.asyncio
async def test_lost_insert_race_against_expired_row_is_repository_error(
    repository, insert_record, make_short_url
) -> None:
    await insert_record("abc123xy", "https://old.example.com", utcnow() - datetime.timedelta(hours=1))

    with patch.object(SqlAlchemyUrlRepository, "_select_for_update", AsyncMock(return_value=None)):
        with pytest.raises(RepositoryError):
            await repository.save_url(make_short_url())
