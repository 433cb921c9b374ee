"""Garbage collector tests."""

import asyncio
import datetime
from unittest.mock import AsyncMock, patch

import pytest

from shorturl.domain import utcnow
from shorturl.exceptions import RepositoryError
from shorturl.gc import purge_expired, run
from shorturl.repository import UrlRepository


@pytest.mark.asyncio
async def test_purge_expired_deletes_expired_rows(repository, insert_record, make_short_url) -> None:
    await insert_record("expired1", "https://example.com", utcnow() - datetime.timedelta(hours=1))
    await repository.save_url(make_short_url(short_id="alive123"))

    assert await purge_expired(repository) == 1
    assert await repository.retrieve_url("alive123") is not None


@pytest.mark.asyncio
async def test_run_once_by_default() -> None:
    repository = AsyncMock(spec=UrlRepository)
    repository.delete_expired_urls.return_value = 0

    await run(repository)

    repository.delete_expired_urls.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_repeats_on_interval() -> None:
    repository = AsyncMock(spec=UrlRepository)
    repository.delete_expired_urls.return_value = 3
    sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])

    with patch("shorturl.gc.asyncio.sleep", sleep):
        with pytest.raises(asyncio.CancelledError):
            await run(repository, interval_seconds=60)

    assert repository.delete_expired_urls.await_count == 2
    sleep.assert_awaited_with(60)


@pytest.mark.asyncio
async def test_run_survives_failed_purge_on_interval() -> None:
    repository = AsyncMock(spec=UrlRepository)
    repository.delete_expired_urls.side_effect = [RepositoryError("connection reset"), 4]
    sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])

    with patch("shorturl.gc.asyncio.sleep", sleep):
        with pytest.raises(asyncio.CancelledError):
            await run(repository, interval_seconds=30)

    assert repository.delete_expired_urls.await_count == 2


@pytest.mark.asyncio
async def test_run_once_propagates_failed_purge() -> None:
    repository = AsyncMock(spec=UrlRepository)
    repository.delete_expired_urls.side_effect = RepositoryError("connection reset")

    with pytest.raises(RepositoryError):
        await run(repository)
