"""Persistence layer for short-URL mappings.

This module owns every translation between in-memory ``ShortUrl`` values and
rows of the ``urls`` table, and the transactional protocol that makes saves
idempotent and at-most-one-writer-wins.

Flow Diagram — save_url()
=========================
::
    ┌─────────────┐
    │ BEGIN        │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ SELECT id   │
    │ FOR UPDATE  │
    └──────┬──────┘
    FOUND?  │
    ┌──────┴───────┐
    │ NO            │ YES
    │        ┌──────┴───────┐
    │        │ ALIVE?        │
    │        ├─ YES ────────▶ ROLLBACK, raise ItemAlreadyExistsError(existing)
    │        └─ NO           │
    │               ▼        │
    │        ┌─────────────┐ │
    │        │ DELETE row  │ │
    │        └──────┬──────┘ │
    ▼               ▼
    ┌─────────────┐
    │ INSERT      │──── IntegrityError ──▶ re-read, raise ItemAlreadyExistsError
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ COMMIT      │
    └─────────────┘

How to Use
===========
**Step 1 — Build from a session factory**::
    repository = SqlAlchemyUrlRepository(async_session)

**Step 2 — Save idempotently**::
    try:
        saved = await repository.save_url(short_url)
    except ItemAlreadyExistsError as exc:
        existing = exc.existing

**Step 3 — Look up**::
    short_url = await repository.retrieve_url("abc123xy")  # None if absent or expired

Key Behaviours
===============
- A row is alive while ``expiration_time > now``. Reads, saves and the garbage
  collector all apply this rule, so a logically expired row that has not been
  physically deleted yet is treated as absent.
- The whole read/delete/insert sequence of ``save_url`` runs in one
  transaction; serialization against concurrent writers comes from the store
  (row lock where supported, primary-key constraint everywhere).
- Store faults and rows that no longer validate raise ``RepositoryError``,
  never ``ItemAlreadyExistsError``.

Classes:
    UrlRepository:  Abstract repository contract.
    SqlAlchemyUrlRepository:  Async SQLAlchemy implementation.
"""

import datetime
import logging
from abc import ABC, abstractmethod
from typing import NoReturn

from prometheus_client import Counter
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shorturl.domain import ExpirationTime, ShortId, ShortUrl, ensure_url, utcnow
from shorturl.exceptions import ItemAlreadyExistsError, RepositoryError
from shorturl.models import ShortUrlRecord

__all__ = ["SqlAlchemyUrlRepository", "UrlRepository"]

logger = logging.getLogger(__name__)

DATABASE_READS_TOTAL = Counter(
    "shorturl_database_reads_total",
    "Total database read operations",
)
DATABASE_WRITES_TOTAL = Counter(
    "shorturl_database_writes_total",
    "Total database write operations",
)


class UrlRepository(ABC):
    """Contract for short-URL storage backends."""

    @abstractmethod
    async def retrieve_url(self, short_id: str) -> ShortUrl | None:
        """Return the unexpired mapping stored under ``short_id``, if any.

        Raises:
            RepositoryError: On store faults or an unreadable row.
        """

    @abstractmethod
    async def save_url(self, short_url: ShortUrl) -> ShortUrl:
        """Idempotently save ``short_url``.

        Returns:
            ShortUrl: The saved value.

        Raises:
            ItemAlreadyExistsError: An unexpired row already uses the short ID.
            RepositoryError: On store faults or an unreadable existing row.
        """

    @abstractmethod
    async def delete_expired_urls(self, now: datetime.datetime | None = None) -> int:
        """Physically delete every expired row and return how many were removed."""


class SqlAlchemyUrlRepository(UrlRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def retrieve_url(self, short_id: str) -> ShortUrl | None:
        now = utcnow()
        try:
            async with self._session_factory() as session:
                record = await session.get(ShortUrlRecord, short_id)
        except SQLAlchemyError as exc:
            logger.error(f"Failed to query for existing item {short_id!r}: {exc}")
            raise RepositoryError("Failed to query for existing item") from exc
        DATABASE_READS_TOTAL.inc()

        if record is None or not _is_alive(record, now):
            return None
        return _to_domain(record, now)

    async def save_url(self, short_url: ShortUrl) -> ShortUrl:
        short_id = short_url.short_id.value
        now = utcnow()
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    existing = await self._select_for_update(session, short_id)
                    DATABASE_READS_TOTAL.inc()
                    if existing is not None:
                        if _is_alive(existing, now):
                            raise ItemAlreadyExistsError(_to_domain(existing, now))
                        logger.info(f"Replacing expired item {short_id!r}")
                        await session.delete(existing)
                        await session.flush()

                    session.add(
                        ShortUrlRecord(
                            id=short_id,
                            long_url=short_url.url,
                            expiration_time=short_url.expiration_time.value,
                        )
                    )
                    await session.flush()
        except IntegrityError as exc:
            logger.warning(f"Concurrent insert detected for {short_id!r}: {exc}")
            await self._raise_for_conflict(short_id, exc)
        except SQLAlchemyError as exc:
            logger.error(f"Failed to execute database transaction for {short_id!r}: {exc}")
            raise RepositoryError("Failed to execute database transaction") from exc

        DATABASE_WRITES_TOTAL.inc()
        return short_url

    async def delete_expired_urls(self, now: datetime.datetime | None = None) -> int:
        cutoff = now if now is not None else utcnow()
        stmt = (
            delete(ShortUrlRecord)
            .where(ShortUrlRecord.expiration_time <= cutoff)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error(f"Failed to delete expired items: {exc}")
            raise RepositoryError("Failed to delete expired items") from exc

        DATABASE_WRITES_TOTAL.inc()
        return result.rowcount

    async def _select_for_update(self, session: AsyncSession, short_id: str) -> ShortUrlRecord | None:
        # FOR UPDATE renders as nothing on SQLite
        stmt = select(ShortUrlRecord).where(ShortUrlRecord.id == short_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _raise_for_conflict(self, short_id: str, exc: IntegrityError) -> NoReturn:
        """Turn a lost insert race into the domain event it represents."""
        existing = await self.retrieve_url(short_id)
        if existing is None:
            raise RepositoryError("Insert conflicted but no unexpired item was found") from exc
        raise ItemAlreadyExistsError(existing) from exc


def _is_alive(record: ShortUrlRecord, now: datetime.datetime) -> bool:
    return record.expiration_time > now


def _to_domain(record: ShortUrlRecord, now: datetime.datetime) -> ShortUrl:
    try:
        return ShortUrl(
            short_id=ShortId(record.id),
            url=ensure_url(record.long_url),
            expiration_time=ExpirationTime(record.expiration_time, now=now),
        )
    except ValueError as exc:
        logger.error(f"Failed to create ShortUrl from db record {record.id!r}: {exc}")
        raise RepositoryError(f"Failed to create ShortUrl from db record {record.id!r}") from exc
