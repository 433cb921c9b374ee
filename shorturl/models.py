"""SQLAlchemy ORM models for the short-URL service.

This module defines the database schema for short-URL mappings. Rows are
written and read exclusively by ``shorturl.repository``; nothing else in the
code base handles ORM instances.

Data Model Layout
=================
::
    urls table
    ├─ id (VARCHAR(16) PRIMARY KEY)
    ├─ long_url (TEXT NOT NULL)
    └─ expiration_time (TIMESTAMPTZ NOT NULL, INDEXED)

How to Use
===========
**Step 1 — Import**::
    from shorturl.models import ShortUrlRecord

**Step 2 — Point lookup inside a transaction**::
    async with session.begin():
        record = await session.get(ShortUrlRecord, "abc123xy")

**Step 3 — Garbage-collect expired rows**::
    await session.execute(
        delete(ShortUrlRecord).where(ShortUrlRecord.expiration_time <= now)
    )

Key Behaviours
===============
- ``id`` is the short identifier itself; the store enforces its uniqueness.
- ``expiration_time`` is always stored and returned as an aware UTC datetime,
  including on backends without native timezone support (SQLite).
- ``expiration_time`` is indexed for the garbage collector's range delete.

Classes:
    UTCDateTime:  Column type that normalizes datetimes to aware UTC.
    ShortUrlRecord:  One persisted short-URL mapping.
"""

import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from shorturl.database import Base

__all__ = ["ShortUrlRecord", "UTCDateTime"]


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp column that always round-trips as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetimes cannot be stored")
        return value.astimezone(datetime.timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            # SQLite drops the offset; values were written as UTC
            return value.replace(tzinfo=datetime.timezone.utc)
        return value.astimezone(datetime.timezone.utc)


class ShortUrlRecord(Base):
    __tablename__ = "urls"

    id: Mapped[str] = mapped_column(String(16), primary_key=True)
    long_url: Mapped[str] = mapped_column(Text, nullable=False)
    expiration_time: Mapped[datetime.datetime] = mapped_column(UTCDateTime, index=True, nullable=False)

    def __repr__(self) -> str:
        return f"<ShortUrlRecord(id='{self.id}', expiration_time={self.expiration_time.isoformat()})>"
