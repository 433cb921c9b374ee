"""Database engine and session management for the short-URL service.

This module provides SQLAlchemy async engine setup, the session factory handed
to the repository, and database lifecycle operations using PostgreSQL as the
backend.

Flow Diagram — Database Operations
=================================
::
    ┌─────────────┐
    │  Application│
    │  Request    │
    └──────┬──────┘
           ▼
    ┌──────────────────────┐
    │ get_session_factory() │
    │ dependency            │
    └──────┬───────────────┘
           ▼
    ┌─────────────┐
    │ Repository  │
    │ opens one   │
    │ session per │
    │ operation   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Transaction │
    │ commit or   │
    │ rollback    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Auto-close   │
    │ (async with) │
    └─────────────┘

How to Use
===========
**Step 1 — Initialize on startup**::
    await init_db()  # Creates tables

**Step 2 — Hand the session factory to the repository**::
    repository = SqlAlchemyUrlRepository(async_session)

**Step 3 — Cleanup on shutdown**::
    await close_db()

Key Behaviours
===============
- The repository owns transaction boundaries; sessions never outlive one
  repository call.
- Connection pooling is configured for production workloads.
- Tables are created automatically on application startup.
- Engine is properly disposed on application shutdown.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    make_engine():  Builds an async engine for a database URL.
    make_session_factory():  Builds the session factory for an engine.
    get_session_factory():  FastAPI dependency returning the shared factory.
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shorturl.config import get_settings

__all__ = [
    "Base",
    "async_session",
    "close_db",
    "engine",
    "get_session_factory",
    "init_db",
    "make_engine",
    "make_session_factory",
]

settings = get_settings()


class Base(DeclarativeBase):
    pass


def make_engine(database_url: str, **kwargs) -> AsyncEngine:
    return create_async_engine(database_url, **kwargs)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = make_engine(
    settings.DATABASE_URL,
    echo=(settings.APP_ENV == "development"),
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

async_session = make_session_factory(engine)


async def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session


async def init_db(bind: AsyncEngine = engine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(bind: AsyncEngine = engine) -> None:
    await bind.dispose()
