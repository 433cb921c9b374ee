"""Garbage collector for expired short URLs.

Expired rows are already invisible to reads; this process reclaims their
storage. It runs once and exits by default, which suits a cron job or a
Kubernetes CronJob. With ``GC_INTERVAL_SECONDS`` set to a positive value it
keeps running and purges on that interval instead.

How to Use
===========
::
    DATABASE_URL=postgresql+asyncpg://... shorturl-gc
    DATABASE_URL=postgresql+asyncpg://... GC_INTERVAL_SECONDS=300 shorturl-gc
"""

import asyncio
import logging

from shorturl.config import get_settings
from shorturl.database import async_session, close_db
from shorturl.exceptions import RepositoryError
from shorturl.logging_config import configure_logging
from shorturl.repository import SqlAlchemyUrlRepository, UrlRepository

__all__ = ["main", "purge_expired", "run"]

logger = logging.getLogger(__name__)


async def purge_expired(repository: UrlRepository) -> int:
    deleted = await repository.delete_expired_urls()
    logger.info(f"Deleted {deleted} expired URLs")
    return deleted


async def run(repository: UrlRepository, interval_seconds: int = 0) -> None:
    """Purge once, or forever every ``interval_seconds`` when it is positive.

    In interval mode a failed purge is logged and retried on the next tick.
    """
    if interval_seconds <= 0:
        await purge_expired(repository)
        return

    while True:
        try:
            await purge_expired(repository)
        except RepositoryError as exc:
            logger.error(f"Purge failed, retrying in {interval_seconds}s: {exc}")
        await asyncio.sleep(interval_seconds)


async def _main() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    try:
        await run(SqlAlchemyUrlRepository(async_session), settings.GC_INTERVAL_SECONDS)
    finally:
        await close_db()


def main() -> None:
    asyncio.run(_main())


if __name__ == "__main__":
    main()
