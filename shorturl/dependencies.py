"""Request-scoped dependency wiring for the HTTP boundary.

This module is the only place where the repository and the service are
constructed for a request. Everything is handed down through constructors:
the session factory comes from ``shorturl.database``, the repository wraps it,
and the service receives the repository together with a logger that carries
the request's identity.

Dependency Graph
================
::
    get_session_factory() ──▶ get_url_repository() ──┐
                                                       ├──▶ get_url_service()
    get_request_context() ────────────────────────────┘
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shorturl.database import get_session_factory
from shorturl.repository import SqlAlchemyUrlRepository, UrlRepository
from shorturl.url_service import UrlRestService, UrlShorteningService

__all__ = [
    "RequestContext",
    "get_request_context",
    "get_url_repository",
    "get_url_service",
]

REQUEST_ID_HEADER = "X-Request-ID"


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Identity and timing of a single HTTP request.

    Attributes:
        request_id: Caller-supplied ``X-Request-ID`` or a fresh UUID4; also
            returned to callers as ``error_id`` in error bodies
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
        tags: Request tags for categorization
    """

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.time)
    tags: list[str] = field(default_factory=list)

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get the service logger with request context attached."""
        return logging.LoggerAdapter(
            logging.getLogger("shorturl"),
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_request_context(request: Request) -> RequestContext:
    client_ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    request_id = request.headers.get(REQUEST_ID_HEADER)

    if request_id:
        return RequestContext(request_id=request_id, user_agent=user_agent, client_ip=client_ip)
    return RequestContext(user_agent=user_agent, client_ip=client_ip)


async def get_url_repository(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> UrlRepository:
    return SqlAlchemyUrlRepository(session_factory)


def get_url_service(
    ctx: RequestContext = Depends(get_request_context),
    repository: UrlRepository = Depends(get_url_repository),
) -> UrlRestService:
    """Create the URL service for this request.

    Args:
        ctx: Request context supplying the request-scoped logger
        repository: Storage backend

    Returns:
        UrlRestService: Service instance bound to this request
    """
    return UrlShorteningService(repository, logger=ctx.logger)
