"""FastAPI route definitions for the short-URL REST API.

This module maps HTTP requests onto the three service operations and maps
service errors back onto status codes and error bodies.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    GET  /:short_id
        └─ 307 Redirect (Cache-Control: max-age=<remaining>) or 404/500

    PUT  /:short_id
        ├─ PutUrlPayload (request body)
        └─ ShortenedUrl (201 created, 200 identical replay) or 400/409/500

    POST /
        ├─ PostUrlPayload (request body)
        └─ ShortenedUrl (200) or 400/500

Error Mapping
=============
::
    UrlNotFoundError ........................ 404
    ShortIdAlreadyTakenError ................ 409
    InternalError / UrlLookupError .......... 500  "Internal server error"
    any other PutUrlError / PostUrlError .... 400  error message

Every error body is ``{"error": ..., "error_id": ...}`` where ``error_id`` is
the request id, so a caller-reported id can be matched against server logs.

How to Use
===========
**Step 1 — Import and include router**::
    from shorturl.routes import router
    app.include_router(router)

**Step 2 — Access endpoints**::
    # Create under a chosen id
    PUT http://localhost:8000/abc123xy
    {"url": "https://example.com", "expiration_timestamp": "2030-01-01T00:00:00Z"}

    # Create under a derived id
    POST http://localhost:8000/
    {"url": "https://example.com", "expiration_timestamp": "2030-01-01T00:00:00Z"}

    # Redirect
    GET http://localhost:8000/abc123xy
"""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shorturl.database import get_session_factory
from shorturl.dependencies import RequestContext, get_request_context, get_url_service
from shorturl.enums import HealthStatus, UrlCreationStatus
from shorturl.exceptions import (
    InternalError,
    PostUrlError,
    PutUrlError,
    ShortIdAlreadyTakenError,
    UrlLookupError,
    UrlNotFoundError,
)
from shorturl.schemas import ErrorResponse, HealthResponse, PostUrlPayload, PutUrlPayload, ShortenedUrl
from shorturl.url_service import UrlRestService

__all__ = ["router"]

INTERNAL_ERROR_MESSAGE = "Internal server error"

router = APIRouter()


def _error_response(ctx: RequestContext, status_code: int, message: str) -> JSONResponse:
    body = ErrorResponse(error=message, error_id=ctx.request_id)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    ctx: RequestContext = Depends(get_request_context),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> HealthResponse:
    db_status = HealthStatus.HEALTHY

    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        ctx.logger.debug("Database health check passed")
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    return HealthResponse(status=db_status, database=db_status)


@router.get("/{short_id}", tags=["redirect"], response_model=None)
async def redirect_to_url(
    short_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: UrlRestService = Depends(get_url_service),
) -> RedirectResponse | JSONResponse:
    ctx.add_tag("redirect")

    try:
        redirect = await service.get_url(short_id)
    except UrlNotFoundError as exc:
        ctx.logger.info(f"Redirect failed - short ID not found: {short_id}")
        return _error_response(ctx, 404, str(exc))
    except UrlLookupError as exc:
        ctx.logger.error(f"Redirect failed for {short_id}: {exc}")
        return _error_response(ctx, 500, INTERNAL_ERROR_MESSAGE)

    ctx.logger.info(f"Redirecting {short_id} -> {redirect.url} ({ctx.get_duration():.1f}ms)")
    return RedirectResponse(
        url=redirect.url,
        status_code=307,
        headers={"Cache-Control": f"max-age={redirect.max_age_seconds}"},
    )


@router.put(
    "/{short_id}",
    response_model=ShortenedUrl,
    status_code=201,
    tags=["urls"],
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def put_url(
    short_id: str,
    payload: PutUrlPayload,
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
    service: UrlRestService = Depends(get_url_service),
):
    ctx.add_tag("url_creation")

    try:
        shortened_url, status = await service.put_url(short_id, payload.url, payload.expiration_timestamp)
    except InternalError as exc:
        ctx.logger.error(f"PUT {short_id} failed: {exc}")
        return _error_response(ctx, 500, INTERNAL_ERROR_MESSAGE)
    except ShortIdAlreadyTakenError as exc:
        ctx.logger.info(f"PUT {short_id} rejected: {exc}")
        return _error_response(ctx, 409, str(exc))
    except PutUrlError as exc:
        ctx.logger.info(f"PUT {short_id} rejected: {exc}")
        return _error_response(ctx, 400, str(exc))

    if status is UrlCreationStatus.ALREADY_EXISTS:
        response.status_code = 200
    return shortened_url


@router.post(
    "/",
    response_model=ShortenedUrl,
    tags=["urls"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def post_url(
    payload: PostUrlPayload,
    ctx: RequestContext = Depends(get_request_context),
    service: UrlRestService = Depends(get_url_service),
):
    ctx.add_tag("url_creation")

    try:
        shortened_url = await service.post_url(payload.url, payload.expiration_timestamp)
    except InternalError as exc:
        ctx.logger.error(f"POST failed for {payload.url}: {exc}")
        return _error_response(ctx, 500, INTERNAL_ERROR_MESSAGE)
    except PostUrlError as exc:
        ctx.logger.info(f"POST rejected for {payload.url}: {exc}")
        return _error_response(ctx, 400, str(exc))

    ctx.logger.info(f"Shortened {payload.url} -> {shortened_url.shortened_url_id}")
    return shortened_url
