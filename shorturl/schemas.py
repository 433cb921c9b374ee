"""Pydantic schemas for request/response validation in the short-URL service.

This module defines Pydantic models for API input parsing and output
serialization. Payload fields are plain strings on purpose: URL and timestamp
validation belongs to the service, which reports each failure as its own
error kind.

Schema Hierarchy
=================
::
    PutUrlPayload / PostUrlPayload (Input)
    ├─ url: str
    └─ expiration_timestamp: str (RFC 3339)

    ShortenedUrl (Output)
    ├─ shortened_url_id: str
    ├─ long_url: str
    └─ expiration_timestamp: str (RFC 3339, UTC)

    ErrorResponse (Output)
    ├─ error: str
    └─ error_id: str

    HealthResponse (Output)
    ├─ status: HealthStatus
    └─ database: HealthStatus

Classes:
    PutUrlPayload:  Body of PUT /{id}.
    PostUrlPayload:  Body of POST /.
    ShortenedUrl:  A stored mapping as exposed to callers.
    ErrorResponse:  Body of every error response.
    HealthResponse:  Output schema for health checks.
"""

from pydantic import BaseModel, Field

from shorturl.enums import HealthStatus

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "PostUrlPayload",
    "PutUrlPayload",
    "ShortenedUrl",
]


class PutUrlPayload(BaseModel):
    url: str
    expiration_timestamp: str = Field(..., description="RFC 3339 timestamp, e.g. '2030-01-01T00:00:00Z'")


class PostUrlPayload(BaseModel):
    url: str
    expiration_timestamp: str = Field(..., description="RFC 3339 timestamp, e.g. '2030-01-01T00:00:00Z'")


class ShortenedUrl(BaseModel):
    shortened_url_id: str
    long_url: str
    expiration_timestamp: str = Field(..., description="Expiration as an RFC 3339 timestamp in UTC")


class ErrorResponse(BaseModel):
    error: str
    error_id: str


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
