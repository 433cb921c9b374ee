"""Shared enums for the short-URL service.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "RetryReason", "UrlCreationStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class UrlCreationStatus(StrEnum):
    """Outcome of a successful PUT."""

    NEWLY_CREATED = "newly_created"
    ALREADY_EXISTS = "already_exists"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    ERROR = "error"


class RetryReason(StrEnum):
    """Why a derived short ID had to be re-drawn."""

    INVALID_SHORT_ID = "invalid_short_id"
    SHORT_ID_TAKEN = "short_id_taken"
