"""Exception hierarchy for the short-URL service.

Every layer raises its own kinds and converts the layer below at its boundary
(``raise ... from exc``): domain validation errors become service validation
errors, repository errors become service internal errors, and the HTTP layer
maps service errors to status codes.

Hierarchy
=========
::
    ShortUrlServiceError
    ├─ ShortIdValidationError (ValueError)
    │  ├─ InvalidShortIdLengthError
    │  └─ InvalidShortIdCharactersError
    ├─ ExpirationTimeValidationError (ValueError)
    │  ├─ ExpirationTimeInPastError
    │  └─ ExpirationTimeTooFarInFutureError
    ├─ RepositoryError
    ├─ ItemAlreadyExistsError
    ├─ GetUrlError
    │  ├─ UrlNotFoundError
    │  └─ UrlLookupError
    ├─ PutUrlError
    │  ├─ InvalidShortIdError
    │  └─ ShortIdAlreadyTakenError
    └─ PostUrlError
       (shared by PUT and POST)
       ├─ TimestampParseError
       ├─ InvalidExpirationTimeError
       ├─ InvalidUrlError
       └─ InternalError
          └─ RetriesExhaustedError
"""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shorturl.domain import ShortUrl

__all__ = [
    "ExpirationTimeInPastError",
    "ExpirationTimeTooFarInFutureError",
    "ExpirationTimeValidationError",
    "GetUrlError",
    "InternalError",
    "InvalidExpirationTimeError",
    "InvalidShortIdCharactersError",
    "InvalidShortIdError",
    "InvalidShortIdLengthError",
    "InvalidUrlError",
    "ItemAlreadyExistsError",
    "PostUrlError",
    "PutUrlError",
    "RepositoryError",
    "RetriesExhaustedError",
    "ShortIdAlreadyTakenError",
    "ShortIdValidationError",
    "ShortUrlServiceError",
    "TimestampParseError",
    "UrlLookupError",
    "UrlNotFoundError",
]


class ShortUrlServiceError(Exception):
    """Base exception for all application-specific errors."""

    error_code = "app:short_url_service_error"


# ============================================================================
# DOMAIN VALIDATION
# ============================================================================


class ShortIdValidationError(ShortUrlServiceError, ValueError):
    """Raised when a short ID violates its format invariants."""

    error_code = "domain:short_id_validation_error"


class InvalidShortIdLengthError(ShortIdValidationError):
    error_code = "domain:invalid_short_id_length"

    def __init__(self, min_len: int, max_len: int) -> None:
        self.min_len = min_len
        self.max_len = max_len
        super().__init__(f"short ID length must be between {min_len} and {max_len}")


class InvalidShortIdCharactersError(ShortIdValidationError):
    error_code = "domain:invalid_short_id_characters"

    def __init__(self, invalid_chars: str) -> None:
        self.invalid_chars = invalid_chars
        super().__init__(
            f"short ID must only contain alpha-numeric characters; invalid chars: {invalid_chars}"
        )


class ExpirationTimeValidationError(ShortUrlServiceError, ValueError):
    """Raised when an expiration time falls outside the allowed window."""

    error_code = "domain:expiration_time_validation_error"


class ExpirationTimeInPastError(ExpirationTimeValidationError):
    error_code = "domain:expiration_time_in_past"

    def __init__(self) -> None:
        super().__init__("expiration time cannot be in the past")


class ExpirationTimeTooFarInFutureError(ExpirationTimeValidationError):
    error_code = "domain:expiration_time_too_far_in_future"

    def __init__(self, max_time: datetime.datetime) -> None:
        self.max_time = max_time
        super().__init__(
            f"expiration time is too far in the future; the current maximum is {max_time.isoformat()}"
        )


# ============================================================================
# REPOSITORY
# ============================================================================


class RepositoryError(ShortUrlServiceError):
    """Raised on store faults or when a persisted row cannot become a domain value."""

    error_code = "repo:internal_error"


class ItemAlreadyExistsError(ShortUrlServiceError):
    """Raised when an unexpired row already occupies the requested short ID."""

    error_code = "repo:item_already_exists"

    def __init__(self, existing: ShortUrl) -> None:
        self.existing = existing
        super().__init__("an item with the specified id already exists in database and is not expired")


# ============================================================================
# SERVICE
# ============================================================================


class GetUrlError(ShortUrlServiceError):
    """Base exception for URL lookups."""

    error_code = "service:get_url_error"


class UrlNotFoundError(GetUrlError):
    error_code = "service:url_not_found"

    def __init__(self, short_id: str) -> None:
        self.short_id = short_id
        super().__init__(f"no unexpired short URL with id {short_id!r}")


class UrlLookupError(GetUrlError):
    """The store failed while looking up a short URL."""

    error_code = "service:url_lookup_error"


class PutUrlError(ShortUrlServiceError):
    """Base exception for creating a short URL under a caller-chosen ID."""

    error_code = "service:put_url_error"


class PostUrlError(ShortUrlServiceError):
    """Base exception for creating a short URL under a derived ID."""

    error_code = "service:post_url_error"


class _ValidationFailure:
    """Mixin for service errors wrapping a lower-level validation failure."""

    def __init__(self, reason: Exception) -> None:
        self.reason = reason
        super().__init__(f"{self.prefix}: {reason}")


class TimestampParseError(_ValidationFailure, PutUrlError, PostUrlError):
    error_code = "service:timestamp_parse_error"
    prefix = "failed to parse timestamp"


class InvalidExpirationTimeError(_ValidationFailure, PutUrlError, PostUrlError):
    error_code = "service:invalid_expiration_time"
    prefix = "invalid expiration time"


class InvalidUrlError(_ValidationFailure, PutUrlError, PostUrlError):
    error_code = "service:invalid_url"
    prefix = "invalid URL"


class InvalidShortIdError(_ValidationFailure, PutUrlError):
    error_code = "service:invalid_short_id"
    prefix = "invalid short ID"


class ShortIdAlreadyTakenError(PutUrlError):
    error_code = "service:short_id_already_taken"

    def __init__(self, short_id: str) -> None:
        self.short_id = short_id
        super().__init__("short ID is already taken")


class InternalError(PutUrlError, PostUrlError):
    """Operator-fault failure; details are logged, never shown to callers."""

    error_code = "service:internal_error"


class RetriesExhaustedError(InternalError):
    error_code = "service:retries_exhausted"

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Exhausted retry attempts ({attempts}) while allocating a short ID")
