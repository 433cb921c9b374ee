"""Short-URL Service Layer - Core Business Logic

This module provides the service layer for the short-URL service: lookup with
remaining-lifetime computation, creation under a caller-chosen ID with
idempotent replay, and creation under a content-derived ID with a bounded,
re-salted collision retry loop.

Architecture Overview
==================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                    Service Layer                            │
    │  ┌─────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │   get_url       │  │   put_url       │  │  post_url    │ │
    │  │                 │  │                 │  │              │ │
    │  │ • Lookup        │  │ • Validate      │  │ • Derive ID  │ │
    │  │ • Max-age       │  │ • Save          │  │ • Delegate   │ │
    │  │                 │  │ • Replay check  │  │ • Re-salt    │ │
    │  └─────────────────┘  └─────────────────┘  └──────────────┘ │
    └─────────────────────────────────────────────────────────────┘
                                  │
                                  ▼
                        ┌─────────────────┐
                        │  UrlRepository  │
                        │  (PostgreSQL)   │
                        └─────────────────┘

Request Flow Diagrams
=====================

PUT Flow
--------
::
    ┌─────────────┐
    │ Parse RFC   │── fail ──▶ TimestampParseError
    │ 3339 → UTC  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ ShortId     │── fail ──▶ InvalidShortIdError
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ URL         │── fail ──▶ InvalidUrlError
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Expiration  │── fail ──▶ InvalidExpirationTimeError
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ save_url    │── RepositoryError ──▶ InternalError
    └──────┬──────┘
    EXISTS? │
    ┌──────┴────────────┐
    │ NO                 │ YES
    ▼                    ▼
  NEWLY_CREATED    identical? ── YES ──▶ ALREADY_EXISTS
                         │
                         NO ──▶ ShortIdAlreadyTakenError

POST Flow (state machine Attempting(1..3) → Success | Failed)
------------------------------------------------------------
::
    salt = 32 zero bytes
        │
        ▼
    ┌──────────────────────────┐
    │ id = base62(le_u40(       │
    │   blake3(url ‖ ts, salt)))│
    └──────┬───────────────────┘
           ▼
    ┌─────────────┐
    │ PUT(id, ..) │── ok (new or existing) ──▶ Success
    └──────┬──────┘
           │ InvalidShortId / ShortIdAlreadyTaken
           ▼
    attempts left? ── YES ──▶ salt = random 32 bytes, loop
           │
           NO ──▶ RetriesExhaustedError

    Any other error is terminal and propagates immediately.

Key Behaviours
===============
- Starting from a zero salt makes identical (url, expiration) submissions
  derive the same ID, so repeated POSTs deduplicate without a caller-supplied
  ID.
- Random salts on retry break ties when different content collides; at most
  three attempts are made.
- Remaining lifetime is clamped at zero; a race with expiration is expected.
- The service never touches storage directly and keeps no shared mutable
  state; every request is independent.

Usage Examples
=============
```python
service = UrlShorteningService(SqlAlchemyUrlRepository(async_session))

shortened, status = await service.put_url("abc123xy", "https://example.com", "2030-01-01T00:00:00Z")
shortened = await service.post_url("https://example.com", "2030-01-01T00:00:00Z")
redirect = await service.get_url(shortened.shortened_url_id)
```
"""

import logging
import secrets
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from blake3 import blake3
from prometheus_client import Counter, Histogram

from shorturl.domain import (
    ExpirationTime,
    ShortId,
    ShortUrl,
    ensure_url,
    format_rfc3339,
    parse_rfc3339,
    utcnow,
)
from shorturl.enums import RequestStatus, RetryReason, UrlCreationStatus
from shorturl.exceptions import (
    ExpirationTimeValidationError,
    InternalError,
    InvalidExpirationTimeError,
    InvalidShortIdError,
    InvalidUrlError,
    ItemAlreadyExistsError,
    PostUrlError,
    PutUrlError,
    RepositoryError,
    RetriesExhaustedError,
    ShortIdAlreadyTakenError,
    ShortIdValidationError,
    TimestampParseError,
    UrlLookupError,
    UrlNotFoundError,
)
from shorturl.repository import UrlRepository
from shorturl.schemas import ShortenedUrl

__all__ = [
    "BASE62_ALPHABET",
    "PUT_ATTEMPTS",
    "Redirect",
    "UrlRestService",
    "UrlShorteningService",
    "derive_short_id",
]


# ============================================================================
# CONSTANTS AND CONFIGURATION
# ============================================================================

BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
PUT_ATTEMPTS = 3
SALT_LEN = 32
HASH_BYTES_TO_TAKE = 5


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

URL_REQUESTS_TOTAL = Counter(
    "shorturl_requests_total",
    "Total service operations",
    ["operation", "status"],
)
URL_OPERATION_DURATION = Histogram(
    "shorturl_operation_duration_seconds",
    "Time taken by service operations",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
SHORT_ID_RETRIES_TOTAL = Counter(
    "shorturl_short_id_retries_total",
    "Derived short IDs that had to be re-drawn",
    ["reason"],
)


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass(frozen=True)
class Redirect:
    url: str
    max_age_seconds: int


# ============================================================================
# SHORT ID DERIVATION
# ============================================================================


def _base62_encode(number: int) -> str:
    """Encode a number to base62 string.

    Args:
        number: Number to encode (must be non-negative)

    Returns:
        str: Base62 encoded string

    Example:
        >>> _base62_encode(12345)
        '3D7'
    """
    if number < 0:
        raise ValueError("Number must be non-negative")

    if number == 0:
        return BASE62_ALPHABET[0]

    base = len(BASE62_ALPHABET)
    result = []

    while number > 0:
        number, remainder = divmod(number, base)
        result.append(BASE62_ALPHABET[remainder])

    return "".join(result[::-1])


def derive_short_id(url: str, expiration_timestamp: str, salt: bytes) -> str:
    """Derive a candidate short ID from content.

    The first five bytes of the keyed BLAKE3 digest of ``url`` followed by
    ``expiration_timestamp`` are read as a little-endian integer and base62
    encoded. The result is not guaranteed to be a valid ``ShortId``; short
    encodings are rejected by validation and retried by the caller.

    Args:
        url: Long URL exactly as submitted.
        expiration_timestamp: Expiration timestamp exactly as submitted.
        salt: 32-byte hash key.

    Returns:
        str: Candidate short ID of at most 7 characters.
    """
    hasher = blake3(key=salt)
    hasher.update(url.encode("utf-8"))
    hasher.update(expiration_timestamp.encode("utf-8"))
    digest = hasher.digest()
    return _base62_encode(int.from_bytes(digest[:HASH_BYTES_TO_TAKE], "little"))


def _random_salt() -> bytes:
    return secrets.token_bytes(SALT_LEN)


# ============================================================================
# SERVICE CONTRACT
# ============================================================================


class UrlRestService(ABC):
    """Operations exposed to the HTTP boundary."""

    @abstractmethod
    async def get_url(self, short_id: str) -> Redirect:
        ...

    @abstractmethod
    async def put_url(
        self,
        short_id: str,
        url: str,
        expiration_timestamp: str,
    ) -> tuple[ShortenedUrl, UrlCreationStatus]:
        ...

    @abstractmethod
    async def post_url(self, url: str, expiration_timestamp: str) -> ShortenedUrl:
        ...


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================


class UrlShorteningService(UrlRestService):
    """Core service class for short-URL operations.

    Example:
        >>> service = UrlShorteningService(repository, logger=ctx.logger)
        >>> shortened = await service.post_url("https://example.com", "2030-01-01T00:00:00Z")
        >>> print(f"Shortened: {shortened.shortened_url_id}")
    """

    def __init__(
        self,
        repository: UrlRepository,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        salt_factory: Callable[[], bytes] = _random_salt,
    ) -> None:
        """Initialize the service with its collaborators.

        Args:
            repository: Storage backend for short-URL mappings
            logger: Logger to use; defaults to this module's logger
            salt_factory: Source of fresh 32-byte salts for collision retries
        """
        self._repository = repository
        self._logger = logger or logging.getLogger(__name__)
        self._salt_factory = salt_factory

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def get_url(self, short_id: str) -> Redirect:
        """Resolve a short ID to its long URL.

        Args:
            short_id: Raw identifier from the request path

        Returns:
            Redirect: Target URL and the seconds left until expiration

        Raises:
            UrlNotFoundError: No unexpired mapping exists for ``short_id``
            UrlLookupError: The store failed
        """
        start_time = time.perf_counter()
        try:
            short_url = await self._repository.retrieve_url(short_id)
        except RepositoryError as exc:
            self._record("get", RequestStatus.ERROR, start_time)
            self._logger.error(f"Lookup failed for {short_id!r}: {exc}")
            raise UrlLookupError(f"failed to look up short ID {short_id!r}") from exc

        if short_url is None:
            self._record("get", RequestStatus.NOT_FOUND, start_time)
            raise UrlNotFoundError(short_id)

        remaining = short_url.expiration_time.value - utcnow()
        max_age_seconds = max(0, int(remaining.total_seconds()))

        self._record("get", RequestStatus.SUCCESS, start_time)
        return Redirect(url=short_url.url, max_age_seconds=max_age_seconds)

    async def put_url(
        self,
        short_id: str,
        url: str,
        expiration_timestamp: str,
    ) -> tuple[ShortenedUrl, UrlCreationStatus]:
        """Store ``url`` under the caller-chosen ``short_id``.

        Submitting the exact same (id, url, expiration) again is an idempotent
        replay and succeeds with ``ALREADY_EXISTS``.

        Args:
            short_id: Caller-chosen identifier
            url: Long URL
            expiration_timestamp: RFC 3339 expiration timestamp

        Returns:
            tuple[ShortenedUrl, UrlCreationStatus]: Stored mapping and whether
            this call created it

        Raises:
            TimestampParseError: ``expiration_timestamp`` is not RFC 3339
            InvalidShortIdError: ``short_id`` violates the ID format
            InvalidUrlError: ``url`` does not parse
            InvalidExpirationTimeError: Expiration is in the past or too far ahead
            ShortIdAlreadyTakenError: ``short_id`` is bound to different content
            InternalError: The store failed
        """
        start_time = time.perf_counter()
        try:
            result = await self._put_url(short_id, url, expiration_timestamp)
        except ShortIdAlreadyTakenError:
            self._record("put", RequestStatus.CONFLICT, start_time)
            raise
        except InternalError:
            self._record("put", RequestStatus.ERROR, start_time)
            raise
        except PutUrlError:
            self._record("put", RequestStatus.VALIDATION_ERROR, start_time)
            raise

        self._record("put", RequestStatus.SUCCESS, start_time)
        return result

    async def post_url(self, url: str, expiration_timestamp: str) -> ShortenedUrl:
        """Store ``url`` under an ID derived from its content.

        Args:
            url: Long URL
            expiration_timestamp: RFC 3339 expiration timestamp

        Returns:
            ShortenedUrl: The stored mapping, newly created or deduplicated

        Raises:
            TimestampParseError: ``expiration_timestamp`` is not RFC 3339
            InvalidUrlError: ``url`` does not parse
            InvalidExpirationTimeError: Expiration is in the past or too far ahead
            InternalError: The store failed or every attempt collided
        """
        start_time = time.perf_counter()
        # A zero salt lets a repeated POST land on the ID it got last time
        salt = bytes(SALT_LEN)

        for attempt in range(1, PUT_ATTEMPTS + 1):
            if attempt > 1:
                salt = self._salt_factory()
            attempt_id = derive_short_id(url, expiration_timestamp, salt)

            try:
                shortened_url, _ = await self._put_url(attempt_id, url, expiration_timestamp)
            except InvalidShortIdError as exc:
                # Small hash values encode to fewer than six characters
                SHORT_ID_RETRIES_TOTAL.labels(reason=RetryReason.INVALID_SHORT_ID).inc()
                self._logger.warning(
                    f"Generated invalid ShortId {attempt_id!r} (attempt {attempt}/{PUT_ATTEMPTS}): {exc.reason}"
                )
            except ShortIdAlreadyTakenError:
                SHORT_ID_RETRIES_TOTAL.labels(reason=RetryReason.SHORT_ID_TAKEN).inc()
                self._logger.warning(
                    f"Generated ShortId {attempt_id!r} that was already taken (attempt {attempt}/{PUT_ATTEMPTS})"
                )
            except InternalError as exc:
                self._record("post", RequestStatus.ERROR, start_time)
                self._logger.error(f"Encountered internal error in delegated PUT call: {exc}")
                raise InternalError("Encountered internal error in delegated PUT call") from exc
            except PostUrlError:
                self._record("post", RequestStatus.VALIDATION_ERROR, start_time)
                raise
            else:
                self._record("post", RequestStatus.SUCCESS, start_time)
                return shortened_url

        self._record("post", RequestStatus.ERROR, start_time)
        self._logger.error(f"Exhausted {PUT_ATTEMPTS} attempts allocating a short ID for {url!r}")
        raise RetriesExhaustedError(PUT_ATTEMPTS)

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _put_url(
        self,
        short_id: str,
        url: str,
        expiration_timestamp: str,
    ) -> tuple[ShortenedUrl, UrlCreationStatus]:
        candidate = self._build_short_url(short_id, url, expiration_timestamp)

        try:
            saved = await self._repository.save_url(candidate)
        except ItemAlreadyExistsError as exc:
            if exc.existing == candidate:
                self._logger.info(f"Idempotent replay for short ID {short_id!r}")
                return _to_shortened_url(exc.existing), UrlCreationStatus.ALREADY_EXISTS
            raise ShortIdAlreadyTakenError(short_id) from exc
        except RepositoryError as exc:
            self._logger.error(f"Failed to save short ID {short_id!r}: {exc}")
            raise InternalError(f"failed to save short ID {short_id!r}") from exc

        self._logger.info(f"Created short ID {short_id!r} -> {url}")
        return _to_shortened_url(saved), UrlCreationStatus.NEWLY_CREATED

    @staticmethod
    def _build_short_url(short_id: str, url: str, expiration_timestamp: str) -> ShortUrl:
        """Validate the three raw inputs independently, in a fixed order."""
        try:
            expiration = parse_rfc3339(expiration_timestamp)
        except ValueError as exc:
            raise TimestampParseError(exc) from exc

        try:
            valid_short_id = ShortId(short_id)
        except ShortIdValidationError as exc:
            raise InvalidShortIdError(exc) from exc

        try:
            valid_url = ensure_url(url)
        except ValueError as exc:
            raise InvalidUrlError(exc) from exc

        try:
            expiration_time = ExpirationTime(expiration)
        except ExpirationTimeValidationError as exc:
            raise InvalidExpirationTimeError(exc) from exc

        return ShortUrl(short_id=valid_short_id, url=valid_url, expiration_time=expiration_time)

    @staticmethod
    def _record(operation: str, status: RequestStatus, start_time: float) -> None:
        URL_OPERATION_DURATION.labels(operation=operation).observe(time.perf_counter() - start_time)
        URL_REQUESTS_TOTAL.labels(operation=operation, status=status).inc()


def _to_shortened_url(short_url: ShortUrl) -> ShortenedUrl:
    return ShortenedUrl(
        shortened_url_id=short_url.short_id.value,
        long_url=short_url.url,
        expiration_timestamp=format_rfc3339(short_url.expiration_time.value),
    )
