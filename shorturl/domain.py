"""Self-validating value types for the short-URL service.

Each value type validates its invariants in ``__post_init__`` and is frozen
afterwards, so holding a ``ShortId`` or an ``ExpirationTime`` is proof that the
value was valid at construction time.

Value Types
===========
::
    ShortUrl
    ├─ short_id: ShortId              6-16 ASCII alphanumerics
    ├─ url: str                       validated by the service before construction
    └─ expiration_time: ExpirationTime  now <= t <= now + 3650 days (UTC)

How to Use
===========
**Step 1 — Validate a short ID**::
    short_id = ShortId("abc123xy")
    short_id.value  # 'abc123xy'

**Step 2 — Validate an expiration**::
    expiration = ExpirationTime(parse_rfc3339("2030-01-01T00:00:00Z"))

**Step 3 — Build the aggregate**::
    ShortUrl(short_id, "https://example.com", expiration)

Key Behaviours
===============
- Equality is structural on every type.
- ``ExpirationTime`` uses the current UTC time as its reference unless an
  explicit ``now`` is passed, which the repository does so that its liveness
  check and re-validation agree.
- RFC 3339 parsing is strict: a time-zone designator is mandatory.
"""

import datetime
import re
from dataclasses import InitVar, dataclass

import validators

from shorturl.exceptions import (
    ExpirationTimeInPastError,
    ExpirationTimeTooFarInFutureError,
    InvalidShortIdCharactersError,
    InvalidShortIdLengthError,
)

__all__ = [
    "MAX_TTL",
    "SHORT_ID_MAX_LEN",
    "SHORT_ID_MIN_LEN",
    "ExpirationTime",
    "ShortId",
    "ShortUrl",
    "ensure_url",
    "format_rfc3339",
    "parse_rfc3339",
    "utcnow",
]

SHORT_ID_MIN_LEN = 6
SHORT_ID_MAX_LEN = 16
MAX_TTL = datetime.timedelta(days=10 * 365)

_RFC3339_PATTERN = re.compile(
    r"\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})"
)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True, order=True)
class ShortId:
    value: str

    def __post_init__(self) -> None:
        # Length is measured in UTF-8 bytes, matching the column width
        if not SHORT_ID_MIN_LEN <= len(self.value.encode("utf-8")) <= SHORT_ID_MAX_LEN:
            raise InvalidShortIdLengthError(SHORT_ID_MIN_LEN, SHORT_ID_MAX_LEN)

        invalid_chars = "".join(c for c in self.value if not (c.isascii() and c.isalnum()))
        if invalid_chars:
            raise InvalidShortIdCharactersError(invalid_chars)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class ExpirationTime:
    value: datetime.datetime
    now: InitVar[datetime.datetime | None] = None

    def __post_init__(self, now: datetime.datetime | None) -> None:
        if self.value.tzinfo is None:
            raise ValueError("expiration time must be timezone-aware")
        object.__setattr__(self, "value", self.value.astimezone(datetime.timezone.utc))

        reference = now if now is not None else utcnow()
        if self.value < reference:
            raise ExpirationTimeInPastError()

        max_time = reference + MAX_TTL
        if self.value > max_time:
            raise ExpirationTimeTooFarInFutureError(max_time)


@dataclass(frozen=True)
class ShortUrl:
    short_id: ShortId
    url: str
    expiration_time: ExpirationTime


def ensure_url(raw: str) -> str:
    """Return ``raw`` unchanged if it is a well-formed absolute URL.

    Raises:
        ValueError: If ``raw`` does not parse as a URL.
    """
    # simple_host admits single-label hosts such as localhost
    if not validators.url(raw, simple_host=True):
        raise ValueError(f"{raw!r} is not a valid URL")
    return raw


def parse_rfc3339(raw: str) -> datetime.datetime:
    """Parse an RFC 3339 timestamp and convert it to UTC.

    Raises:
        ValueError: If ``raw`` is not a valid RFC 3339 date-time.
    """
    if not _RFC3339_PATTERN.fullmatch(raw):
        raise ValueError(f"{raw!r} is not an RFC 3339 timestamp")
    # fromisoformat only understands the upper-case designators
    parsed = datetime.datetime.fromisoformat(raw.upper())
    try:
        return parsed.astimezone(datetime.timezone.utc)
    except OverflowError as exc:
        raise ValueError(f"{raw!r} is outside the supported date range") from exc


def format_rfc3339(value: datetime.datetime) -> str:
    text = value.astimezone(datetime.timezone.utc).isoformat()
    return text.removesuffix("+00:00") + "Z"
