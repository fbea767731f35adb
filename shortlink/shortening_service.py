"""Shortening service: validates creation requests and reserves shortcodes.

Request Flow
============
::
    ┌──────────────────┐
    │ POST /shorturls  │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐   InvalidUrl / InvalidValidity /
    │ build_command()  │── InvalidShortcode (no store access)
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ custom code?     │
    └────────┬─────────┘
    ┌────────┴─────────┐
    │ YES              │ NO
    ▼                  ▼
┌──────────┐    ┌──────────────┐
│ insert   │    │ generate_    │
│ Duplicate│    │ unique() +   │
│ → Taken  │    │ insert, retry│
└────┬─────┘    │ on lost race │
     │          └──────┬───────┘
     └───────┬─────────┘
             ▼
    ┌──────────────────┐
    │ {shortLink,      │
    │  expiry}         │
    └──────────────────┘

Key Behaviours
===============
- Every field is validated once, up front, producing a ``ShortenCommand``.
- Omitted or blank ``validity`` means ``DEFAULT_VALIDITY_MINUTES``.
- Omitted or blank ``shortcode`` means a generated code.
- Remote log events are fire-and-forget; their failure never fails creation.
"""

__all__ = ["ShortenCommand", "CreatedShortURL", "ShorteningService", "RESERVED_SHORTCODES"]

import datetime
import logging
import re
import time
from dataclasses import dataclass

import validators
from prometheus_client import Counter, Histogram

from shortlink.config import Settings
from shortlink.enums import LogLevel, LogPackage, LogStack, RequestStatus
from shortlink.exceptions import (
    DuplicateKeyError,
    InvalidShortcodeError,
    InvalidUrlError,
    InvalidValidityError,
    ShortcodeExhaustedError,
    ShortcodeTakenError,
    ShortlinkError,
    ValidationError,
)
from shortlink.generator import ShortcodeGenerator
from shortlink.records import Clock, ShortURLRecord, utc_now
from shortlink.remote_logger import RemoteLogger
from shortlink.store import URLRecordStore

# Path segments owned by other routes
RESERVED_SHORTCODES = frozenset({"health", "metrics", "shorturls", "docs", "redoc"})

_DIGITS = re.compile(r"[0-9]+")
_ALPHANUMERIC = re.compile(r"[A-Za-z0-9]+")

URL_CREATION_REQUESTS_TOTAL = Counter(
    "shortlink_creation_requests_total",
    "Total short URL creation requests",
    ["status"],
)
URL_CREATION_DURATION = Histogram(
    "shortlink_creation_duration_seconds",
    "Time taken to create short URLs",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
SHORTCODE_INSERT_RACES_TOTAL = Counter(
    "shortlink_shortcode_insert_races_total",
    "Generated shortcodes that lost an insert race and were regenerated",
)


@dataclass(frozen=True)
class ShortenCommand:
    """A validated creation request."""

    original_url: str
    validity_minutes: int
    custom_shortcode: str | None = None


@dataclass(frozen=True)
class CreatedShortURL:
    shortcode: str
    short_link: str
    expires_at: datetime.datetime | None


class ShorteningService:
    """Creates short URL records.

    Example:
        >>> service = ShorteningService(store, generator, settings)
        >>> created = await service.create_short_url("https://example.com", validity=10)
        >>> created.short_link
        'http://localhost:8000/aB3dE9'
    """

    def __init__(
        self,
        store: URLRecordStore,
        generator: ShortcodeGenerator,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        remote_logger: RemoteLogger | None = None,
        clock: Clock = utc_now,
    ):
        self._store = store
        self._generator = generator
        self._settings = settings
        self._logger = logger or logging.getLogger("shortlink")
        self._remote = remote_logger
        self._clock = clock

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create_short_url(
        self,
        url: object,
        validity: object = None,
        shortcode: object = None,
    ) -> CreatedShortURL:
        """Validate the raw request fields and create the record.

        Raises:
            InvalidUrlError, InvalidValidityError, InvalidShortcodeError:
                If a field is rejected; nothing is written.
            ShortcodeTakenError: If the custom shortcode already exists.
            ShortcodeExhaustedError: If no free generated code was found.
            StoreUnavailableError: If the store cannot be reached.
        """
        start_time = time.perf_counter()
        try:
            command = self.build_command(url, validity, shortcode)
            created = await self.create_from_command(command)
        except ShortlinkError as exc:
            URL_CREATION_DURATION.observe(time.perf_counter() - start_time)
            URL_CREATION_REQUESTS_TOTAL.labels(status=_status_for(exc)).inc()
            self._logger.warning(f"Short URL creation failed: {exc}")
            self._remote_log(LogLevel.ERROR, f"Short URL creation failed: {exc}")
            raise

        duration = time.perf_counter() - start_time
        URL_CREATION_DURATION.observe(duration)
        URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Short URL created: {created.shortcode} in {duration:.3f}s")
        self._remote_log(LogLevel.INFO, f"Short URL created: {created.short_link}")
        return created

    def build_command(self, url: object, validity: object = None, shortcode: object = None) -> ShortenCommand:
        """Turn loosely typed request fields into a validated command."""
        return ShortenCommand(
            original_url=self._parse_url(url),
            validity_minutes=self._parse_validity(validity),
            custom_shortcode=self._parse_shortcode(shortcode),
        )

    async def create_from_command(self, command: ShortenCommand) -> CreatedShortURL:
        now = self._clock()
        expires_at = now + datetime.timedelta(minutes=command.validity_minutes)

        if command.custom_shortcode is not None:
            shortcode = command.custom_shortcode
            record = ShortURLRecord(
                shortcode=shortcode,
                original_url=command.original_url,
                created_at=now,
                expires_at=expires_at,
            )
            try:
                await self._store.insert(record)
            except DuplicateKeyError as exc:
                raise ShortcodeTakenError(f"Shortcode '{shortcode}' is already taken") from exc
        else:
            shortcode = await self._insert_with_generated_code(command, now, expires_at)

        return CreatedShortURL(
            shortcode=shortcode,
            short_link=f"{self._settings.BASE_URL.rstrip('/')}/{shortcode}",
            expires_at=expires_at,
        )

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _insert_with_generated_code(
        self,
        command: ShortenCommand,
        now: datetime.datetime,
        expires_at: datetime.datetime,
    ) -> str:
        # generate_unique() checks existence before insert; another request can
        # still claim the same code in between, so the insert is retried.
        for _ in range(self._generator.max_attempts):
            shortcode = await self._generator.generate_unique(self._store)
            record = ShortURLRecord(
                shortcode=shortcode,
                original_url=command.original_url,
                created_at=now,
                expires_at=expires_at,
            )
            try:
                await self._store.insert(record)
                return shortcode
            except DuplicateKeyError:
                SHORTCODE_INSERT_RACES_TOTAL.inc()
                self._logger.warning(f"Generated shortcode {shortcode} lost an insert race, retrying")

        raise ShortcodeExhaustedError(
            f"Generated shortcodes kept colliding after {self._generator.max_attempts} inserts"
        )

    def _parse_url(self, url: object) -> str:
        if not isinstance(url, str) or not url.strip():
            raise InvalidUrlError("A URL is required")
        candidate = url.strip()
        if not validators.url(candidate):
            raise InvalidUrlError(f"Invalid URL provided: {candidate!r}")
        return candidate

    def _parse_validity(self, validity: object) -> int:
        if validity is None or (isinstance(validity, str) and not validity.strip()):
            return self._settings.DEFAULT_VALIDITY_MINUTES

        if isinstance(validity, bool):
            raise InvalidValidityError(f"Validity must be a whole number of minutes, got {validity!r}")
        if isinstance(validity, int):
            minutes = validity
        elif isinstance(validity, str) and _DIGITS.fullmatch(validity.strip()):
            minutes = int(validity.strip())
        else:
            raise InvalidValidityError(f"Validity must be a whole number of minutes, got {validity!r}")

        if minutes <= 0:
            raise InvalidValidityError(f"Validity must be positive, got {minutes}")
        if minutes > self._settings.MAX_VALIDITY_MINUTES:
            raise InvalidValidityError(
                f"Validity must be at most {self._settings.MAX_VALIDITY_MINUTES} minutes, got {minutes}"
            )
        return minutes

    def _parse_shortcode(self, shortcode: object) -> str | None:
        if shortcode is None or (isinstance(shortcode, str) and not shortcode.strip()):
            return None
        if not isinstance(shortcode, str):
            raise InvalidShortcodeError(f"Shortcode must be a string, got {shortcode!r}")

        candidate = shortcode.strip()
        low = self._settings.CUSTOM_CODE_MIN_LENGTH
        high = self._settings.CUSTOM_CODE_MAX_LENGTH
        if not low <= len(candidate) <= high:
            raise InvalidShortcodeError(f"Shortcode must be between {low} and {high} characters")
        if not _ALPHANUMERIC.fullmatch(candidate):
            raise InvalidShortcodeError("Shortcode must be alphanumeric")
        if candidate.lower() in RESERVED_SHORTCODES:
            raise InvalidShortcodeError(f"Shortcode '{candidate}' is reserved")
        return candidate

    def _remote_log(self, level: LogLevel, message: str) -> None:
        if self._remote is not None:
            self._remote.log(LogStack.BACKEND, level, LogPackage.SERVICE, message)


def _status_for(exc: ShortlinkError) -> RequestStatus:
    if isinstance(exc, ValidationError):
        return RequestStatus.VALIDATION_ERROR
    if isinstance(exc, ShortcodeTakenError):
        return RequestStatus.CONFLICT
    return RequestStatus.ERROR
