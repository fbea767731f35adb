"""Redirect & analytics service: resolves shortcodes and records clicks.

Request Flow — resolve()
========================
::
    ┌─────────────┐
    │ GET /:code  │
    └──────┬──────┘
           ▼
    ┌─────────────┐  miss  ┌─────────────┐
    │ Redis cache │──────►│ Record store│── absent ──► NotFound (404)
    │ (optional)  │        │ + cache set │
    └──────┬──────┘        └──────┬──────┘
       hit │                      │
           └──────────┬───────────┘
                      ▼
              ┌───────────────┐
              │ now > expiry? │── yes ──► Expired (410)
              └───────┬───────┘
                      ▼
              ┌───────────────┐
              │ append click  │── failure logged, not raised
              └───────┬───────┘
                      ▼
              ┌───────────────┐
              │ 302 Redirect  │
              └───────────────┘

Key Behaviours
===============
- Expiry is checked on every redirect against the injected clock; there is
  no stored "expired" state.
- The click is appended before the redirect is returned, so a completed
  redirect is always counted unless the store failed.
- ``get_stats`` reads the store directly and ignores expiry.
"""

__all__ = ["ClickContext", "RedirectService"]

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass

from prometheus_client import Counter, Histogram

from shortlink.cache import RedirectCache
from shortlink.enums import LogLevel, LogPackage, LogStack, RequestStatus
from shortlink.exceptions import (
    RecordNotFoundError,
    ShortcodeExpiredError,
    ShortcodeNotFoundError,
    StoreUnavailableError,
)
from shortlink.records import UNKNOWN, ClickRecord, Clock, ShortURLRecord, utc_now
from shortlink.remote_logger import RemoteLogger
from shortlink.schemas import CachedURLPayload
from shortlink.store import URLRecordStore

URL_REDIRECT_REQUESTS_TOTAL = Counter(
    "shortlink_redirect_requests_total",
    "Total redirect requests",
    ["status"],
)
URL_LOOKUP_DURATION = Histogram(
    "shortlink_lookup_duration_seconds",
    "Time taken to resolve shortcodes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)
CLICKS_RECORDED_TOTAL = Counter(
    "shortlink_clicks_recorded_total",
    "Click events appended to the record store",
)
CLICK_RECORD_FAILURES_TOTAL = Counter(
    "shortlink_click_record_failures_total",
    "Click events that could not be stored",
)

# Checked in order; the first non-empty value wins
_LOCATION_HEADERS = ("cf-ipcountry", "x-country-code")


@dataclass(frozen=True)
class ClickContext:
    """Request-derived attributes of a click."""

    source: str = UNKNOWN
    location: str = UNKNOWN

    @classmethod
    def from_headers(cls, headers: Mapping[str, str], client_host: str | None = None) -> "ClickContext":
        """Derive source from the referrer and a best-effort location.

        ``headers`` must be case-insensitive or use lowercase keys.
        """
        source = (headers.get("referer") or "").strip() or UNKNOWN

        location = ""
        for header in _LOCATION_HEADERS:
            location = (headers.get(header) or "").strip()
            if location:
                break
        if not location:
            forwarded_for = headers.get("x-forwarded-for") or ""
            location = forwarded_for.split(",")[0].strip()
        if not location:
            location = (client_host or "").strip()

        return cls(source=source, location=location or UNKNOWN)


class RedirectService:
    """Resolves shortcodes for redirects and serves click statistics."""

    def __init__(
        self,
        store: URLRecordStore,
        cache: RedirectCache | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        remote_logger: RemoteLogger | None = None,
        clock: Clock = utc_now,
    ):
        self._store = store
        self._cache = cache
        self._logger = logger or logging.getLogger("shortlink")
        self._remote = remote_logger
        self._clock = clock

    async def resolve(self, shortcode: str, click: ClickContext | None = None) -> str:
        """Return the original URL for a live shortcode and record the click.

        Raises:
            ShortcodeNotFoundError: If no record has this shortcode.
            ShortcodeExpiredError: If the record's expiry has passed.
            StoreUnavailableError: If the lookup itself could not reach the store.
        """
        start_time = time.perf_counter()
        target = await self._lookup(shortcode)
        URL_LOOKUP_DURATION.observe(time.perf_counter() - start_time)

        if target is None:
            URL_REDIRECT_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            self._logger.warning(f"Redirect failed - shortcode not found: {shortcode}")
            self._remote_log(LogLevel.WARN, f"Shortcode not found: {shortcode}")
            raise ShortcodeNotFoundError(f"Short URL '{shortcode}' not found")

        now = self._clock()
        if target.expires_at is not None and now > target.expires_at:
            URL_REDIRECT_REQUESTS_TOTAL.labels(status=RequestStatus.EXPIRED).inc()
            self._logger.info(f"Redirect refused - shortcode expired: {shortcode}")
            self._remote_log(LogLevel.WARN, f"Shortcode expired: {shortcode}")
            raise ShortcodeExpiredError(f"Short URL '{shortcode}' has expired")

        click = click or ClickContext()
        await self._record_click(shortcode, ClickRecord(timestamp=now, source=click.source, location=click.location))

        URL_REDIRECT_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Redirect: {shortcode} -> {target.original_url}")
        self._remote_log(LogLevel.INFO, f"Redirected {shortcode}")
        return target.original_url

    async def get_stats(self, shortcode: str) -> ShortURLRecord:
        """Return the full record with its ordered clicks, expired or not.

        Raises:
            ShortcodeNotFoundError: If no record has this shortcode.
        """
        record = await self._store.find_by_shortcode(shortcode)
        if record is None:
            self._logger.warning(f"Stats not found for shortcode: {shortcode}")
            self._remote_log(LogLevel.WARN, f"Stats requested for unknown shortcode: {shortcode}")
            raise ShortcodeNotFoundError(f"Short URL '{shortcode}' not found")

        self._logger.debug(f"Stats served for {shortcode}: {record.total_clicks} clicks")
        return record

    async def _lookup(self, shortcode: str) -> CachedURLPayload | None:
        if self._cache is not None:
            cached = await self._cache.get(shortcode)
            if cached is not None:
                return cached

        target = await self._store.find_target(shortcode)
        if target is not None and self._cache is not None:
            await self._cache.set(target)
        return target

    async def _record_click(self, shortcode: str, event: ClickRecord) -> None:
        try:
            await self._store.append_click(shortcode, event)
        except (RecordNotFoundError, StoreUnavailableError) as exc:
            CLICK_RECORD_FAILURES_TOTAL.inc()
            self._logger.error(f"Click recording failed for {shortcode}: {exc}")
            self._remote_log(LogLevel.ERROR, f"Click recording failed for {shortcode}")
            return
        CLICKS_RECORDED_TOTAL.inc()

    def _remote_log(self, level: LogLevel, message: str) -> None:
        if self._remote is not None:
            self._remote.log(LogStack.BACKEND, level, LogPackage.SERVICE, message)
