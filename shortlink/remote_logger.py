"""Fire-and-forget client for the remote log collector.

Each ``log(stack, level, package, message)`` call schedules one HTTP POST on
the running event loop and returns immediately. Transport errors, non-2xx
responses and invalid field values are reported through the local logger and
never reach the caller.

Payload
=======
::
    POST {REMOTE_LOG_URL}
    Authorization: Bearer {REMOTE_LOG_TOKEN}
    {"stack": "backend", "level": "info", "package": "service", "message": "..."}

How to Use
===========
**Step 1 — Build from settings**::
    remote = RemoteLogger.from_settings(get_settings())

**Step 2 — Emit events from request handlers**::
    remote.log(LogStack.BACKEND, LogLevel.INFO, LogPackage.SERVICE, "Short URL created")

**Step 3 — Flush pending sends on shutdown**::
    await remote.aclose()
"""

__all__ = ["RemoteLogger"]

import asyncio
import logging

import httpx
from prometheus_client import Counter

from shortlink.config import Settings
from shortlink.enums import LogLevel, LogPackage, LogStack

logger = logging.getLogger("shortlink.remote_logger")

REMOTE_LOG_EVENTS_TOTAL = Counter(
    "shortlink_remote_log_events_total",
    "Remote log events by delivery outcome",
    ["outcome"],
)


class RemoteLogger:
    """Ships log events to an external collector without blocking requests."""

    def __init__(
        self,
        url: str,
        token: str = "",
        timeout: float = 2.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._url = url
        self._token = token
        self._owns_client = client is None
        self._client = client
        if self._client is None and url:
            self._client = httpx.AsyncClient(timeout=timeout)
        self._pending: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RemoteLogger":
        return cls(
            url=settings.REMOTE_LOG_URL,
            token=settings.REMOTE_LOG_TOKEN,
            timeout=settings.REMOTE_LOG_TIMEOUT_SECONDS,
        )

    @property
    def enabled(self) -> bool:
        return bool(self._url) and self._client is not None

    @property
    def pending(self) -> int:
        return len(self._pending)

    def log(self, stack: str, level: str, package: str, message: str) -> asyncio.Task | None:
        """Schedule delivery of one event; returns the task, or None when skipped."""
        if not self.enabled:
            return None

        try:
            payload = {
                "stack": LogStack(stack).value,
                "level": LogLevel(level).value,
                "package": LogPackage(package).value,
                "message": message,
            }
        except ValueError as exc:
            logger.warning(f"Dropping remote log event with invalid field: {exc}")
            REMOTE_LOG_EVENTS_TOTAL.labels(outcome="invalid").inc()
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; remote log event skipped")
            REMOTE_LOG_EVENTS_TOTAL.labels(outcome="skipped").inc()
            return None

        task = loop.create_task(self.send(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def send(self, payload: dict[str, str]) -> bool:
        """Deliver one payload; returns False instead of raising on failure."""
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        try:
            response = await self._client.post(self._url, json=payload, headers=headers)
            response.raise_for_status()
        except Exception as exc:
            logger.warning(f"Logging failed: {exc}")
            REMOTE_LOG_EVENTS_TOTAL.labels(outcome="failed").inc()
            return False

        REMOTE_LOG_EVENTS_TOTAL.labels(outcome="delivered").inc()
        return True

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
