"""Dependency injection with a shared service manager.

Shared resources (settings, logger, record store, redirect cache, remote
logger, generator, clock) are built once at startup by the ``ServiceManager``.
Each request gets a lightweight ``RequestContext`` and services built from it.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field

from fastapi import Depends, Request

from shortlink.cache import RedirectCache
from shortlink.config import Settings, get_settings
from shortlink.enums import StoreBackend
from shortlink.generator import ShortcodeGenerator
from shortlink.records import Clock, utc_now
from shortlink.redirect_service import ClickContext, RedirectService
from shortlink.remote_logger import RemoteLogger
from shortlink.shortening_service import ShorteningService
from shortlink.store import URLRecordStore, create_record_store


# ============================================================================
# SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Holder for resources shared by every request.

    ``initialize`` builds anything not passed in from settings, so tests can
    inject an in-memory store, a fake clock or a mocked cache.
    """

    def __init__(self) -> None:
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(
        self,
        settings: Settings | None = None,
        store: URLRecordStore | None = None,
        cache: RedirectCache | None = None,
        remote_logger: RemoteLogger | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize shared resources once at startup."""
        if self._initialized:
            return

        self.settings = settings if settings is not None else get_settings()
        self.logger = self._setup_logger()
        self.clock = clock if clock is not None else utc_now
        self.store = store if store is not None else await self._setup_store()
        self.cache = cache if cache is not None else self._setup_cache()
        self.remote_logger = (
            remote_logger if remote_logger is not None else RemoteLogger.from_settings(self.settings)
        )
        self.generator = ShortcodeGenerator(
            length=self.settings.SHORT_CODE_LENGTH,
            fallback_length=self.settings.SHORT_CODE_FALLBACK_LENGTH,
            max_attempts=self.settings.SHORT_CODE_MAX_ATTEMPTS,
        )
        self._owns_engine = store is None and StoreBackend(self.settings.STORE_BACKEND) is StoreBackend.SQLALCHEMY
        self._initialized = True
        self.logger.info(
            f"Service manager ready (store={type(self.store).__name__}, "
            f"cache={'on' if self.cache else 'off'}, remote_log={'on' if self.remote_logger.enabled else 'off'})"
        )

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shortlink")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    async def _setup_store(self) -> URLRecordStore:
        store = create_record_store(self.settings)
        if StoreBackend(self.settings.STORE_BACKEND) is StoreBackend.SQLALCHEMY:
            from shortlink.database import get_engine, init_db

            await init_db(get_engine(self.settings))
        return store

    def _setup_cache(self) -> RedirectCache | None:
        if not self.settings.CACHE_ENABLED:
            return None
        return RedirectCache.from_url(
            self.settings.REDIS_URL,
            ttl_seconds=self.settings.CACHE_TTL_SECONDS,
            clock=self.clock,
        )

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if not self._initialized:
            return
        await self.remote_logger.aclose()
        if self.cache is not None:
            await self.cache.close()
        if self._owns_engine:
            from shortlink.database import close_db

            await close_db()
        self._initialized = False


# Global shared instance
_service_manager = ServiceManager()


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request context with tracking information and shared resources.

    Attributes:
        service_manager: Shared resources
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        click: Referrer/location attributes recorded on redirects
        start_time: Request start timestamp
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: str | None = None
    client_ip: str | None = None
    click: ClickContext = field(default_factory=ClickContext)
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager.initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    client_ip = request.client.host if request.client else None
    return RequestContext(
        service_manager=manager,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        user_agent=request.headers.get("user-agent"),
        client_ip=client_ip,
        click=ClickContext.from_headers(request.headers, client_ip),
    )


def get_shortening_service(ctx: RequestContext = Depends(get_request_context)) -> ShorteningService:
    manager = ctx.service_manager
    return ShorteningService(
        store=manager.store,
        generator=manager.generator,
        settings=manager.settings,
        logger=ctx.logger,
        remote_logger=manager.remote_logger,
        clock=manager.clock,
    )


def get_redirect_service(ctx: RequestContext = Depends(get_request_context)) -> RedirectService:
    manager = ctx.service_manager
    return RedirectService(
        store=manager.store,
        cache=manager.cache,
        logger=ctx.logger,
        remote_logger=manager.remote_logger,
        clock=manager.clock,
    )
