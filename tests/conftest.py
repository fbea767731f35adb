"""Shared pytest fixtures for API, service, and record store tests."""

import datetime
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortlink.config import Settings
from shortlink.database import create_engine_for_url, create_session_factory, init_db
from shortlink.dependencies import ServiceManager, get_service_manager
from shortlink.generator import ShortcodeGenerator
from shortlink.main import app
from shortlink.redirect_service import RedirectService
from shortlink.remote_logger import RemoteLogger
from shortlink.shortening_service import ShorteningService
from shortlink.store import InMemoryURLRecordStore, SQLAlchemyURLRecordStore, URLRecordStore

START = datetime.datetime(2026, 1, 1, 12, 0, tzinfo=datetime.UTC)


class FakeClock:
    """Settable clock so expiry can be tested without sleeping."""

    def __init__(self, start: datetime.datetime = START):
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += datetime.timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        BASE_URL="http://sho.rt",
        STORE_BACKEND="memory",
        CACHE_ENABLED=False,
        REMOTE_LOG_URL="",
    )


@pytest.fixture
def memory_store() -> InMemoryURLRecordStore:
    return InMemoryURLRecordStore()


@pytest_asyncio.fixture(scope="function")
async def sqlite_store(tmp_path) -> AsyncGenerator[SQLAlchemyURLRecordStore, None]:
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'shortlink.db'}")
    await init_db(engine)
    yield SQLAlchemyURLRecordStore(create_session_factory(engine))
    await engine.dispose()


@pytest_asyncio.fixture(scope="function", params=["memory", "sqlalchemy"])
async def store(request, tmp_path) -> AsyncGenerator[URLRecordStore, None]:
    """Runs each store test against both backends."""
    if request.param == "memory":
        yield InMemoryURLRecordStore()
    else:
        engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'shortlink.db'}")
        await init_db(engine)
        yield SQLAlchemyURLRecordStore(create_session_factory(engine))
        await engine.dispose()


@pytest.fixture
def generator() -> ShortcodeGenerator:
    return ShortcodeGenerator(length=6, fallback_length=10, max_attempts=5)


@pytest.fixture
def shortening_service(memory_store, generator, settings, clock) -> ShorteningService:
    return ShorteningService(store=memory_store, generator=generator, settings=settings, clock=clock)


@pytest.fixture
def redirect_service(memory_store, clock) -> RedirectService:
    return RedirectService(store=memory_store, clock=clock)


@pytest_asyncio.fixture(scope="function")
async def manager(settings, memory_store, clock) -> AsyncGenerator[ServiceManager, None]:
    manager = ServiceManager()
    await manager.initialize(
        settings=settings,
        store=memory_store,
        remote_logger=RemoteLogger(""),
        clock=clock,
    )
    yield manager
    await manager.cleanup()


@pytest_asyncio.fixture(scope="function")
async def client(manager: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_service_manager() -> ServiceManager:
        return manager

    app.dependency_overrides[get_service_manager] = override_get_service_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
