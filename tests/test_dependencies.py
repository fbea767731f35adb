"""Service manager lifecycle tests."""

import pytest

from shortlink import database
from shortlink.config import Settings
from shortlink.dependencies import ServiceManager
from shortlink.store import InMemoryURLRecordStore, SQLAlchemyURLRecordStore


@pytest.mark.asyncio
async def test_memory_backend_from_settings() -> None:
    manager = ServiceManager()
    await manager.initialize(settings=Settings(_env_file=None, STORE_BACKEND="memory"))

    assert manager.initialized
    assert isinstance(manager.store, InMemoryURLRecordStore)
    assert manager.cache is None
    assert not manager.remote_logger.enabled
    assert manager.generator.length == 6

    await manager.cleanup()
    assert not manager.initialized


@pytest.mark.asyncio
async def test_sqlalchemy_backend_creates_tables(tmp_path) -> None:
    settings = Settings(
        _env_file=None,
        STORE_BACKEND="sqlalchemy",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'service.db'}",
    )
    manager = ServiceManager()
    await manager.initialize(settings=settings)

    assert isinstance(manager.store, SQLAlchemyURLRecordStore)
    await manager.store.ping()
    assert not await manager.store.exists("abc123")

    await manager.cleanup()
    assert database._engine is None


@pytest.mark.asyncio
async def test_initialize_is_idempotent() -> None:
    manager = ServiceManager()
    store = InMemoryURLRecordStore()
    await manager.initialize(settings=Settings(_env_file=None, STORE_BACKEND="memory"), store=store)
    await manager.initialize(store=InMemoryURLRecordStore())

    assert manager.store is store
    await manager.cleanup()


@pytest.mark.asyncio
async def test_empty_injected_store_is_kept() -> None:
    store = InMemoryURLRecordStore()
    assert len(store) == 0

    manager = ServiceManager()
    await manager.initialize(settings=Settings(_env_file=None, STORE_BACKEND="sqlalchemy"), store=store)

    assert manager.store is store
    await manager.cleanup()


def test_unknown_backend_rejected() -> None:
    from shortlink.store import create_record_store

    with pytest.raises(ValueError):
        create_record_store(Settings(_env_file=None, STORE_BACKEND="mongo"))
