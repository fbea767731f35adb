"""Database configuration and session management for the shortlink service.

This module provides SQLAlchemy async engine setup, session factories,
and database lifecycle operations. PostgreSQL (asyncpg) is the deployment
backend; SQLite (aiosqlite) serves local runs and tests.

Flow Diagram — Database Operations
=================================
::
    ┌─────────────┐
    │  Store      │
    │  operation  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ session     │
    │ factory()   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ One async   │
    │ session per │
    │ operation   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Auto-close  │
    │ (async with)│
    └─────────────┘

How to Use
===========
**Step 1 — Initialize on startup**::
    await init_db()  # Creates tables

**Step 2 — Hand the session factory to the record store**::
    store = SQLAlchemyURLRecordStore(get_session_factory())

**Step 3 — Cleanup on shutdown**::
    await close_db()

Key Behaviours
===============
- The engine is created lazily on first use and reused afterwards.
- Connection pooling options apply to server databases only; SQLite keeps
  SQLAlchemy's defaults.
- Engine is disposed on application shutdown.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    create_engine_for_url():  Build an async engine with pool settings per dialect.
    get_engine():  Lazily created module-wide engine.
    get_session_factory():  Session factory bound to the module-wide engine.
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortlink.config import Settings, get_settings

__all__ = [
    "Base",
    "create_engine_for_url",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "init_db",
    "close_db",
]

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


class Base(DeclarativeBase):
    pass


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = settings or get_settings()
        _engine = create_engine_for_url(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    return _engine


def get_session_factory(settings: Settings | None = None) -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine(settings))
    return _session_factory


async def init_db(engine: AsyncEngine | None = None) -> None:
    # Register ORM tables on Base.metadata
    from shortlink import models  # noqa: F401

    target = engine or get_engine()
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
