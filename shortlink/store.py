"""Record store strategies for short URL records.

The store is the only shared mutable resource in the service. It is a raw
shortcode → record mapping: it never interprets expiry, and all writes go
through its atomic ``insert`` and ``append_click`` operations.

Backend Overview
================
::
    URLRecordStore (interface)
    ├─ SQLAlchemyURLRecordStore
    │    ├─ one AsyncSession per operation
    │    ├─ insert:        unique index on shortcode → DuplicateKeyError
    │    └─ append_click:  single INSERT … SELECT → no lost updates
    └─ InMemoryURLRecordStore
         ├─ dict keyed by shortcode
         └─ asyncio.Lock around every mutation

How to Use
===========
**Step 1 — Build from settings**::
    store = create_record_store(get_settings())

**Step 2 — Use it**::
    await store.insert(record)
    record = await store.find_by_shortcode("abc123")
    target = await store.find_target("abc123")  # no click history
    await store.append_click("abc123", ClickRecord(timestamp=utc_now()))

Key Behaviours
===============
- Two concurrent inserts with the same shortcode never both succeed.
- Two concurrent click appends on the same record never lose an event.
- Driver and connectivity failures surface as ``StoreUnavailableError``.
- Returned records are detached copies.
"""

__all__ = [
    "URLRecordStore",
    "SQLAlchemyURLRecordStore",
    "InMemoryURLRecordStore",
    "create_record_store",
]

import asyncio
import dataclasses
from abc import ABC, abstractmethod

from sqlalchemy import DateTime, Text, insert, literal, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlink.config import Settings
from shortlink.enums import StoreBackend
from shortlink.exceptions import DuplicateKeyError, RecordNotFoundError, StoreUnavailableError
from shortlink.models import ClickEvent, ShortURL
from shortlink.records import ClickRecord, ShortURLRecord, ensure_utc
from shortlink.schemas import CachedURLPayload


class URLRecordStore(ABC):
    """Abstract persistence interface for short URL records."""

    @abstractmethod
    async def find_by_shortcode(self, shortcode: str) -> ShortURLRecord | None:
        """Return the record with its ordered clicks, or None when absent."""

    @abstractmethod
    async def find_target(self, shortcode: str) -> CachedURLPayload | None:
        """Return only the redirect target and expiry, or None when absent."""

    @abstractmethod
    async def exists(self, shortcode: str) -> bool:
        """Return True when a record with this shortcode exists."""

    @abstractmethod
    async def insert(self, record: ShortURLRecord) -> None:
        """Persist a new record.

        Raises:
            DuplicateKeyError: If the shortcode is already stored.
        """

    @abstractmethod
    async def append_click(self, shortcode: str, event: ClickRecord) -> None:
        """Append one click event to the record's click log.

        Raises:
            RecordNotFoundError: If no record has this shortcode.
        """

    async def ping(self) -> None:
        """Check the backend is reachable."""


class SQLAlchemyURLRecordStore(URLRecordStore):
    """Relational store on top of an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_by_shortcode(self, shortcode: str) -> ShortURLRecord | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(ShortURL).where(ShortURL.shortcode == shortcode))
                row = result.scalar_one_or_none()
                return _row_to_record(row) if row is not None else None
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(f"Lookup of '{shortcode}' failed: {exc}") from exc

    async def find_target(self, shortcode: str) -> CachedURLPayload | None:
        stmt = select(ShortURL.shortcode, ShortURL.original_url, ShortURL.expires_at).where(
            ShortURL.shortcode == shortcode
        )
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(f"Target lookup of '{shortcode}' failed: {exc}") from exc

        if row is None:
            return None
        return CachedURLPayload(
            shortcode=row.shortcode,
            original_url=row.original_url,
            expires_at=ensure_utc(row.expires_at),
        )

    async def exists(self, shortcode: str) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ShortURL.id).where(ShortURL.shortcode == shortcode).limit(1)
                )
                return result.scalar_one_or_none() is not None
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(f"Existence check of '{shortcode}' failed: {exc}") from exc

    async def insert(self, record: ShortURLRecord) -> None:
        row = ShortURL(
            shortcode=record.shortcode,
            original_url=record.original_url,
            created_at=record.created_at,
            expires_at=record.expires_at,
            clicks=[
                ClickEvent(timestamp=click.timestamp, source=click.source, location=click.location)
                for click in record.clicks
            ],
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                try:
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    raise DuplicateKeyError(f"Shortcode '{record.shortcode}' already exists") from exc
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(f"Insert of '{record.shortcode}' failed: {exc}") from exc

    async def append_click(self, shortcode: str, event: ClickRecord) -> None:
        # Resolving the parent id and inserting the click in one statement keeps
        # the append atomic without a read-modify-write cycle.
        parent = select(
            ShortURL.id,
            literal(event.timestamp, DateTime(timezone=True)),
            literal(event.source, Text),
            literal(event.location, Text),
        ).where(ShortURL.shortcode == shortcode)
        stmt = insert(ClickEvent.__table__).from_select(
            ["short_url_id", "timestamp", "source", "location"],
            parent,
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                inserted = result.rowcount
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(f"Click append for '{shortcode}' failed: {exc}") from exc

        if inserted == 0:
            raise RecordNotFoundError(f"Shortcode '{shortcode}' does not exist")

    async def ping(self) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(f"Database unreachable: {exc}") from exc


class InMemoryURLRecordStore(URLRecordStore):
    """
    In-memory store using a dict guarded by an asyncio lock.

    Not persistent and not shared between processes; used for development
    and tests.
    """

    def __init__(self):
        self._records: dict[str, ShortURLRecord] = {}
        self._lock = asyncio.Lock()

    async def find_by_shortcode(self, shortcode: str) -> ShortURLRecord | None:
        record = self._records.get(shortcode)
        return _copy_record(record) if record is not None else None

    async def find_target(self, shortcode: str) -> CachedURLPayload | None:
        record = self._records.get(shortcode)
        return CachedURLPayload.from_record(record) if record is not None else None

    async def exists(self, shortcode: str) -> bool:
        return shortcode in self._records

    async def insert(self, record: ShortURLRecord) -> None:
        async with self._lock:
            if record.shortcode in self._records:
                raise DuplicateKeyError(f"Shortcode '{record.shortcode}' already exists")
            self._records[record.shortcode] = _copy_record(record)

    async def append_click(self, shortcode: str, event: ClickRecord) -> None:
        async with self._lock:
            record = self._records.get(shortcode)
            if record is None:
                raise RecordNotFoundError(f"Shortcode '{shortcode}' does not exist")
            record.clicks.append(event)

    def __len__(self) -> int:
        return len(self._records)


def create_record_store(settings: Settings) -> URLRecordStore:
    """Build the configured store backend.

    Raises:
        ValueError: If STORE_BACKEND names an unknown backend.
    """
    backend = StoreBackend(settings.STORE_BACKEND)
    if backend is StoreBackend.SQLALCHEMY:
        from shortlink.database import get_session_factory

        return SQLAlchemyURLRecordStore(get_session_factory(settings))
    if backend is StoreBackend.MEMORY:
        return InMemoryURLRecordStore()
    raise ValueError(f"Unknown store backend: {backend}")


def _row_to_record(row: ShortURL) -> ShortURLRecord:
    return ShortURLRecord(
        shortcode=row.shortcode,
        original_url=row.original_url,
        created_at=ensure_utc(row.created_at),
        expires_at=ensure_utc(row.expires_at),
        clicks=[
            ClickRecord(
                timestamp=ensure_utc(click.timestamp),
                source=click.source,
                location=click.location,
            )
            for click in row.clicks
        ],
    )


def _copy_record(record: ShortURLRecord) -> ShortURLRecord:
    return dataclasses.replace(record, clicks=list(record.clicks))
