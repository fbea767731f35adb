"""SQLAlchemy ORM models for the shortlink service.

This module defines the relational layout of short URL records: one row per
shortcode plus an append-only table of click events.

Data Model Layout
=================
::
    short_urls table
    ├─ id (INTEGER PRIMARY KEY)
    ├─ shortcode (VARCHAR(32) UNIQUE, INDEXED)
    ├─ original_url (TEXT NOT NULL)
    ├─ created_at (TIMESTAMPTZ NOT NULL)
    └─ expires_at (TIMESTAMPTZ NULL)

    click_events table
    ├─ id (INTEGER PRIMARY KEY, defines click order)
    ├─ short_url_id (FK → short_urls.id, INDEXED)
    ├─ timestamp (TIMESTAMPTZ NOT NULL)
    ├─ source (TEXT NOT NULL)
    └─ location (TEXT NOT NULL)

Key Behaviours
===============
- The unique index on shortcode is what makes concurrent inserts safe.
- Clicks are never updated in place; each click is one INSERT.
- ``ShortURL.clicks`` is ordered by ``ClickEvent.id`` (arrival order).

Classes:
    ShortURL:  A shortened URL mapping.
    ClickEvent:  One recorded visit to a short URL.
"""

import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shortlink.database import Base

__all__ = ["ShortURL", "ClickEvent"]


class ShortURL(Base):
    __tablename__ = "short_urls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shortcode: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    clicks: Mapped[list["ClickEvent"]] = relationship(
        back_populates="short_url",
        order_by="ClickEvent.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<ShortURL(id={self.id}, shortcode='{self.shortcode}')>"


class ClickEvent(Base):
    __tablename__ = "click_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    short_url_id: Mapped[int] = mapped_column(ForeignKey("short_urls.id"), index=True, nullable=False)
    timestamp: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    source: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=False)

    short_url: Mapped[ShortURL] = relationship(back_populates="clicks")

    def __repr__(self) -> str:
        return f"<ClickEvent(id={self.id}, short_url_id={self.short_url_id})>"
