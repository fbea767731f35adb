"""Pydantic schemas for request/response serialization in the shortlink service.

Schema Hierarchy
=================
::
    ShortURLCreate (Input)
    ├─ url: Any (checked later)
    ├─ validity: Any (minutes, checked later)
    └─ shortcode: Any (checked later)

    ShortURLCreated (Output, 201)
    ├─ shortLink: str
    └─ expiry: datetime

    ShortURLStats (Output, 200)
    ├─ originalUrl: str
    ├─ createdAt: datetime
    ├─ expiresAt: datetime | None
    ├─ totalClicks: int
    └─ clicks: list[ClickEventResponse]

    HealthResponse (Output)
    ├─ status: str
    ├─ database: str
    └─ cache: str

    CachedURLPayload (Redis)
    ├─ shortcode: str
    ├─ original_url: str
    └─ expires_at: datetime | None

Key Behaviours
===============
- The creation body is deliberately loose: field checks live in
  ``ShorteningService.build_command`` so that bad input maps to 400 with a
  specific error code rather than a generic 422.
- Output field names are camelCase to match the public API.
- All datetime fields are timezone-aware UTC.
"""

import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shortlink.enums import HealthStatus
from shortlink.records import ShortURLRecord

__all__ = [
    "ShortURLCreate",
    "ShortURLCreated",
    "ClickEventResponse",
    "ShortURLStats",
    "HealthResponse",
    "ErrorResponse",
    "CachedURLPayload",
]


class ShortURLCreate(BaseModel):
    url: Any = Field(None, description="Absolute URL to shorten")
    validity: Any = Field(None, description="Minutes until the link expires")
    shortcode: Any = Field(None, description="Optional custom shortcode")

    model_config = ConfigDict(extra="ignore")


class ShortURLCreated(BaseModel):
    short_link: str = Field(..., serialization_alias="shortLink")
    expiry: datetime.datetime | None

    model_config = ConfigDict(populate_by_name=True)


class ClickEventResponse(BaseModel):
    timestamp: datetime.datetime
    source: str
    location: str


class ShortURLStats(BaseModel):
    original_url: str = Field(..., serialization_alias="originalUrl")
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")
    expires_at: datetime.datetime | None = Field(None, serialization_alias="expiresAt")
    total_clicks: int = Field(..., serialization_alias="totalClicks")
    clicks: list[ClickEventResponse]

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, record: ShortURLRecord) -> "ShortURLStats":
        return cls(
            original_url=record.original_url,
            created_at=record.created_at,
            expires_at=record.expires_at,
            total_clicks=record.total_clicks,
            clicks=[
                ClickEventResponse(timestamp=click.timestamp, source=click.source, location=click.location)
                for click in record.clicks
            ],
        )


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class ErrorResponse(BaseModel):
    detail: str
    error: str


class CachedURLPayload(BaseModel):
    """Immutable part of a record: redirect target and expiry.

    Returned by ``URLRecordStore.find_target`` and stored as-is in Redis.
    """

    shortcode: str
    original_url: str
    expires_at: datetime.datetime | None = None

    @classmethod
    def from_record(cls, record: ShortURLRecord) -> "CachedURLPayload":
        return cls(shortcode=record.shortcode, original_url=record.original_url, expires_at=record.expires_at)
