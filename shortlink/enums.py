"""Shared enums for the shortlink service.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = [
    "HealthStatus",
    "RequestStatus",
    "CacheStatus",
    "StoreBackend",
    "LogStack",
    "LogLevel",
    "LogPackage",
]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DISABLED = "disabled"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ERROR = "error"


class CacheStatus(StrEnum):
    """Cache status values for metrics."""

    HIT = "true"
    MISS = "false"


class StoreBackend(StrEnum):
    """Available record store backends."""

    SQLALCHEMY = "sqlalchemy"
    MEMORY = "memory"


class LogStack(StrEnum):
    """Stack field accepted by the remote log collector."""

    BACKEND = "backend"
    FRONTEND = "frontend"


class LogLevel(StrEnum):
    """Level field accepted by the remote log collector."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class LogPackage(StrEnum):
    """Package field accepted by the remote log collector."""

    CACHE = "cache"
    CONTROLLER = "controller"
    DB = "db"
    HANDLER = "handler"
    REPOSITORY = "repository"
    ROUTE = "route"
    SERVICE = "service"
    MIDDLEWARE = "middleware"
    UTILS = "utils"
    CONFIG = "config"
