"""Expiring short links with per-click analytics."""

__version__ = "1.0.0"
