"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, date, datetime


def now_iso() -> str:
    """Current UTC time as ISO 8601 (outbox and registration audit columns)."""
    return datetime.now(UTC).isoformat()


def today_utc() -> date:
    return datetime.now(UTC).date()


def prefix_error(prefix: str, message: str) -> str:
    """``"Item 'TV': Price must be positive"`` style messages."""
    return f"{prefix}: {message}" if prefix else message
