"""Row-level conversions shared by the repositories."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine


def to_iso(value: datetime) -> str:
    """UTC ISO 8601 with fixed microsecond precision (sortable as text)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@contextmanager
def begin(engine: Engine, conn: Connection | None) -> Iterator[Connection]:
    """Use the caller's transaction if given, else open and commit our own."""
    if conn is not None:
        yield conn
        return
    with engine.begin() as own:
        yield own
