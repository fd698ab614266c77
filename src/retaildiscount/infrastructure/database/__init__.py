"""SQLite database engine and schema via SQLAlchemy Core."""

from retaildiscount.infrastructure.database.engine import create_db_engine, init_database
from retaildiscount.infrastructure.database.schema import (
    bill_items,
    bills,
    customers,
    event_outbox,
    metadata,
)

__all__ = [
    "bill_items",
    "bills",
    "create_db_engine",
    "customers",
    "event_outbox",
    "init_database",
    "metadata",
]
