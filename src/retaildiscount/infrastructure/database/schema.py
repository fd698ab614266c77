"""SQLAlchemy Core table definitions for the retaildiscount database.

Monetary columns are TEXT holding exact two-decimal strings, never REAL.
Timestamps are ISO 8601 UTC strings with microsecond precision so that
lexical order equals chronological order.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

customers = Table(
    "customers",
    metadata,
    Column("customer_id", Text, primary_key=True),
    Column("tier", Text, nullable=False),  # explicit tier only
    Column("registration_date", Text, nullable=False),  # YYYY-MM-DD
    Column("created", Text, nullable=False),
)

# A bill row carries the customer snapshot by value plus the frozen
# discount breakdown. Bills are only stored once calculated.
bills = Table(
    "bills",
    metadata,
    Column("bill_id", Text, primary_key=True),
    Column("customer_id", Text, ForeignKey("customers.customer_id"), nullable=False),
    Column("customer_tier", Text, nullable=False),
    Column("customer_registration_date", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Column("calculated_at", Text, nullable=False),
    Column("total_amount", Text, nullable=False),
    Column("percentage_discount", Text, nullable=False),
    Column("percentage_discount_rate", Integer, nullable=False),
    Column("bill_based_discount", Text, nullable=False),
    Column("total_discount", Text, nullable=False),
    Column("net_payable", Text, nullable=False),
)

bill_items = Table(
    "bill_items",
    metadata,
    Column("bill_id", Text, ForeignKey("bills.bill_id", ondelete="CASCADE"), nullable=False),
    Column("position", Integer, nullable=False),
    Column("name", Text, nullable=False),
    Column("category", Text, nullable=False),
    Column("unit_price", Text, nullable=False),
    Column("quantity", Integer, nullable=False),
    UniqueConstraint("bill_id", "position"),
)

# Transactional outbox: events are written with the bill they belong to,
# then dispatched to plugins.
event_outbox = Table(
    "event_outbox",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("event_id", Text, nullable=False, unique=True),
    Column("event_type", Text, nullable=False),
    Column("hook_name", Text, nullable=False),
    Column("aggregate_id", Text, nullable=False),
    Column("payload", Text, nullable=False),  # JSON
    Column("status", Text, nullable=False),  # pending | completed | failed | dead_letter
    Column("error", Text),
    Column("retries", Integer, default=0, server_default="0"),
    Column("created", Text, nullable=False),
    Column("completed", Text),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_bills_customer_created", bills.c.customer_id, bills.c.created_at)
Index("ix_bills_created", bills.c.created_at)
Index("ix_bill_items_bill", bill_items.c.bill_id)
Index("ix_event_outbox_status", event_outbox.c.status)
