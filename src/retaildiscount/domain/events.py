"""Domain events recorded by the bill aggregate.

Design invariants
-----------------
1.  Every event is **immutable** (``frozen=True``) and write-once.
2.  ``event_id`` is a UUID4 generated at creation time; the outbox uses it
    as the dedup key.
3.  Events describe what already happened inside one in-memory
    transaction. Rehydrating a bill from storage never produces events.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from typing import Any, ClassVar

from retaildiscount.domain.money import Money


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Immutable base for every domain event.

    Shared fields
    ~~~~~~~~~~~~~
    event_id     Unique identity (UUID4).
    occurred_on  UTC time the fact was recorded.
    """

    event_type: ClassVar[str] = "DomainEvent"

    event_id: str = field(default_factory=_new_id)
    occurred_on: datetime = field(default_factory=_utc_now)

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe field dict; money as two-decimal strings."""
        payload: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Money):
                value = value.format()
            elif isinstance(value, datetime):
                value = value.isoformat()
            payload[f.name] = value
        return payload


# =========================================================================
# Bill lifecycle
# =========================================================================


@dataclass(frozen=True, kw_only=True)
class BillCreated(DomainEvent):
    """A bill was created; no discount has been applied yet.

    ``net_payable`` equals ``total_amount`` here. It is provisional and is
    superseded by the ``BillCalculated`` event for the same bill.
    """

    event_type: ClassVar[str] = "BillCreated"

    bill_id: str
    customer_id: str
    total_amount: Money
    net_payable: Money


@dataclass(frozen=True, kw_only=True)
class BillCalculated(DomainEvent):
    """The discount breakdown for a bill was computed (once per bill)."""

    event_type: ClassVar[str] = "BillCalculated"

    bill_id: str
    customer_id: str
    total_amount: Money
    eligible_amount: Money
    percentage_discount: Money
    percentage_discount_rate: int
    amount_after_percentage: Money
    bill_based_discount: Money
    total_discount: Money
    net_payable: Money
