"""Bill persistence.

Bills are stored only after calculation, together with the customer
snapshot and the frozen breakdown. Loading a bill rehydrates it in the
Calculated state; nothing is recomputed and no events are produced.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select

from retaildiscount.domain.bill import Bill, DiscountBreakdown
from retaildiscount.domain.customers import Customer
from retaildiscount.domain.errors import InvariantViolation
from retaildiscount.domain.items import BillItem
from retaildiscount.domain.money import Money
from retaildiscount.domain.types import CustomerTier, ItemCategory
from retaildiscount.infrastructure.database.schema import bill_items, bills
from retaildiscount.infrastructure.repositories._codec import begin, from_iso, to_iso

if TYPE_CHECKING:
    from sqlalchemy import Connection, Select
    from sqlalchemy.engine import Engine


class BillRepository:
    """Encapsulates SQL for the ``bills`` and ``bill_items`` tables."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, bill: Bill, *, conn: Connection | None = None) -> Bill:
        """Persist a calculated bill. Saving an existing id is a no-op.

        Raises InvariantViolation for an Uncalculated bill: calculation
        must happen before persistence.
        """
        breakdown = bill.breakdown
        calculated_at = bill.calculated_at
        if breakdown is None or calculated_at is None:
            raise InvariantViolation(
                f"Bill {bill.bill_id} must be calculated before it is persisted"
            )

        with begin(self._engine, conn) as c:
            existing = c.execute(
                select(bills.c.bill_id).where(bills.c.bill_id == bill.bill_id)
            ).first()
            if existing is not None:
                return bill

            customer = bill.customer
            c.execute(
                insert(bills).values(
                    bill_id=bill.bill_id,
                    customer_id=customer.customer_id,
                    customer_tier=str(customer.tier),
                    customer_registration_date=customer.registration_date.isoformat(),
                    created_at=to_iso(bill.created_at),
                    calculated_at=to_iso(calculated_at),
                    total_amount=breakdown.total_amount.format(),
                    percentage_discount=breakdown.percentage_discount.format(),
                    percentage_discount_rate=breakdown.percentage_discount_rate,
                    bill_based_discount=breakdown.bill_based_discount.format(),
                    total_discount=breakdown.total_discount.format(),
                    net_payable=breakdown.net_payable.format(),
                )
            )
            c.execute(
                insert(bill_items),
                [
                    {
                        "bill_id": bill.bill_id,
                        "position": position,
                        "name": item.name,
                        "category": str(item.category),
                        "unit_price": item.unit_price.format(),
                        "quantity": item.quantity,
                    }
                    for position, item in enumerate(bill.items)
                ],
            )
        return bill

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def exists(self, bill_id: str) -> bool:
        stmt = select(bills.c.bill_id).where(bills.c.bill_id == bill_id)
        with self._engine.connect() as conn:
            return conn.execute(stmt).first() is not None

    def find_by_id(self, bill_id: str) -> Bill | None:
        found = self._load(select(bills).where(bills.c.bill_id == bill_id))
        return found[0] if found else None

    def find_by_customer(self, customer_id: str) -> list[Bill]:
        """All bills of a customer, newest first."""
        stmt = (
            select(bills)
            .where(bills.c.customer_id == customer_id)
            .order_by(bills.c.created_at.desc())
        )
        return self._load(stmt)

    def find_by_customer_and_range(
        self,
        customer_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[Bill]:
        """Bills of a customer created within ``[since, until]``, newest first."""
        stmt = select(bills).where(bills.c.customer_id == customer_id)
        if since is not None:
            stmt = stmt.where(bills.c.created_at >= to_iso(since))
        if until is not None:
            stmt = stmt.where(bills.c.created_at <= to_iso(until))
        return self._load(stmt.order_by(bills.c.created_at.desc()))

    def find_recent(self, limit: int = 10) -> list[Bill]:
        stmt = select(bills).order_by(bills.c.created_at.desc()).limit(limit)
        return self._load(stmt)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self, stmt: Select[Any]) -> list[Bill]:
        """Run *stmt* against ``bills`` and rehydrate each row with its items."""
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
            if not rows:
                return []
            item_rows = conn.execute(
                select(bill_items)
                .where(bill_items.c.bill_id.in_([row.bill_id for row in rows]))
                .order_by(bill_items.c.bill_id, bill_items.c.position)
            ).fetchall()

        items_by_bill: dict[str, list[BillItem]] = defaultdict(list)
        for item_row in item_rows:
            items_by_bill[item_row.bill_id].append(
                BillItem(
                    name=item_row.name,
                    category=ItemCategory(item_row.category),
                    unit_price=Money.of(item_row.unit_price),
                    quantity=item_row.quantity,
                )
            )

        return [_to_domain(row, items_by_bill[row.bill_id]) for row in rows]


def _to_domain(row: Any, items: list[BillItem]) -> Bill:
    customer = Customer(
        customer_id=row.customer_id,
        tier=CustomerTier(row.customer_tier),
        registration_date=date.fromisoformat(row.customer_registration_date),
    )
    breakdown = DiscountBreakdown(
        total_amount=Money.of(row.total_amount),
        percentage_discount=Money.of(row.percentage_discount),
        percentage_discount_rate=row.percentage_discount_rate,
        bill_based_discount=Money.of(row.bill_based_discount),
        total_discount=Money.of(row.total_discount),
        net_payable=Money.of(row.net_payable),
    )
    return Bill.reconstitute(
        row.bill_id,
        customer,
        items,
        from_iso(row.created_at),
        breakdown=breakdown,
        calculated_at=from_iso(row.calculated_at),
    )
