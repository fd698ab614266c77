"""Customer lookup and registration."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select, update

from retaildiscount.domain.customers import Customer
from retaildiscount.domain.types import CustomerTier
from retaildiscount.infrastructure.database.schema import customers
from retaildiscount.infrastructure.repositories._codec import begin, to_iso

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine


def _to_domain(row: Any) -> Customer:
    return Customer(
        customer_id=row.customer_id,
        tier=CustomerTier(row.tier),
        registration_date=date.fromisoformat(row.registration_date),
    )


class CustomerRepository:
    """Encapsulates SQL for the ``customers`` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def find_by_id(self, customer_id: str) -> Customer | None:
        stmt = select(customers).where(customers.c.customer_id == customer_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).first()
        return _to_domain(row) if row is not None else None

    def exists(self, customer_id: str) -> bool:
        stmt = select(customers.c.customer_id).where(customers.c.customer_id == customer_id)
        with self._engine.connect() as conn:
            return conn.execute(stmt).first() is not None

    def list_all(self) -> list[Customer]:
        stmt = select(customers).order_by(customers.c.customer_id)
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_to_domain(row) for row in rows]

    def save(self, customer: Customer, *, conn: Connection | None = None) -> Customer:
        """Insert or update *customer* (keyed by id)."""
        values = {
            "tier": str(customer.tier),
            "registration_date": customer.registration_date.isoformat(),
        }
        with begin(self._engine, conn) as c:
            existing = c.execute(
                select(customers.c.customer_id).where(
                    customers.c.customer_id == customer.customer_id
                )
            ).first()
            if existing is None:
                c.execute(
                    insert(customers).values(
                        customer_id=customer.customer_id,
                        created=to_iso(datetime.now(UTC)),
                        **values,
                    )
                )
            else:
                c.execute(
                    update(customers)
                    .where(customers.c.customer_id == customer.customer_id)
                    .values(**values)
                )
        return customer
