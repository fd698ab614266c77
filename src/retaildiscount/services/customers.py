"""CustomerService: registration, lookup, and demo seeding."""

from __future__ import annotations

import calendar
from datetime import date

import structlog

from retaildiscount.domain.customers import Customer
from retaildiscount.domain.errors import ValidationError
from retaildiscount.domain.types import CustomerTier, parse_tier
from retaildiscount.services._helpers import today_utc
from retaildiscount.services.base import BaseService
from retaildiscount.services.contracts import (
    CustomerListData,
    SeedData,
    customer_payload,
    dump_validated,
)
from retaildiscount.services.result import ErrorCode, ServiceResult

logger = structlog.get_logger(__name__)

# (customer_id, tier, months since registration)
DEMO_CUSTOMERS: tuple[tuple[str, CustomerTier, int], ...] = (
    ("EMP001", CustomerTier.EMPLOYEE, 36),
    ("AFF001", CustomerTier.AFFILIATE, 24),
    ("CUST001", CustomerTier.REGULAR, 36),
    ("CUST002", CustomerTier.REGULAR, 6),
)


def months_before(day: date, months: int) -> date:
    """*day* shifted back by whole *months*, clamping to the month's end.

    Examples:
        >>> months_before(date(2024, 3, 31), 1)
        datetime.date(2024, 2, 29)
        >>> months_before(date(2024, 6, 15), 36)
        datetime.date(2021, 6, 15)
    """
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class CustomerService(BaseService):
    """Customer registration and lookup."""

    def register_customer(
        self,
        customer_id: str,
        tier: str | CustomerTier,
        registration_date: date,
    ) -> ServiceResult:
        """Register a new customer. Existing ids are rejected."""
        op = "register_customer"
        try:
            resolved = tier if isinstance(tier, CustomerTier) else parse_tier(tier)
            customer = Customer(
                customer_id=customer_id.strip() if isinstance(customer_id, str) else customer_id,
                tier=resolved,
                registration_date=registration_date,
            )
        except ValidationError as exc:
            return ServiceResult.failure(op, ErrorCode.INVALID_CUSTOMER, str(exc))

        if self._store.customers.exists(customer.customer_id):
            return ServiceResult.failure(
                op,
                ErrorCode.CUSTOMER_EXISTS,
                f"Customer already exists with ID: {customer.customer_id}",
                customer_id=customer.customer_id,
            )

        self._store.customers.save(customer)
        logger.info("customer_registered", customer_id=customer.customer_id, tier=str(resolved))
        return ServiceResult(ok=True, op=op, data=customer_payload(customer))

    def get_customer(self, customer_id: str, *, today: date | None = None) -> ServiceResult:
        op = "get_customer"
        customer = self._store.customers.find_by_id(customer_id)
        if customer is None:
            return ServiceResult.failure(
                op,
                ErrorCode.CUSTOMER_NOT_FOUND,
                f"Customer not found with ID: {customer_id}",
                customer_id=customer_id,
            )
        return ServiceResult(ok=True, op=op, data=customer_payload(customer, today))

    def list_customers(self, *, today: date | None = None) -> ServiceResult:
        rows = [customer_payload(c, today) for c in self._store.customers.list_all()]
        return ServiceResult(
            ok=True,
            op="list_customers",
            data=dump_validated(CustomerListData, {"count": len(rows), "items": rows}),
        )

    def seed_demo_customers(self, *, today: date | None = None) -> ServiceResult:
        """Create the demo customers that do not exist yet. Idempotent."""
        anchor = today or today_utc()
        created: list[str] = []
        skipped: list[str] = []
        with self._store.transaction() as conn:
            for customer_id, tier, months in DEMO_CUSTOMERS:
                if self._store.customers.exists(customer_id):
                    skipped.append(customer_id)
                    continue
                customer = Customer(
                    customer_id=customer_id,
                    tier=tier,
                    registration_date=months_before(anchor, months),
                )
                self._store.customers.save(customer, conn=conn)
                created.append(customer_id)
        logger.info("demo_customers_seeded", created=len(created), skipped=len(skipped))
        return ServiceResult(
            ok=True,
            op="seed_demo_customers",
            data=dump_validated(SeedData, {"created": created, "skipped": skipped}),
        )
