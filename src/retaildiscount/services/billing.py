"""BillingService: calculate, persist, and look up bills.

``calculate_bill`` is the one write path:

1. Validate the request shape (customer id, at least one item).
2. Resolve the customer; an unknown id fails before any discount math.
3. Map each raw item to a :class:`BillItem`, prefixing errors with the
   item's name.
4. ``Bill.create`` then ``calculate_discount``.
5. Persist the bill and enqueue its events in ONE transaction.
6. Dispatch the committed events (plugin failures become warnings).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

import structlog

from retaildiscount.config.logging import log_context
from retaildiscount.domain.bill import Bill
from retaildiscount.domain.errors import ValidationError
from retaildiscount.domain.items import BillItem
from retaildiscount.domain.money import Money
from retaildiscount.domain.types import parse_category
from retaildiscount.services._helpers import prefix_error
from retaildiscount.services.base import BaseService
from retaildiscount.services.contracts import (
    bill_calculation_payload,
    bill_detail_payload,
    bill_list_payload,
)
from retaildiscount.services.result import ErrorCode, ServiceResult

logger = structlog.get_logger(__name__)

ITEM_FIELDS = ("name", "category", "unit_price", "quantity")


def _coerce_quantity(value: Any) -> Any:
    """Accept ``"3"`` from text sources; everything else is left to BillItem."""
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def build_item(raw: Mapping[str, Any], position: int) -> BillItem:
    """Map one request item to a BillItem.

    Raises ValidationError with the item's name (or position) prefixed.
    """
    name = raw.get("name") if isinstance(raw, Mapping) else None
    label = f"Item '{name}'" if isinstance(name, str) and name.strip() else f"Item {position}"
    if not isinstance(raw, Mapping):
        raise ValidationError(prefix_error(label, "must be an object"))
    missing = [key for key in ITEM_FIELDS if raw.get(key) is None]
    if missing:
        raise ValidationError(prefix_error(label, f"missing {', '.join(missing)}"))
    try:
        return BillItem(
            name=str(raw["name"]),
            category=parse_category(str(raw["category"])),
            unit_price=Money.of(raw["unit_price"]),
            quantity=_coerce_quantity(raw["quantity"]),
        )
    except ValidationError as exc:
        raise ValidationError(prefix_error(label, str(exc))) from exc


class BillingService(BaseService):
    """Bill calculation and retrieval."""

    def calculate_bill(
        self,
        customer_id: str,
        items: Sequence[Mapping[str, Any]],
        *,
        today: date | None = None,
    ) -> ServiceResult:
        """Calculate, persist, and publish a bill for *customer_id*.

        *today* is the date tenure is evaluated on (default: current date).
        """
        op = "calculate_bill"

        if not isinstance(customer_id, str) or not customer_id.strip():
            return ServiceResult.failure(op, ErrorCode.INVALID_BILL, "Customer ID cannot be empty")
        customer_id = customer_id.strip()
        if not items:
            return ServiceResult.failure(
                op, ErrorCode.INVALID_BILL, "Bill must have at least one item"
            )

        customer = self._store.customers.find_by_id(customer_id)
        if customer is None:
            logger.info("customer_not_found", customer_id=customer_id)
            return ServiceResult.failure(
                op,
                ErrorCode.CUSTOMER_NOT_FOUND,
                f"Customer not found with ID: {customer_id}",
                customer_id=customer_id,
            )

        try:
            bill_items = [build_item(raw, pos) for pos, raw in enumerate(items, start=1)]
            bill = Bill.create(customer, bill_items)
            breakdown = bill.calculate_discount(today)
        except ValidationError as exc:
            return ServiceResult.failure(op, ErrorCode.INVALID_BILL, str(exc))

        with log_context(bill_id=bill.bill_id, customer_id=customer_id):
            logger.debug(
                "bill_calculated",
                total=breakdown.total_amount.format(),
                rate=breakdown.percentage_discount_rate,
                net_payable=breakdown.net_payable.format(),
            )

            with self._store.transaction() as conn:
                self._store.bills.save(bill, conn=conn)
                row_ids = self._enqueue_events(conn, bill.pull_events())
            logger.info("bill_saved", events=len(row_ids))

            warnings = self._dispatch_events(row_ids)

        return ServiceResult(
            ok=True,
            op=op,
            data=bill_calculation_payload(bill),
            warnings=warnings,
        )

    def get_bill(self, bill_id: str) -> ServiceResult:
        op = "get_bill"
        bill = self._store.bills.find_by_id(bill_id)
        if bill is None:
            return ServiceResult.failure(
                op, ErrorCode.BILL_NOT_FOUND, f"Bill not found with ID: {bill_id}", bill_id=bill_id
            )
        return ServiceResult(ok=True, op=op, data=bill_detail_payload(bill))

    def list_bills(
        self,
        customer_id: str,
        *,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> ServiceResult:
        """Bills of one customer, newest first, optionally within a date range."""
        op = "list_bills"
        if since is not None and until is not None and since > until:
            return ServiceResult.failure(
                op, ErrorCode.INVALID_BILL, "'since' must not be later than 'until'"
            )
        if not self._store.customers.exists(customer_id):
            return ServiceResult.failure(
                op,
                ErrorCode.CUSTOMER_NOT_FOUND,
                f"Customer not found with ID: {customer_id}",
                customer_id=customer_id,
            )
        if since is None and until is None:
            bills = self._store.bills.find_by_customer(customer_id)
        else:
            bills = self._store.bills.find_by_customer_and_range(customer_id, since, until)
        return ServiceResult(
            ok=True, op=op, data=bill_list_payload(bills), meta={"customer_id": customer_id}
        )

    def recent_bills(self, limit: int = 10) -> ServiceResult:
        op = "recent_bills"
        if limit < 1:
            return ServiceResult.failure(op, ErrorCode.INVALID_BILL, "Limit must be at least 1")
        bills = self._store.bills.find_recent(limit)
        return ServiceResult(ok=True, op=op, data=bill_list_payload(bills), meta={"limit": limit})
