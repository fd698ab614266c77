"""Tests for BillingService: calculate, persist, publish, and look up bills."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Any

import pytest
from sqlalchemy import select

from retaildiscount.config.settings import DiscountSettings
from retaildiscount.domain.customers import Customer
from retaildiscount.domain.errors import ValidationError
from retaildiscount.domain.types import ItemCategory
from retaildiscount.infrastructure.database.schema import bills, event_outbox
from retaildiscount.infrastructure.store import Store
from retaildiscount.plugins.hookspecs import hookimpl
from retaildiscount.services.billing import BillingService, build_item


def tv(price: str = "1000", quantity: Any = 1) -> dict[str, Any]:
    return {"name": "TV", "category": "electronics", "unit_price": price, "quantity": quantity}


def groceries(price: str = "200") -> dict[str, Any]:
    return {"name": "Groceries", "category": "GROCERY", "unit_price": price, "quantity": 1}


@pytest.fixture
def billing(
    store: Store,
    employee: Customer,
    affiliate: Customer,
    long_term: Customer,
    regular: Customer,
) -> BillingService:
    for customer in (employee, affiliate, long_term, regular):
        store.customers.save(customer)
    return BillingService(store)


class _RaisingPlugin:
    @hookimpl
    def post_bill_calculated(self, bill_id: str) -> None:
        raise RuntimeError("ledger offline")


class TestBuildItem:
    def test_maps_fields(self) -> None:
        item = build_item(tv("19.99", "3"), 1)
        assert item.category is ItemCategory.ELECTRONICS
        assert item.quantity == 3
        assert item.total_price.format() == "59.97"

    def test_error_prefixed_with_name(self) -> None:
        with pytest.raises(ValidationError, match="Item 'TV': .*greater than 0"):
            build_item(tv("0"), 1)

    def test_error_prefixed_with_position_without_name(self) -> None:
        with pytest.raises(ValidationError, match="Item 2: missing name"):
            build_item({"category": "other", "unit_price": "1", "quantity": 1}, 2)

    def test_unknown_category(self) -> None:
        raw = {"name": "Toy", "category": "toys", "unit_price": "5", "quantity": 1}
        with pytest.raises(ValidationError, match="Item 'Toy': Invalid category 'toys'"):
            build_item(raw, 1)


class TestCalculateBill:
    def test_employee_scenario(self, billing: BillingService, today: date) -> None:
        result = billing.calculate_bill("EMP001", [tv()], today=today)
        assert result.ok, result.error
        assert result.op == "calculate_bill"
        d = result.data
        assert d["customer_id"] == "EMP001"
        assert d["customer_tier"] == "employee"
        assert d["total_amount"] == "1000.00"
        assert d["percentage_discount"] == "300.00"
        assert d["percentage_discount_rate"] == 30
        assert d["bill_based_discount"] == "35.00"
        assert d["total_discount"] == "335.00"
        assert d["net_payable"] == "665.00"
        assert d["item_count"] == 1
        assert datetime.fromisoformat(d["calculated_at"]).tzinfo is not None

    def test_grocery_excluded(self, billing: BillingService, today: date) -> None:
        result = billing.calculate_bill("EMP001", [tv(), groceries()], today=today)
        assert result.data["percentage_discount"] == "300.00"
        assert result.data["bill_based_discount"] == "45.00"
        assert result.data["net_payable"] == "855.00"

    def test_long_term_customer_tiers(
        self, billing: BillingService, today: date
    ) -> None:
        result = billing.calculate_bill("CUST001", [tv("100")], today=today)
        assert result.data["customer_tier"] == "regular"
        assert result.data["effective_tier"] == "long_term_customer"
        assert result.data["percentage_discount_rate"] == 5
        assert result.data["net_payable"] == "95.00"

    def test_new_regular(self, billing: BillingService, today: date) -> None:
        result = billing.calculate_bill("CUST002", [tv("990")], today=today)
        assert result.data["percentage_discount"] == "0.00"
        assert result.data["net_payable"] == "945.00"

    def test_persists_bill_and_events_together(
        self, billing: BillingService, store: Store, today: date
    ) -> None:
        result = billing.calculate_bill("AFF001", [tv("200"), groceries("50")], today=today)
        bill_id = result.data["bill_id"]

        assert store.bills.exists(bill_id)
        with store.engine.connect() as conn:
            rows = conn.execute(
                select(event_outbox.c.event_type, event_outbox.c.status)
                .where(event_outbox.c.aggregate_id == bill_id)
                .order_by(event_outbox.c.id)
            ).fetchall()
        assert [(r.event_type, r.status) for r in rows] == [
            ("BillCreated", "completed"),
            ("BillCalculated", "completed"),
        ]

    def test_customer_id_is_trimmed(self, billing: BillingService, today: date) -> None:
        result = billing.calculate_bill("  EMP001 ", [tv()], today=today)
        assert result.ok
        assert result.data["customer_id"] == "EMP001"

    def test_unknown_customer(self, billing: BillingService, store: Store) -> None:
        result = billing.calculate_bill("GHOST", [tv()])
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "CUSTOMER_NOT_FOUND"
        assert result.error.message == "Customer not found with ID: GHOST"
        with store.engine.connect() as conn:
            assert conn.execute(select(bills.c.bill_id)).first() is None

    def test_unknown_customer_wins_over_bad_items(self, billing: BillingService) -> None:
        result = billing.calculate_bill("GHOST", [tv("-1")])
        assert result.error is not None
        assert result.error.code == "CUSTOMER_NOT_FOUND"

    @pytest.mark.parametrize("customer_id", ["", "   "])
    def test_empty_customer_id(self, billing: BillingService, customer_id: str) -> None:
        result = billing.calculate_bill(customer_id, [tv()])
        assert result.error is not None
        assert result.error.code == "INVALID_BILL"

    def test_no_items(self, billing: BillingService) -> None:
        result = billing.calculate_bill("EMP001", [])
        assert result.error is not None
        assert result.error.code == "INVALID_BILL"
        assert "at least one item" in result.error.message

    @pytest.mark.parametrize(
        ("item", "message"),
        [
            (tv("-5"), "negative"),
            (tv("abc"), "not a number"),
            (tv(quantity=0), "positive"),
            (tv(quantity="two"), "integer"),
        ],
    )
    def test_invalid_items(
        self, billing: BillingService, item: dict[str, Any], message: str
    ) -> None:
        result = billing.calculate_bill("EMP001", [item])
        assert result.error is not None
        assert result.error.code == "INVALID_BILL"
        assert result.error.message.startswith("Item 'TV': ")
        assert message in result.error.message

    def test_oversized_price_is_invalid_bill(self, billing: BillingService, store: Store) -> None:
        result = billing.calculate_bill("EMP001", [tv("1e1001")])
        assert result.error is not None
        assert result.error.code == "INVALID_BILL"
        assert result.error.message.startswith("Item 'TV': ")
        assert "integer digits" in result.error.message
        with store.engine.connect() as conn:
            assert conn.execute(select(bills.c.bill_id)).first() is None

    def test_oversized_total_is_invalid_bill(self, billing: BillingService) -> None:
        result = billing.calculate_bill("EMP001", [tv("9e999"), tv("9e999")])
        assert result.error is not None
        assert result.error.code == "INVALID_BILL"
        assert "integer digits" in result.error.message

    def test_amounts_beyond_default_decimal_precision(
        self, billing: BillingService, today: date
    ) -> None:
        result = billing.calculate_bill("EMP001", [tv("1e24", quantity=1000)], today=today)
        assert result.ok
        assert result.data["total_amount"] == "1" + "0" * 27 + ".00"
        assert result.data["net_payable"] == "665" + "0" * 24 + ".00"

    def test_plugin_failure_is_a_warning(
        self, billing: BillingService, store: Store, today: date
    ) -> None:
        assert store.event_bus is not None
        store.event_bus.plugin_manager.register_plugin(_RaisingPlugin())
        result = billing.calculate_bill("EMP001", [tv()], today=today)
        assert result.ok
        assert len(result.warnings) == 1
        assert "ledger offline" in result.warnings[0]
        assert store.bills.exists(result.data["bill_id"])

    def test_without_event_bus(
        self, settings: DiscountSettings, employee: Customer, today: date
    ) -> None:
        plain = Store(settings)
        try:
            plain.customers.save(employee)
            result = BillingService(plain).calculate_bill("EMP001", [tv()], today=today)
            assert result.ok
            assert result.warnings == []
        finally:
            plain.close()


class TestLookups:
    def test_stored_bill_keeps_effective_tier(self, billing: BillingService, today: date) -> None:
        created = billing.calculate_bill("CUST001", [tv("100")], today=today)
        bill_id = created.data["bill_id"]

        detail = billing.get_bill(bill_id)
        assert detail.data["customer_tier"] == "regular"
        assert detail.data["effective_tier"] == "long_term_customer"

        listed = billing.list_bills("CUST001")
        assert [b["effective_tier"] for b in listed.data["items"]] == ["long_term_customer"]

    def test_get_bill(self, billing: BillingService, today: date) -> None:
        created = billing.calculate_bill("EMP001", [tv(), groceries()], today=today)
        result = billing.get_bill(created.data["bill_id"])
        assert result.ok
        d = result.data
        assert d["net_payable"] == "855.00"
        assert d["eligible_amount"] == "1000.00"
        assert d["amount_after_percentage"] == "900.00"
        assert [i["name"] for i in d["items"]] == ["TV", "Groceries"]
        assert d["items"][1]["eligible_for_percentage_discount"] is False

    def test_get_bill_is_not_recalculated(self, billing: BillingService, store: Store) -> None:
        # Calculated on a date when CUST001 was not yet long-term.
        created = billing.calculate_bill("CUST001", [tv("100")], today=date(2024, 6, 1))
        assert created.data["percentage_discount_rate"] == 0
        fetched = billing.get_bill(created.data["bill_id"])
        assert fetched.data["percentage_discount_rate"] == 0
        assert fetched.data["net_payable"] == "95.00"

    def test_get_missing_bill(self, billing: BillingService) -> None:
        result = billing.get_bill("nope")
        assert result.error is not None
        assert result.error.code == "BILL_NOT_FOUND"

    def test_list_bills(self, billing: BillingService, today: date) -> None:
        first = billing.calculate_bill("EMP001", [tv()], today=today)
        second = billing.calculate_bill("EMP001", [groceries()], today=today)
        billing.calculate_bill("AFF001", [tv()], today=today)

        result = billing.list_bills("EMP001")
        assert result.ok
        assert result.data["count"] == 2
        assert [b["bill_id"] for b in result.data["items"]] == [
            second.data["bill_id"],
            first.data["bill_id"],
        ]

    def test_list_bills_in_range(self, billing: BillingService, today: date) -> None:
        billing.calculate_bill("EMP001", [tv()], today=today)
        now = datetime.now(UTC)
        inside = billing.list_bills(
            "EMP001", since=now - timedelta(hours=1), until=now + timedelta(hours=1)
        )
        outside = billing.list_bills("EMP001", until=now - timedelta(days=1))
        assert inside.data["count"] == 1
        assert outside.data["count"] == 0

    def test_list_bills_bad_range(self, billing: BillingService) -> None:
        now = datetime.now(UTC)
        result = billing.list_bills("EMP001", since=now, until=now - timedelta(days=1))
        assert result.error is not None
        assert result.error.code == "INVALID_BILL"

    def test_list_bills_unknown_customer(self, billing: BillingService) -> None:
        result = billing.list_bills("GHOST")
        assert result.error is not None
        assert result.error.code == "CUSTOMER_NOT_FOUND"

    def test_recent_bills(self, billing: BillingService, today: date) -> None:
        for customer_id in ("EMP001", "AFF001", "CUST001"):
            billing.calculate_bill(customer_id, [tv()], today=today)
        result = billing.recent_bills(limit=2)
        assert result.data["count"] == 2
        assert [b["customer_id"] for b in result.data["items"]] == ["CUST001", "AFF001"]

    def test_recent_bills_invalid_limit(self, billing: BillingService) -> None:
        result = billing.recent_bills(limit=0)
        assert not result.ok
