"""Tests for domain event payloads."""

from __future__ import annotations

import json
from datetime import datetime

import pytest

from retaildiscount.domain.events import BillCalculated, BillCreated
from retaildiscount.domain.money import Money


class TestBillCreated:
    def test_payload_is_json_safe(self) -> None:
        event = BillCreated(
            bill_id="b1", customer_id="c1", total_amount=Money.of(12), net_payable=Money.of(12)
        )
        payload = event.to_payload()
        assert payload["total_amount"] == "12.00"
        assert payload["bill_id"] == "b1"
        assert datetime.fromisoformat(payload["occurred_on"]).tzinfo is not None
        json.dumps(payload)

    def test_event_type(self) -> None:
        assert BillCreated.event_type == "BillCreated"
        assert "event_type" not in BillCreated(
            bill_id="b", customer_id="c", total_amount=Money.zero(), net_payable=Money.zero()
        ).to_payload()

    def test_unique_ids(self) -> None:
        fields = {
            "bill_id": "b",
            "customer_id": "c",
            "total_amount": Money.zero(),
            "net_payable": Money.zero(),
        }
        assert BillCreated(**fields).event_id != BillCreated(**fields).event_id

    def test_frozen(self) -> None:
        event = BillCreated(
            bill_id="b", customer_id="c", total_amount=Money.zero(), net_payable=Money.zero()
        )
        with pytest.raises(AttributeError):
            event.bill_id = "other"  # type: ignore[misc]


class TestBillCalculated:
    def test_payload_keys(self) -> None:
        event = BillCalculated(
            bill_id="b1",
            customer_id="c1",
            total_amount=Money.of(1000),
            eligible_amount=Money.of(1000),
            percentage_discount=Money.of(300),
            percentage_discount_rate=30,
            amount_after_percentage=Money.of(700),
            bill_based_discount=Money.of(35),
            total_discount=Money.of(335),
            net_payable=Money.of(665),
        )
        payload = event.to_payload()
        assert payload["percentage_discount_rate"] == 30
        assert payload["net_payable"] == "665.00"
        assert set(payload) >= {"event_id", "occurred_on", "amount_after_percentage"}
