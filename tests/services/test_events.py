"""Tests for EventService outbox draining."""

from __future__ import annotations

from datetime import date

from retaildiscount.config.settings import DiscountSettings
from retaildiscount.domain.customers import Customer
from retaildiscount.infrastructure.store import Store
from retaildiscount.plugins.hookspecs import hookimpl
from retaildiscount.services.billing import BillingService
from retaildiscount.services.events import EventService


class _FlakyPlugin:
    def __init__(self) -> None:
        self.fail = True

    @hookimpl
    def post_bill_created(self, bill_id: str) -> None:
        if self.fail:
            raise RuntimeError("not yet")


class TestDrain:
    def test_nothing_to_drain(self, store: Store) -> None:
        result = EventService(store).drain()
        assert result.ok
        assert result.data["count"] == 0
        assert result.warnings == []

    def test_drain_recovers_failed_events(
        self, store: Store, employee: Customer, today: date
    ) -> None:
        assert store.event_bus is not None
        plugin = _FlakyPlugin()
        store.event_bus.plugin_manager.register_plugin(plugin)
        store.customers.save(employee)
        calc = BillingService(store).calculate_bill(
            "EMP001",
            [{"name": "TV", "category": "electronics", "unit_price": "10", "quantity": 1}],
            today=today,
        )
        assert calc.warnings

        plugin.fail = False
        result = EventService(store).drain()
        assert result.data["count"] == 1
        assert result.data["items"][0]["status"] == "completed"
        assert result.data["status_counts"] == {"completed": 2}
        assert result.warnings == []

    def test_without_event_bus(self, settings: DiscountSettings) -> None:
        plain = Store(settings)
        try:
            result = EventService(plain).drain()
            assert result.ok
            assert result.warnings
        finally:
            plain.close()
