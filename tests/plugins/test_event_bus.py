"""Tests for EventBus outbox-backed event dispatch."""

from __future__ import annotations

import json
from typing import Any

import pytest
from sqlalchemy import select
from sqlalchemy.engine import Engine

from retaildiscount.domain.events import BillCalculated, BillCreated
from retaildiscount.domain.money import Money
from retaildiscount.infrastructure.database.schema import event_outbox
from retaildiscount.plugins.event_bus import EventBus, hook_name_for
from retaildiscount.plugins.hookspecs import hookimpl
from retaildiscount.plugins.manager import PluginManager

# ---------------------------------------------------------------------------
# Fake plugins
# ---------------------------------------------------------------------------


class RecordingPlugin:
    """Plugin that records all hook calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @hookimpl
    def post_bill_created(self, bill_id: str, total_amount: str, net_payable: str) -> None:
        self.calls.append(
            (
                "post_bill_created",
                {"bill_id": bill_id, "total_amount": total_amount, "net_payable": net_payable},
            )
        )

    @hookimpl
    def post_bill_calculated(
        self, bill_id: str, percentage_discount_rate: int, net_payable: str
    ) -> None:
        self.calls.append(
            (
                "post_bill_calculated",
                {
                    "bill_id": bill_id,
                    "percentage_discount_rate": percentage_discount_rate,
                    "net_payable": net_payable,
                },
            )
        )


class FailingPlugin:
    """Plugin that always raises on post_bill_created."""

    @hookimpl
    def post_bill_created(self, bill_id: str) -> None:
        raise RuntimeError(f"cannot audit {bill_id}")


class FlakyPlugin:
    """Fails the first *failures* calls, then succeeds."""

    def __init__(self, failures: int) -> None:
        self.remaining = failures
        self.succeeded = 0

    @hookimpl
    def post_bill_created(self, bill_id: str) -> None:
        if self.remaining > 0:
            self.remaining -= 1
            raise RuntimeError("temporarily unavailable")
        self.succeeded += 1


def _created(bill_id: str = "bill-1") -> BillCreated:
    return BillCreated(
        bill_id=bill_id,
        customer_id="EMP001",
        total_amount=Money.of("1000"),
        net_payable=Money.of("1000"),
    )


def _calculated(bill_id: str = "bill-1") -> BillCalculated:
    return BillCalculated(
        bill_id=bill_id,
        customer_id="EMP001",
        total_amount=Money.of(1000),
        eligible_amount=Money.of(1000),
        percentage_discount=Money.of(300),
        percentage_discount_rate=30,
        amount_after_percentage=Money.of(700),
        bill_based_discount=Money.of(35),
        total_discount=Money.of(335),
        net_payable=Money.of(665),
    )


def _make_bus(
    engine: Engine, *plugins: object, sync: bool = True, max_retries: int = 3
) -> EventBus:
    pm = PluginManager()
    for plugin in plugins:
        pm.register_plugin(plugin)
    return EventBus(engine, pm, sync=sync, max_retries=max_retries)


def _rows(engine: Engine) -> list[Any]:
    with engine.connect() as conn:
        return list(conn.execute(select(event_outbox).order_by(event_outbox.c.id)).fetchall())


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestHookNames:
    def test_mapping(self) -> None:
        assert hook_name_for(_created()) == "post_bill_created"
        assert hook_name_for(_calculated()) == "post_bill_calculated"


class TestPublish:
    def test_sync_publish_delivers_and_completes(self, db_engine: Engine) -> None:
        plugin = RecordingPlugin()
        bus = _make_bus(db_engine, plugin)

        bus.publish(_created())

        assert plugin.calls == [
            (
                "post_bill_created",
                {"bill_id": "bill-1", "total_amount": "1000.00", "net_payable": "1000.00"},
            )
        ]
        (row,) = _rows(db_engine)
        assert row.status == "completed"
        assert row.hook_name == "post_bill_created"
        assert row.event_type == "BillCreated"
        assert row.aggregate_id == "bill-1"
        assert json.loads(row.payload)["customer_id"] == "EMP001"

    def test_publish_all_preserves_order(self, db_engine: Engine) -> None:
        plugin = RecordingPlugin()
        bus = _make_bus(db_engine, plugin)
        bus.publish_all([_created(), _calculated()])
        assert [name for name, _ in plugin.calls] == ["post_bill_created", "post_bill_calculated"]
        assert plugin.calls[1][1]["percentage_discount_rate"] == 30

    def test_async_publish_completes_after_shutdown(self, db_engine: Engine) -> None:
        plugin = RecordingPlugin()
        bus = _make_bus(db_engine, plugin, sync=False)
        bus.publish_all([_created("a"), _created("b")])
        bus.shutdown()
        assert {call[1]["bill_id"] for call in plugin.calls} == {"a", "b"}
        assert {row.status for row in _rows(db_engine)} == {"completed"}

    def test_no_plugins_still_completes(self, db_engine: Engine) -> None:
        bus = _make_bus(db_engine)
        bus.publish(_created())
        assert _rows(db_engine)[0].status == "completed"


class TestOutbox:
    def test_enqueue_does_not_dispatch(self, db_engine: Engine) -> None:
        plugin = RecordingPlugin()
        bus = _make_bus(db_engine, plugin)
        with db_engine.begin() as conn:
            ids = bus.enqueue(conn, [_created(), _calculated()])
        assert len(ids) == 2
        assert plugin.calls == []
        assert {row.status for row in _rows(db_engine)} == {"pending"}

        bus.dispatch(ids)
        assert len(plugin.calls) == 2

    def test_enqueue_rolls_back_with_transaction(self, db_engine: Engine) -> None:
        bus = _make_bus(db_engine)
        with pytest.raises(RuntimeError), db_engine.begin() as conn:
            bus.enqueue(conn, [_created()])
            raise RuntimeError("save failed")
        assert _rows(db_engine) == []

    def test_dispatch_empty(self, db_engine: Engine) -> None:
        assert _make_bus(db_engine).dispatch([]) == []


class TestFailures:
    def test_failure_is_recorded_not_raised(self, db_engine: Engine) -> None:
        bus = _make_bus(db_engine, FailingPlugin())
        with db_engine.begin() as conn:
            ids = bus.enqueue(conn, [_created()])
        errors = bus.dispatch(ids)
        assert errors == ["post_bill_created: cannot audit bill-1"]
        (row,) = _rows(db_engine)
        assert row.status == "failed"
        assert row.retries == 1
        assert "cannot audit" in row.error

    def test_dead_letter_after_max_retries(self, db_engine: Engine) -> None:
        bus = _make_bus(db_engine, FailingPlugin(), max_retries=2)
        bus.publish(_created())
        results = bus.drain()
        assert results[0]["status"] == "dead_letter"
        assert _rows(db_engine)[0].completed is not None
        # Dead-lettered events are not retried again.
        assert bus.drain() == []

    def test_drain_retries_until_success(self, db_engine: Engine) -> None:
        plugin = FlakyPlugin(failures=1)
        bus = _make_bus(db_engine, plugin)
        bus.publish(_created())
        assert _rows(db_engine)[0].status == "failed"

        results = bus.drain()
        assert results == [
            {
                "id": 1,
                "event_id": results[0]["event_id"],
                "hook_name": "post_bill_created",
                "status": "completed",
            }
        ]
        assert plugin.succeeded == 1

    def test_status_counts(self, db_engine: Engine) -> None:
        bus = _make_bus(db_engine, FailingPlugin())
        bus.publish_all([_created("a"), _calculated("a")])
        assert bus.status_counts() == {"failed": 1, "completed": 1}

    def test_drain_picks_up_pending_rows(self, db_engine: Engine) -> None:
        plugin = RecordingPlugin()
        bus = _make_bus(db_engine, plugin)
        with db_engine.begin() as conn:
            bus.enqueue(conn, [_created()])
        results = bus.drain()
        assert [r["status"] for r in results] == ["completed"]
        assert len(plugin.calls) == 1
