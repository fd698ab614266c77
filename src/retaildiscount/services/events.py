"""EventService: operator access to the event outbox."""

from __future__ import annotations

from retaildiscount.services.base import BaseService
from retaildiscount.services.result import ServiceResult


class EventService(BaseService):
    """Outbox maintenance."""

    def drain(self) -> ServiceResult:
        """Retry every pending or failed outbox event synchronously.

        Events past ``max_retries`` end in ``dead_letter`` and are not
        retried again.
        """
        op = "drain_events"
        bus = self._store.event_bus
        if bus is None:
            return ServiceResult(
                ok=True,
                op=op,
                data={"count": 0, "items": [], "status_counts": {}},
                warnings=["Event bus is not initialized; nothing was drained"],
            )
        items = bus.drain()
        warnings = [
            f"Event {item['event_id']} ({item['hook_name']}) is {item['status']}"
            for item in items
            if item["status"] != "completed"
        ]
        return ServiceResult(
            ok=True,
            op=op,
            data={"count": len(items), "items": items, "status_counts": bus.status_counts()},
            warnings=warnings,
        )
