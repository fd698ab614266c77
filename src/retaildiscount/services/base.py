"""BaseService, the foundation for discount engine services.

Every service receives a :class:`Store` at construction time and owns its
transaction boundaries via ``self._store.transaction()``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from retaildiscount.domain.events import DomainEvent
    from retaildiscount.infrastructure.store import Store

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class BillingService(BaseService):
            def calculate_bill(self, customer_id, items) -> ServiceResult:
                with self._store.transaction() as conn:
                    self._store.bills.save(bill, conn=conn)
                    ids = self._enqueue_events(conn, bill.pull_events())
                warnings = self._dispatch_events(ids)
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    def _enqueue_events(self, conn: Connection, events: Sequence[DomainEvent]) -> list[int]:
        """Write *events* to the outbox inside *conn*. No-op without an event bus."""
        bus = self._store.event_bus
        if bus is None or not events:
            return []
        return bus.enqueue(conn, events)

    def _dispatch_events(self, row_ids: Sequence[int]) -> list[str]:
        """Deliver committed outbox rows. Returns warnings, never raises.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        bus = self._store.event_bus
        if bus is None or not row_ids:
            return []
        try:
            errors = bus.dispatch(row_ids)
        except Exception:
            logger.debug("Event dispatch failed for rows %s", list(row_ids), exc_info=True)
            return ["Event dispatch failed; run 'retaildiscount events drain' to retry"]
        return [f"Plugin hook failed ({err})" for err in errors]
