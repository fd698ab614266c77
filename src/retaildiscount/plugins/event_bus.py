"""Outbox-backed event dispatch via pluggy + ThreadPoolExecutor.

Domain events are written to the ``event_outbox`` table in the same
transaction that persists the bill, so an event exists if and only if
its bill does. Dispatch happens after commit; ``drain()`` retries pending
and failed rows synchronously.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select, update

from retaildiscount.domain.events import BillCalculated, BillCreated, DomainEvent
from retaildiscount.infrastructure.database.schema import event_outbox
from retaildiscount.services._helpers import now_iso

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from retaildiscount.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

HOOK_NAMES: dict[str, str] = {
    BillCreated.event_type: "post_bill_created",
    BillCalculated.event_type: "post_bill_calculated",
}


def hook_name_for(event: DomainEvent) -> str:
    """The pluggy hook an event is delivered to."""
    try:
        return HOOK_NAMES[event.event_type]
    except KeyError:
        raise ValueError(f"No hook registered for event type {event.event_type!r}") from None


class EventBus:
    """Outbox-backed event dispatch via pluggy + ThreadPoolExecutor.

    Parameters:
        engine: SQLAlchemy engine with the ``event_outbox`` table.
        plugin_manager: Loaded PluginManager for hook dispatch.
        sync: Force synchronous dispatch (useful for testing / ``--sync``).
        max_retries: Attempts before an event is marked ``dead_letter``.
        max_workers: ThreadPoolExecutor worker count.
    """

    def __init__(
        self,
        engine: Engine,
        plugin_manager: PluginManager,
        *,
        sync: bool = False,
        max_retries: int = 3,
        max_workers: int = 2,
    ) -> None:
        self._engine = engine
        self._pm = plugin_manager
        self._sync = sync
        self._max_retries = max_retries
        self._executor: ThreadPoolExecutor | None = (
            None if sync else ThreadPoolExecutor(max_workers=max_workers)
        )
        self._futures: list[Future[str | None]] = []

    @property
    def sync(self) -> bool:
        return self._sync

    @property
    def plugin_manager(self) -> PluginManager:
        return self._pm

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def enqueue(self, conn: Connection, events: Iterable[DomainEvent]) -> list[int]:
        """Write *events* to the outbox inside the caller's transaction.

        Returns outbox row ids in event order. Nothing is dispatched; call
        :meth:`dispatch` once the transaction has committed.
        """
        ids: list[int] = []
        for event in events:
            payload = event.to_payload()
            result = conn.execute(
                insert(event_outbox).values(
                    event_id=event.event_id,
                    event_type=event.event_type,
                    hook_name=hook_name_for(event),
                    aggregate_id=str(payload.get("bill_id", "")),
                    payload=json.dumps(payload),
                    status="pending",
                    retries=0,
                    created=now_iso(),
                )
            )
            assert result.lastrowid is not None
            ids.append(result.lastrowid)
        return ids

    def dispatch(self, row_ids: Iterable[int]) -> list[str]:
        """Deliver committed outbox rows to their hooks.

        Sync mode runs the hooks inline and returns their failure
        messages; async mode submits them to the pool and returns ``[]``.
        """
        row_ids = list(row_ids)
        if not row_ids:
            return []
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(event_outbox.c.id, event_outbox.c.hook_name, event_outbox.c.payload)
                .where(event_outbox.c.id.in_(row_ids))
                .order_by(event_outbox.c.id)
            ).fetchall()

        errors: list[str] = []
        for row in rows:
            payload = json.loads(row.payload)
            if self._sync:
                error = self._execute_hook(row.id, row.hook_name, payload)
                if error is not None:
                    errors.append(f"{row.hook_name}: {error}")
            else:
                assert self._executor is not None
                future = self._executor.submit(self._execute_hook, row.id, row.hook_name, payload)
                self._futures.append(future)
        return errors

    def publish(self, event: DomainEvent) -> int:
        """Write one event to the outbox in its own transaction, then dispatch."""
        return self.publish_all([event])[0]

    def publish_all(self, events: Iterable[DomainEvent]) -> list[int]:
        """Write *events* in one transaction, then dispatch them in order."""
        with self._engine.begin() as conn:
            ids = self.enqueue(conn, events)
        self.dispatch(ids)
        return ids

    def drain(self) -> list[dict[str, Any]]:
        """Retry pending/failed events synchronously.

        Returns a summary list of ``{id, event_id, hook_name, status}``
        for each retried event.
        """
        self._wait_futures()

        results: list[dict[str, Any]] = []

        with self._engine.connect() as conn:
            rows = conn.execute(
                select(
                    event_outbox.c.id,
                    event_outbox.c.event_id,
                    event_outbox.c.hook_name,
                    event_outbox.c.payload,
                )
                .where(event_outbox.c.status.in_(["pending", "failed"]))
                .order_by(event_outbox.c.id)
            ).fetchall()

        for row in rows:
            self._execute_hook(row.id, row.hook_name, json.loads(row.payload))

            with self._engine.connect() as conn:
                status = conn.execute(
                    select(event_outbox.c.status).where(event_outbox.c.id == row.id)
                ).scalar_one()

            results.append(
                {
                    "id": row.id,
                    "event_id": row.event_id,
                    "hook_name": row.hook_name,
                    "status": status,
                }
            )

        return results

    def status_counts(self) -> dict[str, int]:
        """Number of outbox rows per status."""
        self._wait_futures()
        with self._engine.connect() as conn:
            rows = conn.execute(select(event_outbox.c.status)).fetchall()
        counts: dict[str, int] = {}
        for row in rows:
            counts[row.status] = counts.get(row.status, 0) + 1
        return counts

    def shutdown(self) -> None:
        """Shutdown ThreadPoolExecutor, waiting for pending tasks."""
        self._wait_futures()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _execute_hook(self, row_id: int, hook_name: str, payload: dict[str, Any]) -> str | None:
        """Attempt to dispatch a hook. Returns the error message on failure."""
        hook_fn = getattr(self._pm.hook, hook_name, None)
        if hook_fn is None:
            self._mark_completed(row_id)
            return None

        try:
            hook_fn(**payload)
        except Exception as exc:
            logger.warning("Hook %s failed: %s", hook_name, exc)
            self._mark_failed(row_id, str(exc))
            return str(exc)
        self._mark_completed(row_id)
        return None

    def _mark_completed(self, row_id: int) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                update(event_outbox)
                .where(event_outbox.c.id == row_id)
                .values(status="completed", error=None, completed=now_iso())
            )

    def _mark_failed(self, row_id: int, error: str) -> None:
        """Increment retries, mark failed or dead_letter."""
        with self._engine.begin() as conn:
            retries = conn.execute(
                select(event_outbox.c.retries).where(event_outbox.c.id == row_id)
            ).scalar_one()

            new_retries = retries + 1
            new_status = "dead_letter" if new_retries >= self._max_retries else "failed"

            conn.execute(
                update(event_outbox)
                .where(event_outbox.c.id == row_id)
                .values(
                    status=new_status,
                    error=error,
                    retries=new_retries,
                    completed=now_iso() if new_status == "dead_letter" else None,
                )
            )

    def _wait_futures(self) -> None:
        """Wait for all in-flight async futures to complete."""
        for future in self._futures:
            try:
                future.result(timeout=30)
            except Exception:
                logger.debug("Outbox dispatch task raised", exc_info=True)
        self._futures.clear()
