"""Store: repository access with transaction coordination.

The Store is the single dependency injected into every service. It owns
the database engine, both repositories, and (once initialized) the event
bus. :meth:`transaction` yields one SQLAlchemy connection so a bill, its
items, and its outbox events commit or roll back together.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from retaildiscount.infrastructure.database.engine import init_database
from retaildiscount.infrastructure.repositories import BillRepository, CustomerRepository

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from retaildiscount.config.settings import DiscountSettings
    from retaildiscount.plugins.event_bus import EventBus

logger = logging.getLogger(__name__)


class Store:
    """Owns the engine, repositories, and event bus for one CLI session."""

    def __init__(self, settings: DiscountSettings) -> None:
        self._settings = settings
        self._engine = init_database(settings.db_path)
        self._customers = CustomerRepository(self._engine)
        self._bills = BillRepository(self._engine)
        self._event_bus: EventBus | None = None
        logger.debug("Store opened at %s", settings.db_path)

    @property
    def settings(self) -> DiscountSettings:
        return self._settings

    @property
    def path(self) -> Path:
        return self._settings.db_path

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def customers(self) -> CustomerRepository:
        return self._customers

    @property
    def bills(self) -> BillRepository:
        return self._bills

    @property
    def event_bus(self) -> EventBus | None:
        """The plugin event bus, or None until :meth:`init_event_bus` runs."""
        return self._event_bus

    def init_event_bus(self, *, sync: bool = False) -> EventBus:
        """Initialize the plugin event bus.

        Creates a PluginManager, discovers entry-point plugins (unless
        ``[plugins] enabled`` is off), registers the built-in audit plugin,
        and wires up the EventBus. Called by AppContext when the store is
        first accessed.
        """
        from retaildiscount.plugins.builtins.audit import AuditLogPlugin
        from retaildiscount.plugins.event_bus import EventBus
        from retaildiscount.plugins.manager import PluginManager

        plugins_config = self._settings.plugins
        events_config = self._settings.events

        pm = PluginManager()
        if plugins_config.enabled:
            pm.discover_and_load()
        if plugins_config.audit_log:
            pm.register_plugin(AuditLogPlugin(), name="audit-builtin")

        self._event_bus = EventBus(
            self._engine,
            pm,
            sync=sync,
            max_retries=events_config.max_retries,
            max_workers=events_config.max_workers,
        )
        return self._event_bus

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """One DB transaction: commit on success, rollback on exception."""
        with self._engine.begin() as conn:
            yield conn

    def close(self) -> None:
        """Flush in-flight plugin work and release the engine."""
        if self._event_bus is not None:
            self._event_bus.shutdown()
        self._engine.dispose()
