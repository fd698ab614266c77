"""Command group: event outbox maintenance."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from retaildiscount.commands._base import DiscountGroup
from retaildiscount.services.events import EventService

if TYPE_CHECKING:
    from retaildiscount.commands._context import AppContext


@click.group(
    cls=DiscountGroup,
    examples="""\
  retaildiscount events drain
  retaildiscount --json events drain""",
)
def events() -> None:
    """Inspect and retry plugin event delivery."""


@events.command(
    examples="""\
  retaildiscount events drain"""
)
@click.pass_obj
def drain(app: AppContext) -> None:
    """Retry pending and failed outbox events synchronously."""
    app.emit(EventService(app.store).drain())
