"""Subcommand modules for retaildiscount.

register_commands() imports each group only when the root group is
built, keeping the import graph of ``retaildiscount --help`` small.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the command groups on the root CLI group."""
    from retaildiscount.commands.bill import bill
    from retaildiscount.commands.customer import customer
    from retaildiscount.commands.events import events

    cli.add_command(customer)
    cli.add_command(bill)
    cli.add_command(events)
