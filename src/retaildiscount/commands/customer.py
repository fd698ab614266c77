"""Command group: customer registration and lookup."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

import click

from retaildiscount.commands._base import DiscountGroup
from retaildiscount.services.customers import CustomerService

if TYPE_CHECKING:
    from retaildiscount.commands._context import AppContext

_CUSTOMER_EXAMPLES = """\
  retaildiscount customer seed
  retaildiscount customer add EMP002 --tier employee --registered 2021-04-01
  retaildiscount customer get CUST001
  retaildiscount --json customer list"""


@click.group(cls=DiscountGroup, examples=_CUSTOMER_EXAMPLES)
def customer() -> None:
    """Register and inspect customers."""


@customer.command(
    examples="""\
  retaildiscount customer add EMP002 --tier employee --registered 2021-04-01
  retaildiscount customer add CUST010 --tier regular"""
)
@click.argument("customer_id")
@click.option(
    "--tier",
    required=True,
    help="employee, affiliate or regular (long-term status is derived from tenure).",
)
@click.option(
    "--registered",
    "registered",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Registration date (YYYY-MM-DD). Defaults to today.",
)
@click.pass_obj
def add(app: AppContext, customer_id: str, tier: str, registered: datetime | None) -> None:
    """Register a new customer."""
    registration_date = registered.date() if registered is not None else date.today()
    svc = CustomerService(app.store)
    app.emit(svc.register_customer(customer_id, tier, registration_date))


@customer.command(
    examples="""\
  retaildiscount customer get CUST001
  retaildiscount --json customer get EMP001"""
)
@click.argument("customer_id")
@click.pass_obj
def get(app: AppContext, customer_id: str) -> None:
    """Show a customer with their effective tier and discount rate."""
    app.emit(CustomerService(app.store).get_customer(customer_id))


@customer.command(
    name="list",
    examples="""\
  retaildiscount customer list
  retaildiscount -q customer list""",
)
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List all customers."""
    app.emit(CustomerService(app.store).list_customers())


@customer.command(
    examples="""\
  retaildiscount customer seed"""
)
@click.pass_obj
def seed(app: AppContext) -> None:
    """Create the demo customers EMP001, AFF001, CUST001 and CUST002."""
    app.emit(CustomerService(app.store).seed_demo_customers())
