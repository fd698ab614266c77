"""Command group: bill calculation and history."""

from __future__ import annotations

import json
from datetime import datetime, time
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from retaildiscount.commands._base import DiscountGroup
from retaildiscount.services.billing import BillingService

if TYPE_CHECKING:
    from retaildiscount.commands._context import AppContext

_BILL_EXAMPLES = """\
  retaildiscount bill calculate EMP001 --item "TV:electronics:500" --item "Milk:grocery:2.50:4"
  retaildiscount bill calculate CUST001 --items-file basket.json
  retaildiscount bill get 6f1c0e0e-4c1e-4a43-9d4c-2b0f3f0c1a11
  retaildiscount bill list CUST001 --since 2026-01-01
  retaildiscount bill recent --limit 5"""

_DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]


def parse_item_spec(spec: str) -> dict[str, Any]:
    """Parse ``name:category:price[:qty]`` into a request item.

    Examples:
        >>> parse_item_spec("TV:electronics:500")
        {'name': 'TV', 'category': 'electronics', 'unit_price': '500', 'quantity': 1}
        >>> parse_item_spec("Milk:grocery:2.50:4")["quantity"]
        '4'
    """
    parts = [part.strip() for part in spec.split(":")]
    if len(parts) not in (3, 4):
        raise click.BadParameter(
            f"'{spec}' must look like name:category:price[:qty]", param_hint="--item"
        )
    item: dict[str, Any] = {
        "name": parts[0],
        "category": parts[1],
        "unit_price": parts[2],
        "quantity": 1,
    }
    if len(parts) == 4:
        item["quantity"] = parts[3]
    return item


def load_items_file(path: Path) -> list[dict[str, Any]]:
    """Read items from a JSON list, or from an object with an ``items`` list."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise click.BadParameter(
            f"{path} is not valid JSON: {exc}", param_hint="--items-file"
        ) from exc
    if isinstance(payload, dict):
        payload = payload.get("items")
    if not isinstance(payload, list):
        raise click.BadParameter(
            f"{path} must contain a list of items", param_hint="--items-file"
        )
    return payload


@click.group(cls=DiscountGroup, examples=_BILL_EXAMPLES)
def bill() -> None:
    """Calculate bills and browse bill history."""


@bill.command(
    examples="""\
  retaildiscount bill calculate EMP001 --item "TV:electronics:500"
  retaildiscount bill calculate AFF001 --item "Shirt:clothing:40:3" --item "Rice:grocery:12"
  retaildiscount -q bill calculate CUST002 --item "Lamp:home-goods:99.99"
  retaildiscount --json bill calculate CUST001 --items-file basket.json"""
)
@click.argument("customer_id")
@click.option(
    "--item",
    "item_specs",
    multiple=True,
    help="Line item as name:category:price[:qty]. Repeatable.",
)
@click.option(
    "--items-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with items (name, category, unit_price, quantity).",
)
@click.pass_obj
def calculate(
    app: AppContext,
    customer_id: str,
    item_specs: tuple[str, ...],
    items_file: Path | None,
) -> None:
    """Calculate and store the discounted bill for CUSTOMER_ID."""
    items = [parse_item_spec(spec) for spec in item_specs]
    if items_file is not None:
        items.extend(load_items_file(items_file))
    if not items:
        raise click.UsageError("Provide at least one --item or an --items-file.")
    app.emit(BillingService(app.store).calculate_bill(customer_id, items))


@bill.command(
    examples="""\
  retaildiscount bill get 6f1c0e0e-4c1e-4a43-9d4c-2b0f3f0c1a11
  retaildiscount --json bill get 6f1c0e0e-4c1e-4a43-9d4c-2b0f3f0c1a11"""
)
@click.argument("bill_id")
@click.pass_obj
def get(app: AppContext, bill_id: str) -> None:
    """Show a stored bill with its items and breakdown."""
    app.emit(BillingService(app.store).get_bill(bill_id))


@bill.command(
    name="list",
    examples="""\
  retaildiscount bill list CUST001
  retaildiscount bill list CUST001 --since 2026-01-01 --until 2026-01-31""",
)
@click.argument("customer_id")
@click.option(
    "--since",
    type=click.DateTime(formats=_DATE_FORMATS),
    default=None,
    help="Created on or after (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS, UTC).",
)
@click.option(
    "--until",
    type=click.DateTime(formats=_DATE_FORMATS),
    default=None,
    help="Created on or before; a bare date includes the whole day.",
)
@click.pass_obj
def list_cmd(
    app: AppContext,
    customer_id: str,
    since: datetime | None,
    until: datetime | None,
) -> None:
    """List a customer's bills, newest first."""
    if until is not None and until.time() == time.min:
        until = datetime.combine(until.date(), time.max)
    app.emit(BillingService(app.store).list_bills(customer_id, since=since, until=until))


@bill.command(
    examples="""\
  retaildiscount bill recent
  retaildiscount -q bill recent --limit 3"""
)
@click.option("--limit", default=10, type=click.IntRange(min=1), help="Max bills to show.")
@click.pass_obj
def recent(app: AppContext, limit: int) -> None:
    """Show the most recently created bills."""
    app.emit(BillingService(app.store).recent_bills(limit))
