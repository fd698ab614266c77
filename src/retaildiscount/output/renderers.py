"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). Renderers
are dispatched by ``result.op`` in :func:`render_result`; unknown ops
fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from retaildiscount.output.console import create_console, get_output, style_for_tier

if TYPE_CHECKING:
    from rich.console import Console

    from retaildiscount.services.result import ServiceResult

Renderer = Callable[["ServiceResult", "Console"], None]


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal, which is
    the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console)
        if verbose:
            _render_meta(console, result)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: ids for listings, else one line."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    items = result.data.get("items")
    if isinstance(items, list):
        return "\n".join(_extract_id(item) for item in items if _extract_id(item))

    if "net_payable" in result.data:
        return str(result.data["net_payable"])
    identifier = result.data.get("bill_id") or result.data.get("customer_id")
    if identifier:
        return str(identifier)
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_id(item: Any) -> str:
    if isinstance(item, dict):
        for key in ("bill_id", "customer_id", "event_id"):
            val = item.get(key)
            if val is not None:
                return str(val)
    return ""


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text.assemble(("OK", "rd.ok"), (f"  {result.op}", "rd.op")))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="rd.key")
    if key.endswith("_id"):
        v = Text(str(value), style="rd.id")
    elif key.endswith("tier"):
        v = Text(str(value), style=style_for_tier(str(value)))
    else:
        v = Text(str(value))
    console.print(Text.assemble(k, v))


def _render_meta(console: Console, result: ServiceResult) -> None:
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        console.print(f"    {k}: {v}")


def _money(value: Any, *, negative: bool = False) -> str:
    return f"-${value}" if negative else f"${value}"


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = f" [{err.code}]" if err else ""
    console.print(Text.assemble(("ERROR", "rd.error"), (f"  {result.op}{code}  ", "rd.op"), msg))

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Bill renderers ────────────────────────────────────────────────────


def _breakdown_table(d: dict[str, Any]) -> Table:
    """Receipt-style table: total, each discount, net payable."""
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("label", style="rd.key")
    table.add_column("amount", justify="right")

    table.add_row("Total", Text(_money(d["total_amount"]), style="rd.money"))
    rate = d.get("percentage_discount_rate", 0)
    table.add_row(
        f"Percentage discount ({rate}%)",
        Text(_money(d["percentage_discount"], negative=True), style="rd.discount"),
    )
    table.add_row(
        "Bill-based discount",
        Text(_money(d["bill_based_discount"], negative=True), style="rd.discount"),
    )
    table.add_row("Total discount", Text(_money(d["total_discount"], negative=True)))
    table.add_row("Net payable", Text(_money(d["net_payable"]), style="rd.net"))
    return table


def _render_bill_calculation(result: ServiceResult, console: Console) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "bill_id", d["bill_id"])
    _field(console, "customer_id", d["customer_id"])
    _field(console, "customer_tier", d["customer_tier"])
    _field(console, "effective_tier", d["effective_tier"])
    _field(console, "items", d["item_count"])
    console.print()
    console.print(_breakdown_table(d))


def _render_bill_detail(result: ServiceResult, console: Console) -> None:
    d = result.data
    items = Table(show_header=True, pad_edge=False, expand=False)
    items.add_column("Item")
    items.add_column("Category")
    items.add_column("Unit price", justify="right")
    items.add_column("Qty", justify="right")
    items.add_column("Line total", justify="right")
    items.add_column("%", justify="center")
    for item in d.get("items", []):
        items.add_row(
            str(item["name"]),
            str(item["category"]),
            _money(item["unit_price"]),
            str(item["quantity"]),
            _money(item["total_price"]),
            "yes" if item["eligible_for_percentage_discount"] else "no",
        )

    console.print(
        Panel(
            items,
            title=f"Bill {d['bill_id']}",
            subtitle=f"{d['customer_id']} ({d['effective_tier']})  {d['created_at']}",
            border_style=style_for_tier(str(d["effective_tier"])) or "dim",
            expand=False,
        )
    )
    _field(console, "eligible_amount", _money(d["eligible_amount"]))
    _field(console, "amount_after_percentage", _money(d["amount_after_percentage"]))
    console.print()
    console.print(_breakdown_table(d))


def _render_bill_list(result: ServiceResult, console: Console) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Bill", style="rd.id", no_wrap=True)
    table.add_column("Customer")
    table.add_column("Tier")
    table.add_column("Created", style="dim")
    table.add_column("Items", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Discount", justify="right", style="rd.discount")
    table.add_column("Net", justify="right", style="rd.net")
    for item in items:
        tier = str(item["effective_tier"])
        table.add_row(
            str(item["bill_id"]),
            str(item["customer_id"]),
            Text(tier, style=style_for_tier(tier)),
            str(item["created_at"]),
            str(item["item_count"]),
            _money(item["total_amount"]),
            _money(item["total_discount"]),
            _money(item["net_payable"]),
        )
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} bills")


# ── Customer renderers ────────────────────────────────────────────────


def _render_customer(result: ServiceResult, console: Console) -> None:
    d = result.data
    _status_line(console, result)
    for key in (
        "customer_id",
        "tier",
        "registration_date",
        "years_as_customer",
        "effective_tier",
    ):
        _field(console, key, d[key])
    _field(console, "discount_rate", f"{d['discount_rate']}%")


def _render_customer_list(result: ServiceResult, console: Console) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("ID", style="rd.id", no_wrap=True)
    table.add_column("Tier")
    table.add_column("Registered", style="dim")
    table.add_column("Years", justify="right")
    table.add_column("Effective tier")
    table.add_column("Rate", justify="right")
    for item in items:
        effective = str(item["effective_tier"])
        table.add_row(
            str(item["customer_id"]),
            str(item["tier"]),
            str(item["registration_date"]),
            str(item["years_as_customer"]),
            Text(effective, style=style_for_tier(effective)),
            f"{item['discount_rate']}%",
        )
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} customers")


def _render_seed(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    _field(console, "created", ", ".join(result.data.get("created", [])) or "(none)")
    _field(console, "skipped", ", ".join(result.data.get("skipped", [])) or "(none)")


# ── Event renderers ───────────────────────────────────────────────────


def _render_drain(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    _field(console, "retried", result.data.get("count", 0))
    for item in result.data.get("items", []):
        style = "rd.ok" if item["status"] == "completed" else "rd.error"
        console.print(
            f"    {item['hook_name']}  {item['event_id']}  ",
            Text(str(item["status"]), style=style),
        )
    counts = result.data.get("status_counts") or {}
    if counts:
        summary = ", ".join(f"{k}={v}" for k, v in sorted(counts.items()))
        _field(console, "outbox", summary)


def _render_generic(result: ServiceResult, console: Console) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Renderer] = {
    # Bills
    "calculate_bill": _render_bill_calculation,
    "get_bill": _render_bill_detail,
    "list_bills": _render_bill_list,
    "recent_bills": _render_bill_list,
    # Customers
    "register_customer": _render_customer,
    "get_customer": _render_customer,
    "list_customers": _render_customer_list,
    "seed_demo_customers": _render_seed,
    # Events
    "drain_events": _render_drain,
}
