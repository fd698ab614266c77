"""Pluggy hook specifications for bill lifecycle events.

Each domain event type maps to one hook; the hook receives the event's
payload (``DomainEvent.to_payload()``) as keyword arguments. Monetary
values arrive as two-decimal strings, timestamps as ISO 8601 strings.
"""

from __future__ import annotations

import pluggy

PROJECT_NAME = "retaildiscount"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class DiscountHookSpec:
    """Hook specifications for the retaildiscount plugin system."""

    @hookspec
    def post_bill_created(
        self,
        event_id: str,
        occurred_on: str,
        bill_id: str,
        customer_id: str,
        total_amount: str,
        net_payable: str,
    ) -> None:
        """Called after a bill is created (net_payable is still provisional)."""

    @hookspec
    def post_bill_calculated(
        self,
        event_id: str,
        occurred_on: str,
        bill_id: str,
        customer_id: str,
        total_amount: str,
        eligible_amount: str,
        percentage_discount: str,
        percentage_discount_rate: int,
        amount_after_percentage: str,
        bill_based_discount: str,
        total_discount: str,
        net_payable: str,
    ) -> None:
        """Called after a bill's discount breakdown is computed."""
