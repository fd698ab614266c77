"""Built-in audit plugin: one structured log line per bill event."""

from __future__ import annotations

from typing import Any

import structlog

from retaildiscount.plugins.hookspecs import hookimpl

logger = structlog.get_logger(__name__)


class AuditLogPlugin:
    """Writes bill lifecycle events to the ``retaildiscount`` log at INFO."""

    @hookimpl
    def post_bill_created(
        self,
        event_id: str,
        bill_id: str,
        customer_id: str,
        total_amount: str,
    ) -> None:
        logger.info(
            "bill_created",
            event_id=event_id,
            bill_id=bill_id,
            customer_id=customer_id,
            total_amount=total_amount,
        )

    @hookimpl
    def post_bill_calculated(
        self,
        event_id: str,
        bill_id: str,
        customer_id: str,
        percentage_discount_rate: int,
        total_discount: str,
        net_payable: str,
    ) -> None:
        fields: dict[str, Any] = {
            "event_id": event_id,
            "bill_id": bill_id,
            "customer_id": customer_id,
            "rate": percentage_discount_rate,
            "total_discount": total_discount,
            "net_payable": net_payable,
        }
        logger.info("bill_calculated", **fields)
