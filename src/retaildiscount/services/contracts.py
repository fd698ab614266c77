"""Typed payload contracts for the service boundary.

These models validate operation payload shapes before they leave the
service layer, so a renamed key or a money value with the wrong scale
fails fast in tests instead of reaching a client.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from retaildiscount.domain.bill import Bill, DiscountBreakdown
from retaildiscount.domain.customers import Customer
from retaildiscount.domain.items import BillItem
from retaildiscount.domain.types import CustomerTier, tier_for_rate
from retaildiscount.infrastructure.repositories._codec import to_iso

# Monetary values leave the service layer as plain two-decimal strings.
MoneyStr = Annotated[str, Field(pattern=r"^\d+\.\d{2}$")]


def dump_validated[T: BaseModel](model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a normalized payload dict."""
    model = model_cls.model_validate(data)
    return model.model_dump(mode="python")


# ---------------------------------------------------------------------------
# Bills
# ---------------------------------------------------------------------------


class BillCalculationData(BaseModel):
    """Payload contract for ``BillingService.calculate_bill``."""

    bill_id: str
    customer_id: str
    calculated_at: str
    customer_tier: str
    effective_tier: str
    total_amount: MoneyStr
    percentage_discount: MoneyStr
    percentage_discount_rate: int = Field(ge=0, le=100)
    bill_based_discount: MoneyStr
    total_discount: MoneyStr
    net_payable: MoneyStr
    item_count: int = Field(ge=1)


class BillItemData(BaseModel):
    """One line of a stored bill."""

    name: str
    category: str
    unit_price: MoneyStr
    quantity: int = Field(ge=1)
    total_price: MoneyStr
    eligible_for_percentage_discount: bool


class BillDetailData(BillCalculationData):
    """Payload contract for ``BillingService.get_bill``."""

    created_at: str
    eligible_amount: MoneyStr
    amount_after_percentage: MoneyStr
    items: list[BillItemData]


class BillSummary(BaseModel):
    """One row of a bill listing."""

    model_config = ConfigDict(extra="forbid")

    bill_id: str
    customer_id: str
    created_at: str
    customer_tier: str
    effective_tier: str
    total_amount: MoneyStr
    total_discount: MoneyStr
    net_payable: MoneyStr
    item_count: int


class BillListData(BaseModel):
    """Payload contract for ``list_bills`` and ``recent_bills``."""

    count: int
    items: list[BillSummary]


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


class CustomerData(BaseModel):
    """Payload contract for customer lookups and registration."""

    customer_id: str
    tier: str
    registration_date: str
    years_as_customer: int
    effective_tier: str
    discount_rate: int = Field(ge=0, le=100)


class CustomerListData(BaseModel):
    count: int
    items: list[CustomerData]


class SeedData(BaseModel):
    """Payload contract for ``CustomerService.seed_demo_customers``."""

    created: list[str]
    skipped: list[str]


# ---------------------------------------------------------------------------
# Builders (domain -> plain dict)
# ---------------------------------------------------------------------------


def _breakdown_of(bill: Bill) -> DiscountBreakdown:
    breakdown = bill.breakdown
    if breakdown is None:
        raise ValueError(f"Bill {bill.bill_id} has not been calculated")
    return breakdown


def _effective_tier(breakdown: DiscountBreakdown) -> CustomerTier:
    # The applied rate identifies the tier the bill was priced at.
    return tier_for_rate(breakdown.percentage_discount_rate)


def bill_calculation_payload(bill: Bill) -> dict[str, Any]:
    breakdown = _breakdown_of(bill)
    calculated_at = bill.calculated_at or bill.created_at
    return dump_validated(
        BillCalculationData,
        {
            "bill_id": bill.bill_id,
            "customer_id": bill.customer.customer_id,
            "calculated_at": to_iso(calculated_at),
            "customer_tier": str(bill.customer.tier),
            "effective_tier": str(_effective_tier(breakdown)),
            "total_amount": breakdown.total_amount.format(),
            "percentage_discount": breakdown.percentage_discount.format(),
            "percentage_discount_rate": breakdown.percentage_discount_rate,
            "bill_based_discount": breakdown.bill_based_discount.format(),
            "total_discount": breakdown.total_discount.format(),
            "net_payable": breakdown.net_payable.format(),
            "item_count": len(bill.items),
        },
    )


def _item_payload(item: BillItem) -> dict[str, Any]:
    return {
        "name": item.name,
        "category": str(item.category),
        "unit_price": item.unit_price.format(),
        "quantity": item.quantity,
        "total_price": item.total_price.format(),
        "eligible_for_percentage_discount": item.eligible_for_percentage_discount,
    }


def bill_detail_payload(bill: Bill) -> dict[str, Any]:
    breakdown = _breakdown_of(bill)
    data = bill_calculation_payload(bill)
    data.update(
        created_at=to_iso(bill.created_at),
        eligible_amount=bill.eligible_amount.format(),
        amount_after_percentage=breakdown.amount_after_percentage.format(),
        items=[_item_payload(item) for item in bill.items],
    )
    return dump_validated(BillDetailData, data)


def bill_list_payload(bills: list[Bill]) -> dict[str, Any]:
    rows = []
    for bill in bills:
        breakdown = _breakdown_of(bill)
        rows.append(
            {
                "bill_id": bill.bill_id,
                "customer_id": bill.customer.customer_id,
                "created_at": to_iso(bill.created_at),
                "customer_tier": str(bill.customer.tier),
                "effective_tier": str(_effective_tier(breakdown)),
                "total_amount": breakdown.total_amount.format(),
                "total_discount": breakdown.total_discount.format(),
                "net_payable": breakdown.net_payable.format(),
                "item_count": len(bill.items),
            }
        )
    return dump_validated(BillListData, {"count": len(rows), "items": rows})


def customer_payload(customer: Customer, today: date | None = None) -> dict[str, Any]:
    effective = customer.effective_tier(today)
    return dump_validated(
        CustomerData,
        {
            "customer_id": customer.customer_id,
            "tier": str(customer.tier),
            "registration_date": customer.registration_date.isoformat(),
            "years_as_customer": customer.years_as_customer(today),
            "effective_tier": str(effective),
            "discount_rate": effective.rate,
        },
    )
