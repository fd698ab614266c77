"""Bill aggregate and the two-stage discount calculation.

A bill is either ``Uncalculated`` (inputs only) or ``Calculated`` (inputs
plus a frozen :class:`DiscountBreakdown`). The only transition is
Uncalculated -> Calculated; items, customer and id never change.

Discount order:
  1. Percentage discount on the eligible (non-grocery) amount, at the
     customer's effective-tier rate.
  2. Flat BILL_BASED_DISCOUNT_AMOUNT per full BILL_BASED_DISCOUNT_THRESHOLD
     of what remains after step 1, never of the raw total.

Instances are not thread-safe; confine a bill to one unit of work.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import StrEnum

from retaildiscount.domain.customers import Customer
from retaildiscount.domain.errors import InvariantViolation, ValidationError
from retaildiscount.domain.events import BillCalculated, BillCreated, DomainEvent
from retaildiscount.domain.items import BillItem
from retaildiscount.domain.money import Money

BILL_BASED_DISCOUNT_THRESHOLD = 100
BILL_BASED_DISCOUNT_AMOUNT = 5


class BillStatus(StrEnum):
    """Lifecycle status of a bill."""

    UNCALCULATED = "uncalculated"
    CALCULATED = "calculated"


@dataclass(frozen=True)
class DiscountBreakdown:
    """Immutable result of one discount calculation.

    Construction checks the arithmetic identities between the fields, so
    a breakdown read back from storage cannot be internally inconsistent.
    """

    total_amount: Money
    percentage_discount: Money
    percentage_discount_rate: int
    bill_based_discount: Money
    total_discount: Money
    net_payable: Money

    def __post_init__(self) -> None:
        rate = self.percentage_discount_rate
        if isinstance(rate, bool) or not isinstance(rate, int) or not 0 <= rate <= 100:
            raise ValidationError(f"Percentage discount rate must be 0-100, got {rate!r}")
        if self.total_discount != self.percentage_discount.add(self.bill_based_discount):
            raise InvariantViolation(
                "total_discount must equal percentage_discount + bill_based_discount"
            )
        if self.net_payable != self.total_amount.subtract(self.total_discount):
            raise InvariantViolation("net_payable must equal total_amount - total_discount")

    @property
    def amount_after_percentage(self) -> Money:
        return self.total_amount.subtract(self.percentage_discount)


# --- State variants ---


@dataclass(frozen=True)
class Uncalculated:
    """Just created or rehydrated without a stored result."""


@dataclass(frozen=True)
class Calculated:
    """Terminal state: the breakdown is frozen."""

    breakdown: DiscountBreakdown
    calculated_at: datetime


BillState = Uncalculated | Calculated


def bill_based_discount_for(amount: Money) -> Money:
    """Flat discount for every full threshold block in *amount*."""
    blocks = amount.divide_and_floor(BILL_BASED_DISCOUNT_THRESHOLD)
    return Money.of(blocks * BILL_BASED_DISCOUNT_AMOUNT)


def _validate_inputs(customer: Customer, items: Iterable[BillItem] | None) -> tuple[BillItem, ...]:
    if not isinstance(customer, Customer):
        raise ValidationError("Customer cannot be null")
    if items is None:
        raise ValidationError("Items cannot be null")
    checked = tuple(items)
    if not checked:
        raise ValidationError("Bill must have at least one item")
    for item in checked:
        if not isinstance(item, BillItem):
            raise ValidationError(f"Bill items must be BillItem instances, got {item!r}")
    return checked


class Bill:
    """Aggregate root owning a customer snapshot, its items, and its events.

    Usage::

        bill = Bill.create(customer, items)
        breakdown = bill.calculate_discount()
        events = bill.pull_events()
    """

    def __init__(
        self,
        *,
        bill_id: str,
        customer: Customer,
        items: tuple[BillItem, ...],
        created_at: datetime,
        state: BillState,
    ) -> None:
        self._bill_id = bill_id
        self._customer = customer
        self._items = items
        self._created_at = created_at
        self._state: BillState = state
        self._events: list[DomainEvent] = []

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, customer: Customer, items: Iterable[BillItem]) -> Bill:
        """Validate inputs, stamp a new id and timestamp, record BillCreated."""
        checked = _validate_inputs(customer, items)
        bill = cls(
            bill_id=str(uuid.uuid4()),
            customer=customer,
            items=checked,
            created_at=datetime.now(UTC),
            state=Uncalculated(),
        )
        total = bill.total_amount
        bill._record(
            BillCreated(
                bill_id=bill.bill_id,
                customer_id=customer.customer_id,
                total_amount=total,
                net_payable=total,
            )
        )
        return bill

    @classmethod
    def reconstitute(
        cls,
        bill_id: str,
        customer: Customer,
        items: Iterable[BillItem],
        created_at: datetime,
        *,
        breakdown: DiscountBreakdown | None = None,
        calculated_at: datetime | None = None,
    ) -> Bill:
        """Rebuild a stored bill. Never records events.

        With a stored *breakdown* the bill comes back Calculated and is
        never recomputed; without one it comes back Uncalculated.
        """
        if not isinstance(bill_id, str) or not bill_id.strip():
            raise ValidationError("Bill ID cannot be empty")
        checked = _validate_inputs(customer, items)
        if not isinstance(created_at, datetime):
            raise ValidationError("Created date cannot be null")

        state: BillState = Uncalculated()
        if breakdown is not None:
            total = Money.total(item.total_price for item in checked)
            if breakdown.total_amount != total:
                raise InvariantViolation(
                    f"Stored total {breakdown.total_amount} does not match items total {total}"
                )
            state = Calculated(breakdown=breakdown, calculated_at=calculated_at or created_at)

        return cls(
            bill_id=bill_id,
            customer=customer,
            items=checked,
            created_at=created_at,
            state=state,
        )

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def calculate_discount(self, today: date | None = None) -> DiscountBreakdown:
        """Run the discount algorithm once and cache the result.

        Idempotent: a Calculated bill returns its cached breakdown without
        recomputing or recording another event. *today* is the date the
        customer's tenure is evaluated on (default: the current date).
        """
        if isinstance(self._state, Calculated):
            return self._state.breakdown

        total = self.total_amount
        eligible = self.eligible_amount
        rate = self._customer.discount_percentage(today)

        if rate == 0:
            percentage_discount = Money.zero()
        else:
            percentage_discount = eligible.apply_percentage_discount(rate)

        after_percentage = total.subtract(percentage_discount)
        bill_based_discount = bill_based_discount_for(after_percentage)
        total_discount = percentage_discount.add(bill_based_discount)
        net_payable = total.subtract(total_discount)

        breakdown = DiscountBreakdown(
            total_amount=total,
            percentage_discount=percentage_discount,
            percentage_discount_rate=rate,
            bill_based_discount=bill_based_discount,
            total_discount=total_discount,
            net_payable=net_payable,
        )
        self._state = Calculated(breakdown=breakdown, calculated_at=datetime.now(UTC))
        self._record(
            BillCalculated(
                bill_id=self._bill_id,
                customer_id=self._customer.customer_id,
                total_amount=total,
                eligible_amount=eligible,
                percentage_discount=percentage_discount,
                percentage_discount_rate=rate,
                amount_after_percentage=after_percentage,
                bill_based_discount=bill_based_discount,
                total_discount=total_discount,
                net_payable=net_payable,
            )
        )
        return breakdown

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def bill_id(self) -> str:
        return self._bill_id

    @property
    def customer(self) -> Customer:
        return self._customer

    @property
    def items(self) -> tuple[BillItem, ...]:
        return self._items

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def state(self) -> BillState:
        return self._state

    @property
    def status(self) -> BillStatus:
        match self._state:
            case Calculated():
                return BillStatus.CALCULATED
            case _:
                return BillStatus.UNCALCULATED

    @property
    def breakdown(self) -> DiscountBreakdown | None:
        """The cached breakdown, or None while Uncalculated."""
        if isinstance(self._state, Calculated):
            return self._state.breakdown
        return None

    @property
    def calculated_at(self) -> datetime | None:
        if isinstance(self._state, Calculated):
            return self._state.calculated_at
        return None

    @property
    def total_amount(self) -> Money:
        return Money.total(item.total_price for item in self._items)

    @property
    def eligible_amount(self) -> Money:
        return Money.total(item.eligible_amount for item in self._items)

    @property
    def net_payable(self) -> Money:
        """Final amount due; triggers the calculation if still pending."""
        return self.calculate_discount().net_payable

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _record(self, event: DomainEvent) -> None:
        self._events.append(event)

    def pull_events(self) -> list[DomainEvent]:
        """Return buffered events and clear the buffer."""
        events = list(self._events)
        self._events.clear()
        return events

    def peek_events(self) -> tuple[DomainEvent, ...]:
        """Return buffered events without clearing them."""
        return tuple(self._events)

    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bill):
            return NotImplemented
        return self._bill_id == other._bill_id

    def __hash__(self) -> int:
        return hash(self._bill_id)

    def __repr__(self) -> str:
        return (
            f"Bill(id={self._bill_id!r}, customer={self._customer.customer_id!r}, "
            f"items={len(self._items)}, status={self.status.value})"
        )
