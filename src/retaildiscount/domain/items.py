"""Bill line items."""

from __future__ import annotations

from dataclasses import dataclass

from retaildiscount.domain.errors import ValidationError
from retaildiscount.domain.money import Money
from retaildiscount.domain.types import ItemCategory


@dataclass(frozen=True)
class BillItem:
    """One purchased line: *quantity* units of *name* at *unit_price*.

    Validated at construction; immutable afterwards.
    """

    name: str
    category: ItemCategory
    unit_price: Money
    quantity: int

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise ValidationError("Item name cannot be null")
        if not self.name.strip():
            raise ValidationError("Item name cannot be empty")
        if not isinstance(self.category, ItemCategory):
            raise ValidationError("Item category cannot be null")
        if not isinstance(self.unit_price, Money):
            raise ValidationError("Unit price cannot be null")
        if self.unit_price.is_zero():
            raise ValidationError("Unit price must be greater than 0")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValidationError(f"Quantity must be an integer, got {self.quantity!r}")
        if self.quantity <= 0:
            raise ValidationError("Quantity must be positive")

    @property
    def total_price(self) -> Money:
        return self.unit_price.multiply(self.quantity)

    @property
    def eligible_for_percentage_discount(self) -> bool:
        return self.category.eligible_for_percentage_discount

    @property
    def eligible_amount(self) -> Money:
        """Portion of this line that the percentage discount applies to."""
        if self.eligible_for_percentage_discount:
            return self.total_price
        return Money.zero()
