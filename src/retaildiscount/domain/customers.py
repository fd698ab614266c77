"""Customer identity and effective-tier derivation.

The explicit tier is stored; the effective tier is always derived:
- Employee and affiliate keep their tier regardless of tenure.
- Regular customers become long-term after LONG_TERM_YEARS full
  calendar years since registration.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from retaildiscount.domain.errors import ValidationError
from retaildiscount.domain.types import ASSIGNABLE_TIERS, CustomerTier

LONG_TERM_YEARS = 2


def full_years_between(start: date, end: date) -> int:
    """Whole calendar years from *start* to *end* (not days / 365).

    Examples:
        >>> full_years_between(date(2020, 3, 15), date(2022, 3, 14))
        1
        >>> full_years_between(date(2020, 3, 15), date(2022, 3, 15))
        2
        >>> full_years_between(date(2020, 2, 29), date(2022, 2, 28))
        1
    """
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return years


@dataclass(frozen=True)
class Customer:
    """Immutable customer snapshot used by the discount calculation."""

    customer_id: str
    tier: CustomerTier
    registration_date: date

    def __post_init__(self) -> None:
        if not isinstance(self.customer_id, str):
            raise ValidationError("Customer ID cannot be null")
        if not self.customer_id.strip():
            raise ValidationError("Customer ID cannot be empty")
        if not isinstance(self.tier, CustomerTier):
            raise ValidationError("Customer tier cannot be null")
        if self.tier not in ASSIGNABLE_TIERS:
            raise ValidationError(
                f"Tier '{self.tier.name}' is derived from tenure and cannot be assigned"
            )
        if not isinstance(self.registration_date, date):
            raise ValidationError("Registration date cannot be null")
        if isinstance(self.registration_date, datetime):
            object.__setattr__(self, "registration_date", self.registration_date.date())
        if self.registration_date > date.today():
            raise ValidationError("Registration date cannot be in the future")

    def years_as_customer(self, today: date | None = None) -> int:
        return full_years_between(self.registration_date, today or date.today())

    def effective_tier(self, today: date | None = None) -> CustomerTier:
        """The tier actually applied on *today* (default: the current date)."""
        if self.tier in (CustomerTier.EMPLOYEE, CustomerTier.AFFILIATE):
            return self.tier
        if self.years_as_customer(today) >= LONG_TERM_YEARS:
            return CustomerTier.LONG_TERM_CUSTOMER
        return CustomerTier.REGULAR

    def discount_percentage(self, today: date | None = None) -> int:
        return self.effective_tier(today).rate
