"""Customer tiers and item categories.

Both enums carry a business constant (discount rate, eligibility) through
a lookup table next to the enum, so callers never branch on names.
"""

from __future__ import annotations

from enum import StrEnum

from retaildiscount.domain.errors import ValidationError


class CustomerTier(StrEnum):
    """Discount tiers. Only one percentage tier ever applies to a bill."""

    EMPLOYEE = "employee"
    AFFILIATE = "affiliate"
    LONG_TERM_CUSTOMER = "long_term_customer"
    REGULAR = "regular"

    @property
    def rate(self) -> int:
        """Intrinsic percentage discount for this tier."""
        return TIER_RATES[self]

    @property
    def has_percentage_discount(self) -> bool:
        return self.rate > 0


class ItemCategory(StrEnum):
    """Closed set of product categories."""

    GROCERY = "grocery"
    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    HOME_GOODS = "home_goods"
    OTHER = "other"

    @property
    def eligible_for_percentage_discount(self) -> bool:
        return CATEGORY_ELIGIBILITY[self]


TIER_RATES: dict[CustomerTier, int] = {
    CustomerTier.EMPLOYEE: 30,
    CustomerTier.AFFILIATE: 10,
    CustomerTier.LONG_TERM_CUSTOMER: 5,
    CustomerTier.REGULAR: 0,
}

# LONG_TERM_CUSTOMER is derived from tenure, never assigned.
ASSIGNABLE_TIERS: frozenset[CustomerTier] = frozenset(
    {CustomerTier.EMPLOYEE, CustomerTier.AFFILIATE, CustomerTier.REGULAR}
)

CATEGORY_ELIGIBILITY: dict[ItemCategory, bool] = {
    ItemCategory.GROCERY: False,
    ItemCategory.ELECTRONICS: True,
    ItemCategory.CLOTHING: True,
    ItemCategory.HOME_GOODS: True,
    ItemCategory.OTHER: True,
}


def normalize_token(token: str) -> str:
    """Lowercase, trim, and map spaces/hyphens to underscores.

    Examples:
        >>> normalize_token(" Home-Goods ")
        'home_goods'
        >>> normalize_token("ELECTRONICS")
        'electronics'
    """
    return token.strip().lower().replace("-", "_").replace(" ", "_")


def parse_category(token: str | None) -> ItemCategory:
    """Resolve a category token leniently, listing valid values on failure."""
    if token is None or not str(token).strip():
        raise ValidationError("Item category cannot be empty")
    try:
        return ItemCategory(normalize_token(str(token)))
    except ValueError:
        valid = ", ".join(c.name for c in ItemCategory)
        raise ValidationError(
            f"Invalid category '{token}'. Valid categories are: {valid}"
        ) from None


def parse_tier(token: str | None) -> CustomerTier:
    """Resolve an explicitly assignable tier token."""
    if token is None or not str(token).strip():
        raise ValidationError("Customer tier cannot be empty")
    try:
        tier = CustomerTier(normalize_token(str(token)))
    except ValueError:
        valid = ", ".join(sorted(t.name for t in ASSIGNABLE_TIERS))
        raise ValidationError(f"Invalid tier '{token}'. Valid tiers are: {valid}") from None
    if tier not in ASSIGNABLE_TIERS:
        raise ValidationError(f"Tier '{tier.name}' is derived from tenure and cannot be assigned")
    return tier


def tier_for_rate(rate: int) -> CustomerTier:
    """The tier whose intrinsic rate is *rate* (rates are unique per tier)."""
    for tier, tier_rate in TIER_RATES.items():
        if tier_rate == rate:
            return tier
    raise ValidationError(f"No customer tier has a {rate}% rate")
