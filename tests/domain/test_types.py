"""Tests for CustomerTier / ItemCategory lookup tables and token parsing."""

from __future__ import annotations

import pytest

from retaildiscount.domain.errors import ValidationError
from retaildiscount.domain.types import (
    ASSIGNABLE_TIERS,
    CustomerTier,
    ItemCategory,
    parse_category,
    parse_tier,
    tier_for_rate,
)


class TestCustomerTier:
    @pytest.mark.parametrize(
        ("tier", "rate"),
        [
            (CustomerTier.EMPLOYEE, 30),
            (CustomerTier.AFFILIATE, 10),
            (CustomerTier.LONG_TERM_CUSTOMER, 5),
            (CustomerTier.REGULAR, 0),
        ],
    )
    def test_rates(self, tier: CustomerTier, rate: int) -> None:
        assert tier.rate == rate

    def test_has_percentage_discount(self) -> None:
        assert CustomerTier.AFFILIATE.has_percentage_discount
        assert not CustomerTier.REGULAR.has_percentage_discount

    def test_long_term_is_not_assignable(self) -> None:
        assert CustomerTier.LONG_TERM_CUSTOMER not in ASSIGNABLE_TIERS

    def test_tier_for_rate(self) -> None:
        for tier in CustomerTier:
            assert tier_for_rate(tier.rate) is tier

    def test_tier_for_unknown_rate(self) -> None:
        with pytest.raises(ValidationError):
            tier_for_rate(42)


class TestItemCategory:
    def test_only_grocery_is_ineligible(self) -> None:
        ineligible = [c for c in ItemCategory if not c.eligible_for_percentage_discount]
        assert ineligible == [ItemCategory.GROCERY]


class TestParsing:
    @pytest.mark.parametrize(
        ("token", "expected"),
        [
            ("electronics", ItemCategory.ELECTRONICS),
            ("ELECTRONICS", ItemCategory.ELECTRONICS),
            (" Home-Goods ", ItemCategory.HOME_GOODS),
            ("home goods", ItemCategory.HOME_GOODS),
        ],
    )
    def test_parse_category(self, token: str, expected: ItemCategory) -> None:
        assert parse_category(token) is expected

    def test_unknown_category_lists_valid_values(self) -> None:
        with pytest.raises(ValidationError, match="GROCERY.*ELECTRONICS"):
            parse_category("toys")

    @pytest.mark.parametrize("token", [None, "", "   "])
    def test_empty_category(self, token: str | None) -> None:
        with pytest.raises(ValidationError, match="empty"):
            parse_category(token)

    def test_parse_tier(self) -> None:
        assert parse_tier("Employee") is CustomerTier.EMPLOYEE
        assert parse_tier(" regular ") is CustomerTier.REGULAR

    @pytest.mark.parametrize("token", ["long-term-customer", "LONG_TERM_CUSTOMER"])
    def test_parse_tier_rejects_derived_tier(self, token: str) -> None:
        with pytest.raises(ValidationError, match="derived"):
            parse_tier(token)

    def test_parse_tier_unknown(self) -> None:
        with pytest.raises(ValidationError, match="Valid tiers"):
            parse_tier("gold")
