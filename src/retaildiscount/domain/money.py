"""Exact, non-negative currency amounts.

Amounts are ``decimal.Decimal`` values fixed at two decimal places and
rounded half-up on every construction and every operation.

INVARIANT: amount >= 0. An operation that would go negative raises
instead of clamping; callers must subtract smaller-or-equal amounts.

Arithmetic runs in a decimal context sized to its operands, so results
are exact regardless of the default 28-digit precision. Amounts are
capped at MAX_INTEGER_DIGITS integer digits.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, DecimalException, InvalidOperation, localcontext

from retaildiscount.domain.errors import InvariantViolation, ValidationError

CENTS = Decimal("0.01")
# rate / 100 is held at this precision before the result is rounded to cents.
RATE_PRECISION = Decimal("0.0001")
# Amounts with more integer digits than this are rejected.
MAX_INTEGER_DIGITS = 1000
_MAX_PRECISION = 2 * MAX_INTEGER_DIGITS + 8


def to_decimal(value: object, *, label: str = "Amount") -> Decimal:
    """Coerce *value* to a finite Decimal or raise ValidationError.

    Floats go through ``str()`` so ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion. Booleans are rejected.
    """
    if value is None:
        raise ValidationError(f"{label} cannot be null")
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number, got {value!r}")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValidationError(f"{label} is not a number: {value!r}") from exc
    else:
        raise ValidationError(f"{label} must be a number, got {type(value).__name__}")

    if not result.is_finite():
        raise ValidationError(f"{label} must be finite, got {value!r}")
    return result


def _width(value: Decimal) -> int:
    parts = value.as_tuple()
    return len(parts.digits) + max(int(parts.exponent), 0)


@contextmanager
def _exact(*operands: Decimal) -> Iterator[None]:
    """Decimal context wide enough for exact sums and products of *operands*.

    Results that no Money can hold surface as ValidationError.
    """
    precision = min(max(sum(_width(v) for v in operands) + 4, 28), _MAX_PRECISION)
    try:
        with localcontext(prec=precision, rounding=ROUND_HALF_UP):
            yield
    except DecimalException as exc:
        raise ValidationError(
            f"Amount exceeds {MAX_INTEGER_DIGITS} integer digits"
        ) from exc


@dataclass(frozen=True, order=True)
class Money:
    """Immutable currency amount. Equality and ordering are by value."""

    amount: Decimal

    def __post_init__(self) -> None:
        amount = to_decimal(self.amount)
        if amount < 0:
            raise ValidationError(f"Amount cannot be negative: {amount}")
        if amount.is_zero():
            amount = Decimal(0)
        elif amount.adjusted() >= MAX_INTEGER_DIGITS:
            raise ValidationError(f"Amount exceeds {MAX_INTEGER_DIGITS} integer digits")
        with _exact(amount):
            amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
        object.__setattr__(self, "amount", amount)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def of(cls, amount: Decimal | int | float | str) -> Money:
        """Build a Money from any numeric input, rounding to cents half-up."""
        return cls(to_decimal(amount))

    @classmethod
    def zero(cls) -> Money:
        return cls(Decimal(0))

    @classmethod
    def total(cls, values: Iterable[Money]) -> Money:
        """Sum *values*, starting from zero."""
        result = cls.zero()
        for value in values:
            result = result.add(value)
        return result

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def add(self, other: Money) -> Money:
        with _exact(self.amount, other.amount):
            return Money(self.amount + other.amount)

    def subtract(self, other: Money) -> Money:
        """Return ``self - other``.

        Raises InvariantViolation if *other* is larger than *self*.
        """
        with _exact(self.amount, other.amount):
            result = self.amount - other.amount
        if result < 0:
            raise InvariantViolation(
                f"Subtraction would result in negative amount: {self} - {other}"
            )
        return Money(result)

    def multiply(self, factor: Decimal | int | str) -> Money:
        """Scale by a non-negative factor (unit price x quantity)."""
        value = to_decimal(factor, label="Factor")
        if value < 0:
            raise ValidationError(f"Factor cannot be negative: {value}")
        with _exact(self.amount, value):
            return Money(self.amount * value)

    def apply_percentage_discount(self, rate: int) -> Money:
        """Return the discount amount for an integer percentage *rate*.

        The factor ``rate / 100`` is rounded to four decimals first, then
        the product is rounded to cents. Both roundings are half-up.
        """
        if isinstance(rate, bool) or not isinstance(rate, int):
            raise ValidationError(f"Percentage must be an integer, got {rate!r}")
        if rate < 0 or rate > 100:
            raise ValidationError(f"Percentage must be between 0 and 100, got {rate}")
        factor = (Decimal(rate) / Decimal(100)).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)
        with _exact(self.amount, factor):
            return Money((self.amount * factor).quantize(CENTS, rounding=ROUND_HALF_UP))

    def divide_and_floor(self, divisor: int) -> int:
        """How many whole *divisor* units fit into this amount (never rounds up)."""
        if isinstance(divisor, bool) or not isinstance(divisor, int) or divisor <= 0:
            raise ValidationError(f"Divisor must be a positive integer, got {divisor!r}")
        with _exact(self.amount):
            return int(self.amount // Decimal(divisor))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_zero(self) -> bool:
        return self.amount.is_zero()

    def format(self) -> str:
        """Plain two-decimal string, e.g. ``"665.00"``."""
        return f"{self.amount:.2f}"

    def __str__(self) -> str:
        return f"${self.format()}"
