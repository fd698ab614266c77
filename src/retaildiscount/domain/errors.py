"""Exception hierarchy for the discount engine."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for all discount engine errors."""


# --- Input ---
class ValidationError(DomainError):
    """Input rejected at construction time (amount, quantity, id, category...)."""


class InvariantViolation(ValidationError):
    """An operation would break a value invariant, e.g. a negative Money."""


# --- Lookup ---
class NotFoundError(DomainError):
    """A referenced record does not exist."""


class CustomerNotFoundError(NotFoundError):
    """No customer with the given id."""

    def __init__(self, customer_id: str) -> None:
        self.customer_id = customer_id
        super().__init__(f"Customer not found with ID: {customer_id}")


class BillNotFoundError(NotFoundError):
    """No bill with the given id."""

    def __init__(self, bill_id: str) -> None:
        self.bill_id = bill_id
        super().__init__(f"Bill not found with ID: {bill_id}")
