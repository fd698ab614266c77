"""Repositories mapping SQLite rows to domain objects."""

from retaildiscount.infrastructure.repositories.bills import BillRepository
from retaildiscount.infrastructure.repositories.customers import CustomerRepository

__all__ = ["BillRepository", "CustomerRepository"]
