"""Database models for the charts API."""
from __future__ import annotations

from .base import Base, EntityBase, new_id
from .catalog import Category, Customer, Product
from .transactions import PaymentStatus, Transaction, TransactionType

__all__ = [
    "Base",
    "EntityBase",
    "new_id",
    "Category",
    "Customer",
    "Product",
    "PaymentStatus",
    "Transaction",
    "TransactionType",
]
