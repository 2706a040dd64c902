"""ORM model for revenue/expense transactions."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import EntityBase
from .catalog import Category, Customer, Product


class TransactionType(str, Enum):
    """Direction of a transaction; drives the sign in profit calculations."""

    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class Transaction(EntityBase):
    """A single receivable (REVENUE) or payable (EXPENSE) record."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_occurred_at", "occurred_at"),
        Index("ix_transactions_type_occurred_at", "type", "occurred_at"),
        Index("ix_transactions_category_occurred_at", "category_id", "occurred_at"),
        Index("ix_transactions_status_due_date", "payment_status", "due_date"),
    )

    type: Mapped[TransactionType] = mapped_column(
        SQLEnum(TransactionType, native_enum=False, length=16), nullable=False
    )
    category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("categories.id"), nullable=False
    )
    product_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("products.id"))
    customer_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("customers.id"))
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, native_enum=False, length=16),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    description: Mapped[str | None] = mapped_column(Text)
    document_number: Mapped[str | None] = mapped_column(String(64))

    category: Mapped[Category] = relationship()
    product: Mapped[Product | None] = relationship()
    customer: Mapped[Customer | None] = relationship()
