"""Paginated tabular data: raw transactions or per-dimension summaries."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import Select, func, select
from sqlalchemy.engine import Row
from sqlalchemy.orm import Session

from app.core.cursor import decode_offset_cursor, encode_offset_cursor
from app.core.errors import InvalidCursor
from app.core.log import get_logger, timeit
from app.models import Category, Customer, Product, Transaction
from app.schemas.charts import (
    ChartMetadata,
    ChartRequest,
    ChartType,
    TableChartResponse,
    TableColumn,
)

from .base import ChartStrategy, as_decimal, percentage, round_money
from .dimensions import METRICS, apply_joins, display_label, metric_expression, transaction_filters

LOGGER = get_logger(__name__)

DIMENSION_OPTIONS = ("transactions", "category", "product", "customer")
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _money(value: Any) -> float:
    return float(round_money(value))


def _iso(value: Any) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class TableView:
    """Column schema, page query, count query and row shaping for one dimension."""

    columns: list[TableColumn]
    rows: Select
    count: Select
    to_row: Callable[[Row], dict[str, Any]]


def _transactions_view(request: ChartRequest) -> TableView:
    filters = transaction_filters(request, request.start, request.end)
    rows = apply_joins(
        select(
            Transaction.id,
            Transaction.occurred_at,
            Transaction.type,
            Category.name.label("category"),
            Product.name.label("product"),
            Customer.name.label("customer"),
            Transaction.amount,
            Transaction.quantity,
            Transaction.payment_status,
        ).select_from(Transaction),
        ("category", "product", "customer"),
    ).where(*filters).order_by(Transaction.occurred_at.desc(), Transaction.id.desc())

    def to_row(row: Row) -> dict[str, Any]:
        return {
            "id": row.id,
            "occurredAt": _iso(row.occurred_at),
            "type": display_label(row.type),
            "category": row.category or "",
            "product": row.product or "",
            "customer": row.customer or "",
            "amount": _money(row.amount),
            "quantity": row.quantity,
            "status": display_label(row.payment_status),
        }

    return TableView(
        columns=[
            TableColumn(key="occurredAt", label="Date", type="date", sortable=True),
            TableColumn(key="type", label="Type"),
            TableColumn(key="category", label="Category", sortable=True),
            TableColumn(key="product", label="Product", sortable=True),
            TableColumn(key="customer", label="Customer", sortable=True),
            TableColumn(key="amount", label="Amount", type="currency", sortable=True, align="right"),
            TableColumn(key="quantity", label="Quantity", type="number", align="right"),
            TableColumn(key="status", label="Status", align="center"),
        ],
        rows=rows,
        count=select(func.count(Transaction.id)).where(*filters),
        to_row=to_row,
    )


def _category_view(request: ChartRequest) -> TableView:
    filters = transaction_filters(request, request.start, request.end)
    revenue = metric_expression("revenue").label("revenue")
    expense = metric_expression("expense").label("expense")
    profit = metric_expression("profit").label("profit")
    rows = (
        select(
            Category.id,
            Category.name,
            revenue,
            expense,
            profit,
            func.count(Transaction.id).label("transaction_count"),
        )
        .select_from(Transaction)
        .join(Category, Transaction.category_id == Category.id)
        .where(*filters)
        .group_by(Category.id, Category.name)
        .order_by(profit.desc(), Category.id)
    )

    def to_row(row: Row) -> dict[str, Any]:
        row_revenue = as_decimal(row.revenue)
        row_profit = as_decimal(row.profit)
        return {
            "id": row.id,
            "name": row.name,
            "revenue": _money(row_revenue),
            "expense": _money(row.expense),
            "profit": _money(row_profit),
            "margin": float(percentage(row_profit, row_revenue)),
            "transactionCount": row.transaction_count,
        }

    return TableView(
        columns=[
            TableColumn(key="name", label="Category", sortable=True),
            TableColumn(key="revenue", label="Revenue", type="currency", sortable=True, align="right"),
            TableColumn(key="expense", label="Expense", type="currency", sortable=True, align="right"),
            TableColumn(key="profit", label="Profit", type="currency", sortable=True, align="right"),
            TableColumn(key="margin", label="Margin", type="percentage", sortable=True, align="right"),
            TableColumn(key="transactionCount", label="Transactions", type="number", sortable=True, align="right"),
        ],
        rows=rows,
        count=select(func.count(func.distinct(Transaction.category_id))).where(*filters),
        to_row=to_row,
    )


def _product_view(request: ChartRequest) -> TableView:
    filters = [
        *transaction_filters(request, request.start, request.end),
        Transaction.product_id.is_not(None),
    ]
    total_amount = func.sum(Transaction.amount)
    rows = (
        select(
            Product.id,
            Product.name,
            Category.name.label("category_name"),
            func.sum(Transaction.quantity).label("total_quantity"),
            total_amount.label("total_amount"),
            func.count(func.distinct(Transaction.customer_id)).label("unique_customers"),
        )
        .select_from(Transaction)
        .join(Product, Transaction.product_id == Product.id)
        .outerjoin(Category, Product.category_id == Category.id)
        .where(*filters)
        .group_by(Product.id, Product.name, Category.name)
        .order_by(total_amount.desc(), Product.id)
    )

    def to_row(row: Row) -> dict[str, Any]:
        amount = as_decimal(row.total_amount)
        quantity = int(row.total_quantity or 0)
        return {
            "id": row.id,
            "name": row.name,
            "categoryName": row.category_name or "",
            "totalQuantity": quantity,
            "totalAmount": _money(amount),
            "avgPrice": _money(amount / quantity) if quantity else 0.0,
            "uniqueCustomers": row.unique_customers,
        }

    return TableView(
        columns=[
            TableColumn(key="name", label="Product", sortable=True),
            TableColumn(key="categoryName", label="Category", sortable=True),
            TableColumn(key="totalQuantity", label="Quantity", type="number", sortable=True, align="right"),
            TableColumn(key="totalAmount", label="Total", type="currency", sortable=True, align="right"),
            TableColumn(key="avgPrice", label="Average price", type="currency", align="right"),
            TableColumn(key="uniqueCustomers", label="Customers", type="number", align="right"),
        ],
        rows=rows,
        count=select(func.count(func.distinct(Transaction.product_id))).where(*filters),
        to_row=to_row,
    )


def _customer_view(request: ChartRequest) -> TableView:
    filters = [
        *transaction_filters(request, request.start, request.end),
        Transaction.customer_id.is_not(None),
    ]
    total_revenue = metric_expression("revenue").label("total_revenue")
    rows = (
        select(
            Customer.id,
            Customer.name,
            Customer.region,
            total_revenue,
            metric_expression("expense").label("total_expense"),
            func.count(Transaction.id).label("transaction_count"),
            func.max(Transaction.occurred_at).label("last_transaction"),
        )
        .select_from(Transaction)
        .join(Customer, Transaction.customer_id == Customer.id)
        .where(*filters)
        .group_by(Customer.id, Customer.name, Customer.region)
        .order_by(total_revenue.desc(), Customer.id)
    )

    def to_row(row: Row) -> dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "region": row.region or "",
            "totalRevenue": _money(row.total_revenue),
            "totalExpense": _money(row.total_expense),
            "transactionCount": row.transaction_count,
            "lastTransaction": _iso(row.last_transaction),
        }

    return TableView(
        columns=[
            TableColumn(key="name", label="Customer", sortable=True),
            TableColumn(key="region", label="Region", sortable=True),
            TableColumn(key="totalRevenue", label="Revenue", type="currency", sortable=True, align="right"),
            TableColumn(key="totalExpense", label="Expense", type="currency", sortable=True, align="right"),
            TableColumn(key="transactionCount", label="Transactions", type="number", sortable=True, align="right"),
            TableColumn(key="lastTransaction", label="Last transaction", type="date", sortable=True),
        ],
        rows=rows,
        count=select(func.count(func.distinct(Transaction.customer_id))).where(*filters),
        to_row=to_row,
    )


_VIEWS: dict[str, Callable[[ChartRequest], TableView]] = {
    "transactions": _transactions_view,
    "category": _category_view,
    "product": _product_view,
    "customer": _customer_view,
}


class TableChartStrategy(ChartStrategy):
    """Offset-paginated rows behind an opaque ``{skip}`` cursor."""

    chart_type = ChartType.TABLE
    response_model = TableChartResponse
    metadata = ChartMetadata(
        name="Table",
        supported_metrics=list(METRICS),
        supported_group_by=list(DIMENSION_OPTIONS),
        supports_pagination=True,
    )

    @staticmethod
    def _dimension(request: ChartRequest) -> str:
        return request.dimension or request.group_by or "category"

    def validate(self, request: ChartRequest) -> list[str]:
        errors = self._grouping_error(self._dimension(request), DIMENSION_OPTIONS, "dimension for table")
        if request.limit is not None:
            if request.limit > MAX_LIMIT:
                errors.append(f"Limit cannot exceed {MAX_LIMIT} for table data")
            elif request.limit < 1:
                errors.append("Limit must be a positive integer")
        if request.cursor is not None:
            try:
                decode_offset_cursor(request.cursor)
            except InvalidCursor as exc:
                errors.extend(exc.errors)
        return errors

    def execute(self, request: ChartRequest, session: Session) -> TableChartResponse:
        view = _VIEWS[self._dimension(request)](request)
        limit = request.limit or DEFAULT_LIMIT
        skip = decode_offset_cursor(request.cursor) if request.cursor else 0

        with timeit(
            f"Table page ({self._dimension(request)}, skip={skip})",
            logger=LOGGER,
            level=logging.DEBUG,
        ) as timer:
            total = session.execute(view.count).scalar_one()
            rows = [view.to_row(row) for row in session.execute(view.rows.offset(skip).limit(limit)).all()]
            timer.set_total(len(rows))

        has_more = skip + len(rows) < total
        return TableChartResponse(
            columns=view.columns,
            rows=rows,
            has_more=has_more,
            total=total,
            cursor=encode_offset_cursor(skip + len(rows)) if has_more else None,
        )
