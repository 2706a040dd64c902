from datetime import date, datetime

import pytest

from app.core.cursor import decode_offset_cursor, encode_offset_cursor
from app.schemas.charts import ChartRequest, ChartType
from app.services.charts.table import TableChartStrategy

START = date(2024, 1, 1)
END = date(2024, 1, 31)


def _request(**kwargs) -> ChartRequest:
    return ChartRequest(chart_type=ChartType.TABLE, start=START, end=END, **kwargs)


def test_transactions_are_paged_without_overlap(session, data) -> None:
    sales = data.category("Sales")
    created = [
        data.revenue(f"{10 * day}.00", datetime(2024, 1, day, 9), category=sales)
        for day in (3, 1, 2)
    ]
    strategy = TableChartStrategy()

    first = strategy.execute(_request(dimension="transactions", limit=2), session)

    assert first.total == 3
    assert first.has_more is True
    assert decode_offset_cursor(first.cursor) == 2
    assert [row["occurredAt"] for row in first.rows] == ["2024-01-03T09:00:00", "2024-01-02T09:00:00"]

    second = strategy.execute(_request(dimension="transactions", limit=2, cursor=first.cursor), session)

    assert second.has_more is False
    assert second.cursor is None
    seen = [row["id"] for row in first.rows + second.rows]
    assert len(seen) == len(set(seen)) == 3
    assert set(seen) == {transaction.id for transaction in created}


def test_transaction_rows_use_readable_labels(session, data) -> None:
    sales = data.category("Sales")
    widget = data.product("Widget", sales)
    acme = data.customer("Acme")
    data.expense("12.34", datetime(2024, 1, 4, 8), category=sales, product=widget, customer=acme, quantity=3)

    result = TableChartStrategy().execute(_request(dimension="transactions"), session)

    row = result.rows[0]
    assert row["type"] == "Expense"
    assert row["status"] == "Paid"
    assert row["category"] == "Sales"
    assert row["product"] == "Widget"
    assert row["customer"] == "Acme"
    assert row["amount"] == 12.34
    assert row["quantity"] == 3
    assert [column.key for column in result.columns][:2] == ["occurredAt", "type"]


def test_category_summary_orders_by_profit(session, data) -> None:
    alpha = data.category("Alpha")
    beta = data.category("Beta")
    data.revenue("200.00", datetime(2024, 1, 5), category=alpha)
    data.expense("50.00", datetime(2024, 1, 6), category=alpha)
    data.revenue("100.00", datetime(2024, 1, 7), category=beta)

    result = TableChartStrategy().execute(_request(dimension="category"), session)

    assert result.total == 2
    assert result.has_more is False
    assert [row["name"] for row in result.rows] == ["Alpha", "Beta"]
    alpha_row = result.rows[0]
    assert alpha_row["revenue"] == 200.0
    assert alpha_row["expense"] == 50.0
    assert alpha_row["profit"] == 150.0
    assert alpha_row["margin"] == 75.0
    assert alpha_row["transactionCount"] == 2
    assert result.rows[1]["margin"] == 100.0
    margin_column = next(column for column in result.columns if column.key == "margin")
    assert margin_column.type == "percentage"


def test_product_summary(session, data) -> None:
    sales = data.category("Sales")
    widget = data.product("Widget", sales)
    acme = data.customer("Acme")
    data.revenue("50.00", datetime(2024, 1, 5), category=sales, product=widget, customer=acme, quantity=2)
    data.revenue("100.00", datetime(2024, 1, 6), category=sales, product=widget, customer=acme, quantity=3)
    data.revenue("999.00", datetime(2024, 1, 6), category=sales)

    result = TableChartStrategy().execute(_request(dimension="product"), session)

    assert result.total == 1
    row = result.rows[0]
    assert row["name"] == "Widget"
    assert row["categoryName"] == "Sales"
    assert row["totalQuantity"] == 5
    assert row["totalAmount"] == 150.0
    assert row["avgPrice"] == 30.0
    assert row["uniqueCustomers"] == 1


def test_customer_summary(session, data) -> None:
    sales = data.category("Sales")
    acme = data.customer("Acme", region="North")
    data.revenue("80.00", datetime(2024, 1, 5, 10), category=sales, customer=acme)
    data.expense("30.00", datetime(2024, 1, 9, 16, 30), category=sales, customer=acme)

    result = TableChartStrategy().execute(_request(dimension="customer"), session)

    row = result.rows[0]
    assert row["name"] == "Acme"
    assert row["region"] == "North"
    assert row["totalRevenue"] == 80.0
    assert row["totalExpense"] == 30.0
    assert row["transactionCount"] == 2
    assert row["lastTransaction"] == "2024-01-09T16:30:00"


def test_default_dimension_is_category(session, data) -> None:
    sales = data.category("Sales")
    data.revenue("10.00", datetime(2024, 1, 5), category=sales)

    result = TableChartStrategy().execute(_request(), session)

    assert result.rows[0]["name"] == "Sales"


@pytest.mark.parametrize(
    ("kwargs", "expected"),
    [
        ({"limit": 101}, "Limit cannot exceed 100 for table data"),
        ({"limit": 0}, "Limit must be a positive integer"),
        ({"cursor": "not-a-cursor!"}, "Cursor is not valid base64"),
    ],
)
def test_validate(kwargs: dict, expected: str) -> None:
    assert TableChartStrategy().validate(_request(**kwargs)) == [expected]


def test_validate_rejects_unknown_dimension() -> None:
    errors = TableChartStrategy().validate(_request(dimension="region"))

    assert len(errors) == 1
    assert "region" in errors[0]


def test_validate_accepts_offset_cursor() -> None:
    assert TableChartStrategy().validate(_request(cursor=encode_offset_cursor(20))) == []
