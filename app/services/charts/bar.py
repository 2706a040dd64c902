"""Two-dimensional comparisons for bar charts."""
from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from enum import Enum

from sqlalchemy.orm import Session

from app.schemas.charts import (
    BarChartResponse,
    BarMetadata,
    BarSeries,
    ChartMetadata,
    ChartRequest,
    ChartType,
)

from .base import ChartStrategy, as_decimal, average, color_for
from .dimensions import (
    METRICS,
    bucket_label,
    bucket_start,
    day_column,
    display_label,
    group_key,
    metric_expression,
    resolve_grouping,
)

GROUP_BY_OPTIONS = ("category", "product", "customer", "region", "month", "quarter", "year")
DIMENSION_OPTIONS = ("type", "status", "category", "product")
MAX_TOP_N = 50


def _series_sort_key(raw: object, label: str) -> tuple[int, int, str, str]:
    if isinstance(raw, Enum):
        return (0, list(type(raw)).index(raw), label, "")
    return (1, 0, label, str(raw))


class BarChartStrategy(ChartStrategy):
    """Category axis (``groupBy``) crossed with a series axis (``dimension``).

    The result is dense: every series has one value per category, 0 when the
    combination has no rows. ``topN`` keeps the N categories with the largest
    total across series and drops the rest.
    """

    chart_type = ChartType.BAR
    response_model = BarChartResponse
    metadata = ChartMetadata(
        name="Bar Chart",
        supported_metrics=list(METRICS),
        supported_group_by=list(GROUP_BY_OPTIONS),
        supports_pagination=False,
    )

    def validate(self, request: ChartRequest) -> list[str]:
        errors = self._grouping_error(request.group_by, GROUP_BY_OPTIONS, "groupBy value for bar chart")
        errors += self._grouping_error(request.dimension, DIMENSION_OPTIONS, "dimension value for bar chart")
        if request.top_n is not None:
            if request.top_n > MAX_TOP_N:
                errors.append(f"topN cannot exceed {MAX_TOP_N} for bar charts")
            elif request.top_n < 1:
                errors.append("topN must be a positive integer")
        return errors

    def execute(self, request: ChartRequest, session: Session) -> BarChartResponse:
        primary = resolve_grouping(request.group_by or "category")
        secondary = resolve_grouping(request.dimension or "type")
        value = metric_expression(request.metric, strict=self.strict_metrics)

        if primary.is_time:
            day = day_column()
            primary_columns = [day.label("primary_key"), day.label("primary_label")]
            primary_group = [day]
        else:
            primary_columns = [
                primary.group_column.label("primary_key"),
                primary.label_column.label("primary_label"),
            ]
            primary_group = [primary.group_column, primary.label_column]

        stmt = self._select(
            request,
            *primary_columns,
            secondary.group_column.label("series_key"),
            secondary.label_column.label("series"),
            value.label("value"),
            groupings=[primary, secondary],
        ).group_by(*primary_group, secondary.group_column, secondary.label_column)
        if not primary.is_time:
            stmt = stmt.where(primary.group_column.is_not(None))

        rows = session.execute(stmt).all()

        # Categories and series are keyed by their grouping columns and labelled at the end.
        cells: dict[object, dict[object, Decimal]] = defaultdict(lambda: defaultdict(Decimal))
        category_labels: dict[object, str] = {}
        series_labels: dict[object, str] = {}
        for row in rows:
            if primary.is_time:
                category = bucket_start(row.primary_key, primary.granularity)
                category_labels.setdefault(category, bucket_label(category, primary.granularity))
            else:
                category = group_key(row.primary_key)
                category_labels.setdefault(category, display_label(row.primary_label))
            series_key = group_key(row.series_key)
            series_labels.setdefault(series_key, display_label(row.series))
            cells[category][series_key] += as_decimal(row.value)

        totals = {category: sum(values.values(), Decimal("0")) for category, values in cells.items()}
        categories = sorted(
            cells, key=lambda category: (-totals[category], category_labels[category], str(category))
        )
        if request.top_n is not None and request.top_n < len(categories):
            categories = categories[: request.top_n]
        if primary.is_time:
            categories.sort()

        kept_series = {series_key for category in categories for series_key in cells[category]}
        series_keys = sorted(kept_series, key=lambda key: _series_sort_key(key, series_labels[key]))
        series = [
            BarSeries(
                name=series_labels[key],
                data=[float(cells[category].get(key, 0)) for category in categories],
                color=color_for(index),
            )
            for index, key in enumerate(series_keys)
        ]

        raw_values = [amount for values in cells.values() for amount in values.values()]
        return BarChartResponse(
            categories=[category_labels[category] for category in categories],
            series=series,
            metadata=BarMetadata(
                total=float(sum(raw_values, Decimal("0"))),
                average=float(average(raw_values)),
            ),
        )
