"""Time-series data for line charts."""
from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from app.models import Transaction, TransactionType
from app.schemas.charts import (
    ChartMetadata,
    ChartRequest,
    ChartType,
    LineChartResponse,
    LineMetadata,
    LinePoint,
    LineSeries,
)

from .base import ChartStrategy, as_decimal, average, color_for
from .dimensions import (
    METRICS,
    TIME_GRANULARITIES,
    TYPE_LABELS,
    bucket_start,
    day_column,
    display_label,
    group_key,
    iter_buckets,
    metric_expression,
    resolve_grouping,
)

GROUP_BY_OPTIONS = (*TIME_GRANULARITIES, "category", "product", "customer", "region")
_TYPE_ORDER = {kind: index for index, kind in enumerate(TransactionType)}


class LineChartStrategy(ChartStrategy):
    """Revenue/expense lines per time bucket, or one line per dimension value.

    Time-bucketed series are gap-filled so each series has exactly one point
    per bucket between ``start`` and ``end``. Dimension series carry one point
    per day with data and are not filled.
    """

    chart_type = ChartType.LINE
    response_model = LineChartResponse
    metadata = ChartMetadata(
        name="Line Chart",
        supported_metrics=list(METRICS),
        supported_group_by=list(GROUP_BY_OPTIONS),
        supports_pagination=False,
    )

    def validate(self, request: ChartRequest) -> list[str]:
        return self._grouping_error(request.group_by, GROUP_BY_OPTIONS, "groupBy value for line chart")

    def execute(self, request: ChartRequest, session: Session) -> LineChartResponse:
        grouping = resolve_grouping(request.group_by or "day")
        value = metric_expression(request.metric, strict=self.strict_metrics)
        day = day_column()

        if grouping.is_time:
            stmt = self._select(
                request, day.label("day"), Transaction.type.label("series"), value.label("value")
            ).group_by(day, Transaction.type)
        else:
            stmt = self._select(
                request,
                day.label("day"),
                grouping.group_column.label("key"),
                grouping.label_column.label("series"),
                value.label("value"),
                groupings=[grouping],
            ).group_by(day, grouping.group_column, grouping.label_column)

        rows = session.execute(stmt).all()

        # series key -> bucket/day -> value; dimension series are keyed by the grouping column
        cells: dict[object, dict[date, Decimal]] = defaultdict(lambda: defaultdict(Decimal))
        labels: dict[object, str] = {}
        for row in rows:
            if grouping.is_time:
                point, key = bucket_start(row.day, grouping.granularity), row.series
            else:
                point, key = row.day, group_key(row.key)
                labels.setdefault(key, display_label(row.series))
            cells[key][point] += as_decimal(row.value)

        raw_values = [amount for points in cells.values() for amount in points.values()]

        if grouping.is_time:
            buckets = list(iter_buckets(request.start, request.end, grouping.granularity))
            ordered = sorted(cells, key=lambda kind: _TYPE_ORDER.get(kind, len(_TYPE_ORDER)))
            series = [
                LineSeries(
                    name=TYPE_LABELS.get(kind, "Total"),
                    points=[
                        LinePoint(x=bucket.isoformat(), y=float(cells[kind].get(bucket, 0)))
                        for bucket in buckets
                    ],
                    color=color_for(index),
                )
                for index, kind in enumerate(ordered)
            ]
        else:
            series = [
                LineSeries(
                    name=labels[key],
                    points=[
                        LinePoint(x=day_value.isoformat(), y=float(amount))
                        for day_value, amount in sorted(cells[key].items())
                    ],
                    color=color_for(index),
                )
                for index, key in enumerate(sorted(cells, key=lambda key: (labels[key], str(key))))
            ]

        metadata = LineMetadata(
            total=float(sum(raw_values, Decimal("0"))),
            average=float(average(raw_values)),
            min=float(min(raw_values)) if raw_values else 0.0,
            max=float(max(raw_values)) if raw_values else 0.0,
        )
        return LineChartResponse(series=series, metadata=metadata)
