"""Request and response payloads for the chart endpoints."""
from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialising field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChartType(str, Enum):
    LINE = "line"
    BAR = "bar"
    PIE = "pie"
    TABLE = "table"
    KPI = "kpi"


class DimensionFilters(CamelModel):
    """Optional filters every aggregation applies on top of the date window."""

    category_id: str | None = None
    product_id: str | None = None
    customer_id: str | None = None
    region: str | None = None


class ChartRequest(DimensionFilters):
    """Common request shape consumed by every chart strategy."""

    model_config = ConfigDict(frozen=True)

    chart_type: ChartType
    start: date
    end: date
    metric: str = "revenue"
    group_by: str | None = None
    dimension: str | None = None
    top_n: int | None = None
    cursor: str | None = None
    limit: int | None = None


class ChartMetadata(CamelModel):
    name: str
    supported_metrics: list[str]
    supported_group_by: list[str]
    supports_pagination: bool = False


class ChartTypeInfo(CamelModel):
    value: ChartType
    label: str
    metadata: ChartMetadata


class ChartTypesResponse(CamelModel):
    types: list[ChartTypeInfo]


class LinePoint(CamelModel):
    x: str
    y: float


class LineSeries(CamelModel):
    name: str
    points: list[LinePoint]
    color: str


class LineMetadata(CamelModel):
    total: float = 0.0
    average: float = 0.0
    min: float = 0.0
    max: float = 0.0


class LineChartResponse(CamelModel):
    series: list[LineSeries]
    metadata: LineMetadata


class BarSeries(CamelModel):
    name: str
    data: list[float]
    color: str


class BarMetadata(CamelModel):
    total: float = 0.0
    average: float = 0.0


class BarChartResponse(CamelModel):
    categories: list[str]
    series: list[BarSeries]
    metadata: BarMetadata


class PieSlice(CamelModel):
    label: str
    value: float
    percentage: float
    color: str


class PieMetadata(CamelModel):
    total: float = 0.0


class PieChartResponse(CamelModel):
    slices: list[PieSlice]
    metadata: PieMetadata


ColumnType = Literal["string", "number", "date", "currency", "percentage"]


class TableColumn(CamelModel):
    """Server-side column schema; clients format cells from ``type`` only."""

    key: str
    label: str
    type: ColumnType = "string"
    sortable: bool = False
    align: Literal["left", "center", "right"] = "left"


class TableChartResponse(CamelModel):
    columns: list[TableColumn]
    rows: list[dict[str, Any]]
    has_more: bool
    total: int
    cursor: str | None = None


Trend = Literal["up", "down", "stable"]


class KPIValue(CamelModel):
    current: float
    previous: float
    change: float
    change_percentage: float
    trend: Trend


class PeriodRange(CamelModel):
    start: date
    end: date


class KPIPeriod(CamelModel):
    current: PeriodRange
    previous: PeriodRange


class KPIChartResponse(CamelModel):
    metrics: dict[str, KPIValue]
    period: KPIPeriod


ChartResponse = Union[
    LineChartResponse,
    BarChartResponse,
    PieChartResponse,
    TableChartResponse,
    KPIChartResponse,
]
