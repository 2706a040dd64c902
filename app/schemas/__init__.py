"""Pydantic schemas for request and response payloads."""

from .charts import (
    BarChartResponse,
    ChartMetadata,
    ChartRequest,
    ChartResponse,
    ChartType,
    ChartTypeInfo,
    ChartTypesResponse,
    DimensionFilters,
    KPIChartResponse,
    LineChartResponse,
    PieChartResponse,
    TableChartResponse,
)
from .dashboard import DashboardSummary, SummaryQuery
from .options import OptionEntity, OptionItem, OptionsQuery, OptionsResponse

__all__ = [
    "BarChartResponse",
    "ChartMetadata",
    "ChartRequest",
    "ChartResponse",
    "ChartType",
    "ChartTypeInfo",
    "ChartTypesResponse",
    "DimensionFilters",
    "KPIChartResponse",
    "LineChartResponse",
    "PieChartResponse",
    "TableChartResponse",
    "DashboardSummary",
    "SummaryQuery",
    "OptionEntity",
    "OptionItem",
    "OptionsQuery",
    "OptionsResponse",
]
