"""Schemas for the dashboard summary cards."""
from __future__ import annotations

from datetime import date, datetime

from pydantic import ConfigDict

from .charts import CamelModel, DimensionFilters, PeriodRange


class SummaryQuery(DimensionFilters):
    model_config = ConfigDict(frozen=True)

    start: date
    end: date


class AccountsBreakdown(CamelModel):
    receivable: float
    payable: float
    total: float


class SummaryMetadata(CamelModel):
    period: PeriodRange
    generated_at: datetime


class DashboardSummary(CamelModel):
    """Totals for the top-of-page summary cards."""

    total_revenue: float
    total_expense: float
    liquid_profit: float
    overdue_accounts: AccountsBreakdown
    upcoming_accounts: AccountsBreakdown
    metadata: SummaryMetadata
