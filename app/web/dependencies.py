"""Shared FastAPI dependency definitions."""
from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from fastapi import Request
from sqlalchemy.orm import Session, sessionmaker

from app.db.session import get_sessionmaker
from app.services.charts import ChartService
from app.services.dashboard_service import DashboardService
from app.services.options_service import OptionsService


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    """Build the session factory once, on first use, from the shared engine."""

    return get_sessionmaker()


def get_db_session() -> Generator[Session, None, None]:
    """Yield a database session suitable for request-scoped usage."""

    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


def get_chart_service(request: Request) -> ChartService:
    return request.app.state.chart_service


def get_dashboard_service(request: Request) -> DashboardService:
    return request.app.state.dashboard_service


def get_options_service(request: Request) -> OptionsService:
    return request.app.state.options_service
