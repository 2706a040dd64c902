"""Dashboard summary endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.log import get_logger, timeit
from app.services.dashboard_service import DashboardService
from app.web.dependencies import get_dashboard_service, get_db_session
from app.web.query_params import summary_query_from_params

router = APIRouter(prefix="/dashboard", tags=["dashboard"])
LOGGER = get_logger(__name__)


@router.get("/summary")
def get_summary(
    request: Request,
    session: Session = Depends(get_db_session),
    dashboard_service: DashboardService = Depends(get_dashboard_service),
) -> JSONResponse:
    query = summary_query_from_params(request.query_params)
    LOGGER.info(
        "Dashboard summary request received",
        extra={"filters": query.model_dump(mode="json", exclude_none=True)},
    )
    with timeit("Dashboard summary request", logger=LOGGER):
        summary = dashboard_service.get_summary(query, session)
    return JSONResponse(
        content=summary.model_dump(mode="json", by_alias=True),
        headers={"Cache-Control": dashboard_service.get_cache_control_header()},
    )
