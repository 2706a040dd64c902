"""Chart data endpoints."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.core.log import get_logger
from app.schemas.charts import ChartMetadata, ChartType, ChartTypesResponse
from app.services.charts import ChartService
from app.web.dependencies import get_chart_service, get_db_session
from app.web.query_params import chart_request_from_params

router = APIRouter(prefix="/charts", tags=["charts"])
LOGGER = get_logger(__name__)

METADATA_CACHE_CONTROL = "public, max-age=3600"


def _resolve_chart_type(value: str, chart_service: ChartService) -> ChartType:
    try:
        chart_type = ChartType(value)
    except ValueError:
        raise NotFoundError(f"Chart type '{value}'") from None
    if chart_type not in chart_service.available_chart_types():
        raise NotFoundError(f"Chart type '{value}'")
    return chart_type


@router.get("/types", response_model=ChartTypesResponse, response_model_by_alias=True)
def list_chart_types(
    response: Response,
    chart_service: ChartService = Depends(get_chart_service),
) -> ChartTypesResponse:
    response.headers["Cache-Control"] = METADATA_CACHE_CONTROL
    return ChartTypesResponse(types=chart_service.describe_chart_types())


@router.get("/{chart_type}/metadata", response_model=ChartMetadata, response_model_by_alias=True)
def get_chart_metadata(
    chart_type: str,
    response: Response,
    chart_service: ChartService = Depends(get_chart_service),
) -> ChartMetadata:
    resolved = _resolve_chart_type(chart_type, chart_service)
    response.headers["Cache-Control"] = METADATA_CACHE_CONTROL
    return chart_service.get_strategy_metadata(resolved)


@router.get("/{chart_type}")
def get_chart_data(
    chart_type: str,
    request: Request,
    session: Session = Depends(get_db_session),
    chart_service: ChartService = Depends(get_chart_service),
) -> Response:
    started = perf_counter()
    resolved = _resolve_chart_type(chart_type, chart_service)
    chart_request = chart_request_from_params(resolved, request.query_params)
    LOGGER.info(
        "Chart request received",
        extra={
            "chart_type": resolved.value,
            "start": chart_request.start.isoformat(),
            "end": chart_request.end.isoformat(),
            "metric": chart_request.metric,
        },
    )

    errors = chart_service.validate_params(chart_request)
    if errors:
        raise ValidationError(errors)

    etag = chart_service.etag_for(chart_request)
    if request.headers.get("if-none-match") == etag:
        LOGGER.info("Client copy is fresh (304)", extra={"etag": etag})
        return Response(status_code=304, headers={"ETag": etag})

    data = chart_service.get_chart_data(chart_request, session)
    elapsed_ms = (perf_counter() - started) * 1000
    LOGGER.info("Chart data sent in %.1fms", elapsed_ms)
    return JSONResponse(
        content=data.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers={
            "ETag": etag,
            "Cache-Control": chart_service.get_cache_control_header(resolved),
            "X-Response-Time": f"{elapsed_ms:.0f}ms",
        },
    )
