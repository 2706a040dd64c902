"""FastAPI application instance and exception handlers."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.cache import CacheStore, InMemoryCache, NullCache
from app.core.config import Settings, get_settings
from app.core.errors import ApiError, InternalServerError, ValidationError
from app.core.log import get_logger, init_logging
from app.middleware import RequestContextMiddleware
from app.routers import charts_router, dashboard_router, health_router, options_router
from app.services import ChartService, DashboardService, OptionsService, default_registry

LOGGER = get_logger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


def _problem_response(error: ApiError, request: Request) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_problem(instance=request.url.path),
        media_type=PROBLEM_MEDIA_TYPE,
    )


def _describe_validation_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("query", "path"))
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error("Request failed: %s", exc.detail)
        else:
            LOGGER.info("Request rejected (%d): %s", exc.status_code, exc.detail)
        return _problem_response(exc, request)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError([_describe_validation_error(item) for item in exc.errors()])
        return _problem_response(error, request)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.exception("Unhandled error while serving %s", request.url.path)
        return _problem_response(InternalServerError(), request)


def create_app(
    settings: Settings | None = None,
    *,
    cache: CacheStore | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or get_settings()
    init_logging(
        level=settings.log_level,
        log_dir=Path(settings.log_dir) if settings.log_dir else None,
    )

    if cache is None:
        cache = InMemoryCache(max_entries=settings.cache.max_entries) if settings.cache.enabled else NullCache()

    app = FastAPI(title="Finance Charts API", version="0.1.0")
    app.state.settings = settings
    app.state.cache = cache
    app.state.chart_service = ChartService(
        default_registry(strict_metrics=settings.charts.strict_metrics, clock=clock),
        cache=cache,
        cache_settings=settings.cache,
        chart_settings=settings.charts,
    )
    app.state.dashboard_service = DashboardService(
        cache=cache,
        cache_settings=settings.cache,
        clock=clock,
    )
    app.state.options_service = OptionsService()

    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(charts_router, prefix=settings.api_prefix)
    app.include_router(dashboard_router, prefix=settings.api_prefix)
    app.include_router(options_router, prefix=settings.api_prefix)

    LOGGER.info(
        "FastAPI application initialised",
        extra={
            "api_prefix": settings.api_prefix,
            "chart_types": [chart_type.value for chart_type in app.state.chart_service.available_chart_types()],
            "cache_enabled": settings.cache.enabled,
        },
    )
    return app


app = create_app()
