"""Liveness and readiness probes."""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.log import get_logger
from app.web.dependencies import get_db_session

router = APIRouter(tags=["health"])
LOGGER = get_logger(__name__)


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/livez")
def livez() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/readyz")
def readyz(request: Request, session: Session = Depends(get_db_session)) -> JSONResponse:
    try:
        session.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError:
        LOGGER.warning("Readiness check failed: database unreachable", exc_info=True)
        database = "disconnected"

    cache = getattr(request.app.state, "cache", None)
    try:
        cache_status = "connected" if cache is not None and cache.ping() else "disabled"
    except Exception:
        LOGGER.warning("Readiness check: cache ping failed", exc_info=True)
        cache_status = "disconnected"

    ready = database == "connected"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "degraded",
            "services": {"database": database, "cache": cache_status},
        },
    )
