"""Dropdown option lookups."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.schemas.options import OptionsResponse
from app.services.options_service import OptionsService
from app.web.dependencies import get_db_session, get_options_service
from app.web.query_params import options_query_from_params

router = APIRouter(prefix="/options", tags=["options"])


@router.get("/{entity}", response_model=OptionsResponse, response_model_by_alias=True)
def get_options(
    entity: str,
    request: Request,
    session: Session = Depends(get_db_session),
    options_service: OptionsService = Depends(get_options_service),
) -> OptionsResponse:
    query = options_query_from_params(request.query_params)
    return options_service.get_options(entity, query, session)
