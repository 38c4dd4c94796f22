from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, PlainTextResponse

from app.api.v1.deps import get_instrument_service
from app.api.v1.schemas import HealthResponse
from app.core.errors import GraphExecutionError
from app.services.instruments.service import FinancialInstrumentService

router = APIRouter(tags=["health"])
ops_router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


def _graph_problem(service: FinancialInstrumentService) -> str | None:
    try:
        service.check()
    except GraphExecutionError as exc:
        logger.warning("graph_connectivity_check_failed", extra={"error": str(exc)})
        return str(exc)
    return None


def _health_response(service: FinancialInstrumentService) -> JSONResponse:
    problem = _graph_problem(service)
    body = HealthResponse(
        status="ok" if problem is None else "unavailable",
        timestamp=datetime.now(timezone.utc).isoformat(),
        detail=problem,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if problem is None else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(exclude_none=True),
    )


@router.get("/health")
def health(service: FinancialInstrumentService = Depends(get_instrument_service)) -> JSONResponse:
    return _health_response(service)


@ops_router.get("/__health")
def ops_health(service: FinancialInstrumentService = Depends(get_instrument_service)) -> JSONResponse:
    return _health_response(service)


@ops_router.get("/__gtg", response_class=PlainTextResponse)
def good_to_go(service: FinancialInstrumentService = Depends(get_instrument_service)) -> PlainTextResponse:
    if _graph_problem(service) is not None:
        return PlainTextResponse("Service unavailable", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return PlainTextResponse("OK")
