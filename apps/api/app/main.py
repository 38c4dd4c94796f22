from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.api.v1.deps import get_instrument_service
from app.api.v1.routes import health, instruments
from app.core.config import get_settings
from app.core.errors import GraphExecutionError, InvalidRequestError
from app.core.logging import configure_logging
from app.db.neo4j.driver import close_driver

configure_logging()
settings = get_settings()
logger = logging.getLogger(__name__)
app = FastAPI(title=settings.app_name)


@app.exception_handler(InvalidRequestError)
def invalid_request_handler(request: Request, exc: InvalidRequestError) -> JSONResponse:
    logger.info("invalid_request", extra={"path": request.url.path, "details": exc.details})
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": exc.details})


@app.exception_handler(GraphExecutionError)
def graph_execution_handler(request: Request, exc: GraphExecutionError) -> JSONResponse:
    logger.error("graph_execution_failed", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"message": str(exc)})


@app.on_event("startup")
def on_startup() -> None:
    if not settings.neo4j_uri:
        logger.warning("neo4j_uri_not_configured_skipping_schema")
        return
    get_instrument_service().initialise()


@app.on_event("shutdown")
def on_shutdown() -> None:
    close_driver()


app.include_router(health.router, prefix=settings.api_prefix)
app.include_router(health.ops_router)
app.include_router(instruments.router)
