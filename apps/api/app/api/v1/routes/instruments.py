from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse, StreamingResponse

from app.api.v1.deps import get_instrument_service, get_settings_dep
from app.api.v1.schemas import WriteResponse
from app.core.config import Settings
from app.core.errors import GraphExecutionError, InvalidRequestError
from app.core.security import verify_write_secret, webhook_secret_header
from app.services.instruments.service import FinancialInstrumentService

router = APIRouter(prefix="/financial-instruments", tags=["financial-instruments"])
logger = logging.getLogger(__name__)


def _not_found(uuid: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"message": f"Financial instrument {uuid} not found"},
    )


@router.get("/__count")
def count_instruments(service: FinancialInstrumentService = Depends(get_instrument_service)) -> int:
    return service.count()


@router.get("/__ids")
def list_instrument_ids(
    skip: int = 0,
    service: FinancialInstrumentService = Depends(get_instrument_service),
) -> StreamingResponse:
    if skip < 0:
        raise InvalidRequestError("skip must not be negative")
    entries = service.iter_ids(skip=skip)
    # Pull the first page here so a failing store maps to an error status, not a truncated stream.
    first = next(entries, None)

    def _lines():
        if first is None:
            return
        yield first.model_dump_json() + "\n"
        try:
            for entry in entries:
                yield entry.model_dump_json() + "\n"
        except GraphExecutionError:
            logger.exception("ids_stream_interrupted", extra={"skip": skip})
            raise

    return StreamingResponse(_lines(), media_type="application/x-ndjson")


@router.get("/{uuid}")
def read_instrument(uuid: str, service: FinancialInstrumentService = Depends(get_instrument_service)):
    instrument, found = service.read(uuid)
    if not found:
        return _not_found(uuid)
    return JSONResponse(content=instrument.to_wire())


async def _raw_body(request: Request) -> bytes:
    return await request.body()


@router.put("/{uuid}", response_model=WriteResponse)
def write_instrument(
    uuid: str,
    body: bytes = Depends(_raw_body),
    service: FinancialInstrumentService = Depends(get_instrument_service),
    settings: Settings = Depends(get_settings_dep),
    x_webhook_secret: str | None = Depends(webhook_secret_header),
) -> WriteResponse:
    verify_write_secret(settings, x_webhook_secret)
    instrument, body_uuid = service.decode_json(body)
    if body_uuid != uuid:
        raise InvalidRequestError(f"Uuids from payload and request, respectively, do not match: '{body_uuid}' '{uuid}'")
    digest = service.write(instrument)
    return WriteResponse(uuid=uuid, hash=digest)


@router.delete("/{uuid}")
def delete_instrument(
    uuid: str,
    service: FinancialInstrumentService = Depends(get_instrument_service),
    settings: Settings = Depends(get_settings_dep),
    x_webhook_secret: str | None = Depends(webhook_secret_header),
):
    verify_write_secret(settings, x_webhook_secret)
    if not service.delete(uuid):
        return _not_found(uuid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
