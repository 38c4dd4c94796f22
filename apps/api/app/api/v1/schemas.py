from __future__ import annotations

from pydantic import BaseModel


class WriteResponse(BaseModel):
    uuid: str
    hash: str


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    detail: str | None = None
