from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Financial Instruments RW API"
    environment: str = "dev"
    api_prefix: str = "/v1"
    log_level: str = "INFO"

    neo4j_uri: str = ""
    neo4j_user: str = ""
    neo4j_password: str = ""
    neo4j_database: str | None = None

    ids_page_size: int = Field(default=4096, ge=1, le=100000)
    # "stop" keeps the legacy behaviour of ending the id scan on a failed page fetch.
    ids_fetch_errors: Literal["raise", "stop"] = "raise"
    serialize_writes: bool = True

    write_api_secret: str = ""


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
