from __future__ import annotations

from functools import lru_cache

from app.core.config import Settings, get_settings
from app.db.neo4j.runner import CypherRunner
from app.db.neo4j.schema import IndexManager
from app.services.instruments.service import FinancialInstrumentService


def get_settings_dep() -> Settings:
    return get_settings()


@lru_cache(maxsize=1)
def get_instrument_service() -> FinancialInstrumentService:
    settings = get_settings()
    runner = CypherRunner()
    return FinancialInstrumentService(
        runner,
        IndexManager(runner),
        page_size=settings.ids_page_size,
        ids_fetch_errors=settings.ids_fetch_errors,
        serialize_writes=settings.serialize_writes,
    )
