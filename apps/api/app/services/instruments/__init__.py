from __future__ import annotations

from app.services.instruments.hashing import content_hash
from app.services.instruments.labels import ConceptLabel, IdentifierScheme
from app.services.instruments.model import AlternativeIdentifiers, FinancialInstrument, IDEntry
from app.services.instruments.service import FinancialInstrumentService

__all__ = [
    "AlternativeIdentifiers",
    "ConceptLabel",
    "FinancialInstrument",
    "FinancialInstrumentService",
    "IDEntry",
    "IdentifierScheme",
    "content_hash",
]
