from __future__ import annotations

from enum import Enum


class ConceptLabel(str, Enum):
    THING = "Thing"
    CONCEPT = "Concept"
    FINANCIAL_INSTRUMENT = "FinancialInstrument"
    EQUITY = "Equity"


class IdentifierScheme(str, Enum):
    UPP = "UPPIdentifier"
    FACTSET = "FactsetIdentifier"
    FIGI = "FIGIIdentifier"
    WSOD = "WSODIdentifier"


IDENTIFIER_LABEL = "Identifier"

# Every stored instrument carries all of these; Thing survives a delete.
INSTRUMENT_LABELS = (
    ConceptLabel.THING,
    ConceptLabel.CONCEPT,
    ConceptLabel.FINANCIAL_INSTRUMENT,
    ConceptLabel.EQUITY,
)
CLASSIFICATION_LABELS = tuple(label for label in INSTRUMENT_LABELS if label is not ConceptLabel.THING)

INSTRUMENT_CONSTRAINTS = {
    ConceptLabel.THING.value: "uuid",
    ConceptLabel.CONCEPT.value: "uuid",
    ConceptLabel.FINANCIAL_INSTRUMENT.value: "uuid",
    ConceptLabel.EQUITY.value: "uuid",
    IdentifierScheme.UPP.value: "value",
    IdentifierScheme.FACTSET.value: "value",
    IdentifierScheme.FIGI.value: "value",
}
INSTRUMENT_INDEXES = {IDENTIFIER_LABEL: "value"}


def label_expression(labels) -> str:
    return ":".join(label.value for label in labels)
