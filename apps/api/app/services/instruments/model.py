from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from app.services.instruments.labels import IdentifierScheme


class AlternativeIdentifiers(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uuids: list[str] = Field(default_factory=list)
    factset_identifier: str | None = Field(default=None, alias="factsetIdentifier")
    figi_code: str | None = Field(default=None, alias="figiCode")
    wsod_identifier: str | None = Field(default=None, alias="wsodIdentifier")

    def by_scheme(self) -> list[tuple[IdentifierScheme, str]]:
        """Non-empty identifier values paired with their scheme, primary values first."""
        pairs = [(IdentifierScheme.UPP, value) for value in self.uuids if value]
        for scheme, value in (
            (IdentifierScheme.FACTSET, self.factset_identifier),
            (IdentifierScheme.FIGI, self.figi_code),
            (IdentifierScheme.WSOD, self.wsod_identifier),
        ):
            if value:
                pairs.append((scheme, value))
        return pairs


class FinancialInstrument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uuid: str = Field(min_length=1)
    pref_label: str | None = Field(default=None, alias="prefLabel")
    issued_by: str | None = Field(default=None, alias="issuedBy")
    alternative_identifiers: AlternativeIdentifiers = Field(
        default_factory=AlternativeIdentifiers,
        alias="alternativeIdentifiers",
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class IDEntry(BaseModel):
    id: str
    hash: str | None = None
