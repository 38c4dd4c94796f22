from __future__ import annotations

import hashlib
import json

from app.services.instruments.model import FinancialInstrument


def canonical_form(instrument: FinancialInstrument) -> str:
    payload = instrument.to_wire()
    identifiers = payload.get("alternativeIdentifiers", {})
    identifiers["uuids"] = sorted(identifiers.get("uuids", []))
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def content_hash(instrument: FinancialInstrument) -> str:
    return hashlib.sha256(canonical_form(instrument).encode("utf-8")).hexdigest()
