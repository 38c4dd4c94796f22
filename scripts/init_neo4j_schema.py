from __future__ import annotations

from app.api.v1.deps import get_instrument_service
from app.core.config import get_settings
from app.db.neo4j.driver import close_driver
from app.services.instruments.labels import INSTRUMENT_CONSTRAINTS, INSTRUMENT_INDEXES


def main() -> None:
    if not get_settings().neo4j_uri:
        print("Neo4j URI not configured; skipping")
        return
    try:
        get_instrument_service().initialise()
    finally:
        close_driver()
    for label, prop in INSTRUMENT_INDEXES.items():
        print(f"Ensured index: {label}.{prop}")
    for label, prop in INSTRUMENT_CONSTRAINTS.items():
        print(f"Ensured unique constraint: {label}.{prop}")


if __name__ == "__main__":
    main()
