"""Read/write service for financial instruments stored in Neo4j.

Each public operation becomes one ordered Cypher batch. Writes replace the
instrument wholesale: identifier nodes and the issuer edge are detached first
and rebuilt from the payload, so re-running a failed write converges on the
intended state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import nullcontext
from typing import Literal

from pydantic import ValidationError

from app.core.errors import GraphExecutionError, InvalidRequestError
from app.db.neo4j.runner import CypherQuery, CypherRunner
from app.db.neo4j.schema import IndexManager
from app.services.instruments.hashing import content_hash
from app.services.instruments.labels import (
    CLASSIFICATION_LABELS,
    IDENTIFIER_LABEL,
    INSTRUMENT_CONSTRAINTS,
    INSTRUMENT_INDEXES,
    IdentifierScheme,
    label_expression,
)
from app.services.instruments.locks import KeyedLocks
from app.services.instruments.model import FinancialInstrument, IDEntry

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 4096

_CLASSIFICATION = label_expression(CLASSIFICATION_LABELS)

READ_STATEMENT = """
MATCH (fi:FinancialInstrument {uuid: $uuid})
OPTIONAL MATCH (fi)-[:ISSUED_BY]->(org:Thing)
OPTIONAL MATCH (factset:FactsetIdentifier)-[:IDENTIFIES]->(fi)
OPTIONAL MATCH (figi:FIGIIdentifier)-[:IDENTIFIES]->(fi)
OPTIONAL MATCH (wsod:WSODIdentifier)-[:IDENTIFIES]->(fi)
OPTIONAL MATCH (upp:UPPIdentifier)-[:IDENTIFIES]->(fi)
WITH fi,
     head(collect(DISTINCT org.uuid)) AS issuedBy,
     collect(DISTINCT upp.value) AS uuids,
     head(collect(DISTINCT factset.value)) AS factsetIdentifier,
     head(collect(DISTINCT figi.value)) AS figiCode,
     head(collect(DISTINCT wsod.value)) AS wsodIdentifier
RETURN fi.uuid AS uuid,
       fi.prefLabel AS prefLabel,
       issuedBy,
       {uuids: uuids,
        factsetIdentifier: factsetIdentifier,
        figiCode: figiCode,
        wsodIdentifier: wsodIdentifier} AS alternativeIdentifiers
"""

DETACH_STATEMENT = """
MATCH (t:Thing {uuid: $uuid})
OPTIONAL MATCH (t)-[issued:ISSUED_BY]->(:Thing)
DELETE issued
WITH DISTINCT t
OPTIONAL MATCH (i:Identifier)-[:IDENTIFIES]->(t)
DETACH DELETE i
"""

UPSERT_STATEMENT = f"""
MERGE (t:Thing {{uuid: $uuid}})
WITH t, t.prefLabel AS previousLabel
SET t = $props
SET t.prefLabel = coalesce($props.prefLabel, previousLabel)
SET t:{_CLASSIFICATION}
"""

ISSUER_STATEMENT = """
MATCH (fi:Thing {uuid: $uuid})
OPTIONAL MATCH (:Identifier {value: $issuedBy})-[:IDENTIFIES]->(known:Thing)
WITH fi, coalesce(head(collect(known.uuid)), $issuedBy) AS orgUuid
MERGE (org:Thing {uuid: orgUuid})
MERGE (orgUpp:Identifier:UPPIdentifier {value: orgUuid})
MERGE (orgUpp)-[:IDENTIFIES]->(org)
MERGE (fi)-[:ISSUED_BY]->(org)
"""

CLEAR_NODE_STATEMENT = f"""
MATCH (t:Thing {{uuid: $uuid}})
OPTIONAL MATCH (t)-[issued:ISSUED_BY]->(:Thing)
DELETE issued
WITH DISTINCT t
OPTIONAL MATCH (i:Identifier)-[:IDENTIFIES]->(t)
DETACH DELETE i
WITH DISTINCT t
REMOVE t:{_CLASSIFICATION}
SET t = $props
"""

REMOVE_UNUSED_NODE_STATEMENT = """
MATCH (t:Thing {uuid: $uuid})
WHERE NOT (t)--()
DELETE t
"""

COUNT_STATEMENT = "MATCH (fi:FinancialInstrument) RETURN count(fi) AS count"

IDS_PAGE_STATEMENT = """
MATCH (fi:FinancialInstrument)
RETURN fi.uuid AS id, fi.hash AS hash
SKIP $skip LIMIT $limit
"""


def _identifier_statement(scheme: IdentifierScheme) -> str:
    return f"""
MERGE (t:Thing {{uuid: $uuid}})
CREATE (i:{IDENTIFIER_LABEL}:{scheme.value} {{value: $value}})
CREATE (i)-[:IDENTIFIES]->(t)
"""


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "body"
        problems.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(problems)


class FinancialInstrumentService:
    def __init__(
        self,
        runner: CypherRunner,
        index_manager: IndexManager | None = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        ids_fetch_errors: Literal["raise", "stop"] = "raise",
        serialize_writes: bool = True,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._runner = runner
        self._index_manager = index_manager or IndexManager(runner)
        self._page_size = page_size
        self._ids_fetch_errors = ids_fetch_errors
        self._locks = KeyedLocks() if serialize_writes else None

    def _guard(self, uuid: str):
        if self._locks is None:
            return nullcontext()
        return self._locks.hold(uuid)

    def initialise(self) -> None:
        self._index_manager.ensure_indexes(INSTRUMENT_INDEXES)
        self._index_manager.ensure_constraints(INSTRUMENT_CONSTRAINTS)

    def read(self, uuid: str) -> tuple[FinancialInstrument | None, bool]:
        if not uuid:
            return None, False
        query = CypherQuery(READ_STATEMENT, {"uuid": uuid})
        self._runner.run_batch([query])
        if not query.result:
            return None, False
        row = query.result[0]
        identifiers = dict(row.get("alternativeIdentifiers") or {})
        identifiers["uuids"] = sorted(value for value in identifiers.get("uuids") or [] if value)
        instrument = FinancialInstrument.model_validate(
            {
                "uuid": row["uuid"],
                "prefLabel": row.get("prefLabel"),
                "issuedBy": row.get("issuedBy"),
                "alternativeIdentifiers": identifiers,
            }
        )
        return instrument, True

    def write(self, instrument: FinancialInstrument) -> str:
        """Replace the stored instrument with ``instrument`` and return its content hash."""
        digest = content_hash(instrument)
        props: dict[str, str] = {"uuid": instrument.uuid, "hash": digest}
        if instrument.pref_label:
            props["prefLabel"] = instrument.pref_label

        queries = [
            CypherQuery(DETACH_STATEMENT, {"uuid": instrument.uuid}),
            CypherQuery(UPSERT_STATEMENT, {"uuid": instrument.uuid, "props": props}),
        ]
        identifiers = instrument.alternative_identifiers.by_scheme()
        for scheme, value in identifiers:
            queries.append(CypherQuery(_identifier_statement(scheme), {"uuid": instrument.uuid, "value": value}))
        if instrument.issued_by:
            queries.append(
                CypherQuery(ISSUER_STATEMENT, {"uuid": instrument.uuid, "issuedBy": instrument.issued_by})
            )

        with self._guard(instrument.uuid):
            self._runner.run_batch(queries)
        logger.info(
            "financial_instrument_written",
            extra={"uuid": instrument.uuid, "identifier_count": len(identifiers), "hash": digest},
        )
        return digest

    def delete(self, uuid: str) -> bool:
        if not uuid:
            return False
        clear_node = CypherQuery(CLEAR_NODE_STATEMENT, {"uuid": uuid, "props": {"uuid": uuid}}, include_stats=True)
        remove_if_unused = CypherQuery(REMOVE_UNUSED_NODE_STATEMENT, {"uuid": uuid})
        with self._guard(uuid):
            self._runner.run_batch([clear_node, remove_if_unused])

        stats = clear_node.stats()
        deleted = stats.contains_updates and stats.labels_removed > 0
        if deleted:
            logger.info("financial_instrument_deleted", extra={"uuid": uuid})
        return deleted

    def count(self) -> int:
        query = CypherQuery(COUNT_STATEMENT)
        self._runner.run_batch([query])
        if not query.result:
            return 0
        return int(query.result[0]["count"])

    def iter_ids(self, skip: int = 0) -> Iterator[IDEntry]:
        """Yield ``(id, hash)`` entries page by page, starting ``skip`` rows in."""
        if skip < 0:
            raise ValueError("skip must not be negative")
        while True:
            query = CypherQuery(IDS_PAGE_STATEMENT, {"skip": skip, "limit": self._page_size})
            try:
                self._runner.run_batch([query])
            except GraphExecutionError:
                if self._ids_fetch_errors != "stop":
                    raise
                logger.warning("ids_page_fetch_failed_ending_scan", extra={"skip": skip}, exc_info=True)
                return
            if not query.result:
                return
            for row in query.result:
                yield IDEntry(id=row["id"], hash=row.get("hash"))
            skip += self._page_size

    def ids(self, visit: Callable[[IDEntry], bool]) -> None:
        """Feed every entry to ``visit`` until it returns False or raises."""
        for entry in self.iter_ids():
            if not visit(entry):
                return

    def check(self) -> None:
        self._runner.check()

    def decode_json(self, raw: str | bytes) -> tuple[FinancialInstrument, str]:
        try:
            instrument = FinancialInstrument.model_validate_json(raw)
        except ValidationError as exc:
            raise InvalidRequestError(_describe_validation_error(exc)) from exc
        return instrument, instrument.uuid
