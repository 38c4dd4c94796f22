"""Ordered, best-effort execution of parameterised Cypher batches.

Statements in a batch run one after another on a single session, each in its
own auto-commit transaction. A failure stops the batch but does not roll back
the statements that already ran; callers are expected to issue batches whose
steps are individually safe to re-run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any

from neo4j.exceptions import DriverError, Neo4jError

from app.core.errors import GraphExecutionError, GraphUnavailableError
from app.db.neo4j.driver import neo4j_session

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Any]]


@dataclass(frozen=True)
class QueryStats:
    contains_updates: bool = False
    labels_added: int = 0
    labels_removed: int = 0
    nodes_created: int = 0
    nodes_deleted: int = 0
    relationships_created: int = 0
    relationships_deleted: int = 0
    properties_set: int = 0

    @classmethod
    def from_counters(cls, counters: Any) -> QueryStats:
        return cls(
            contains_updates=bool(counters.contains_updates),
            labels_added=int(counters.labels_added),
            labels_removed=int(counters.labels_removed),
            nodes_created=int(counters.nodes_created),
            nodes_deleted=int(counters.nodes_deleted),
            relationships_created=int(counters.relationships_created),
            relationships_deleted=int(counters.relationships_deleted),
            properties_set=int(counters.properties_set),
        )


@dataclass
class CypherQuery:
    statement: str
    parameters: dict[str, Any] = field(default_factory=dict)
    include_stats: bool = False
    result: list[dict[str, Any]] = field(default_factory=list)
    _stats: QueryStats | None = field(default=None, repr=False)

    def stats(self) -> QueryStats:
        if not self.include_stats:
            raise GraphExecutionError("statistics were not requested for this query")
        if self._stats is None:
            raise GraphExecutionError("query has not been executed")
        return self._stats

    def record_stats(self, stats: QueryStats) -> None:
        self._stats = stats


class CypherRunner:
    def __init__(self, session_factory: SessionFactory = neo4j_session) -> None:
        self._session_factory = session_factory

    def run_batch(self, queries: Sequence[CypherQuery]) -> None:
        if not queries:
            return
        try:
            with self._session_factory() as session:
                if session is None:
                    raise GraphUnavailableError("Neo4j URI not configured")
                for index, query in enumerate(queries):
                    self._run_one(session, index, len(queries), query)
        except (DriverError, Neo4jError) as exc:
            # Raised while opening or closing the session rather than by a statement.
            logger.exception("cypher_session_failed")
            raise GraphUnavailableError(str(exc)) from exc

    def _run_one(self, session: Any, index: int, total: int, query: CypherQuery) -> None:
        try:
            result = session.run(query.statement, query.parameters)
            query.result = result.data()
            summary = result.consume()
        except (DriverError, Neo4jError) as exc:
            logger.exception(
                "cypher_batch_statement_failed",
                extra={"statement_index": index, "batch_size": total},
            )
            raise GraphExecutionError(f"statement {index + 1} of {total} failed: {exc}") from exc
        if query.include_stats:
            query.record_stats(QueryStats.from_counters(summary.counters))

    def check(self) -> None:
        self.run_batch([CypherQuery("RETURN 1 AS ok")])
