from __future__ import annotations

import re
from collections.abc import Mapping

from app.db.neo4j.runner import CypherQuery, CypherRunner

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def _checked(name: str) -> str:
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"not a valid Cypher identifier: {name!r}")
    return name


def _schema_name(label: str, prop: str, suffix: str) -> str:
    return f"{_CAMEL_BOUNDARY_RE.sub('_', label).lower()}_{prop.lower()}_{suffix}"


def constraint_statement(label: str, prop: str) -> str:
    label, prop = _checked(label), _checked(prop)
    name = _schema_name(label, prop, "unique")
    return f"CREATE CONSTRAINT {name} IF NOT EXISTS FOR (n:{label}) REQUIRE n.{prop} IS UNIQUE"


def index_statement(label: str, prop: str) -> str:
    label, prop = _checked(label), _checked(prop)
    name = _schema_name(label, prop, "idx")
    return f"CREATE INDEX {name} IF NOT EXISTS FOR (n:{label}) ON (n.{prop})"


class IndexManager:
    def __init__(self, runner: CypherRunner) -> None:
        self._runner = runner

    def ensure_indexes(self, indexes: Mapping[str, str]) -> None:
        self._runner.run_batch([CypherQuery(index_statement(label, prop)) for label, prop in indexes.items()])

    def ensure_constraints(self, constraints: Mapping[str, str]) -> None:
        self._runner.run_batch(
            [CypherQuery(constraint_statement(label, prop)) for label, prop in constraints.items()]
        )
