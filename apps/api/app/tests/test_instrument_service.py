from __future__ import annotations

import pytest

from app.core.errors import GraphExecutionError, InvalidRequestError
from app.db.neo4j.runner import QueryStats
from app.services.instruments.hashing import content_hash
from app.services.instruments.model import AlternativeIdentifiers, FinancialInstrument
from app.services.instruments.service import FinancialInstrumentService


class _FakeRunner:
    def __init__(self, responder=None, stats: QueryStats | None = None, error: Exception | None = None):
        self.batches: list[list] = []
        self._responder = responder or (lambda query: [])
        self._stats = stats or QueryStats()
        self._error = error

    def run_batch(self, queries) -> None:
        self.batches.append(list(queries))
        if self._error is not None:
            raise self._error
        for query in queries:
            query.result = self._responder(query)
            if query.include_stats:
                query.record_stats(self._stats)

    def check(self) -> None:
        if self._error is not None:
            raise self._error


class _FakeIndexManager:
    def __init__(self) -> None:
        self.indexes: dict = {}
        self.constraints: dict = {}

    def ensure_indexes(self, indexes) -> None:
        self.indexes.update(indexes)

    def ensure_constraints(self, constraints) -> None:
        self.constraints.update(constraints)


def _instrument(**overrides) -> FinancialInstrument:
    payload = {
        "uuid": "fi-1",
        "prefLabel": "Acme Ordinary Shares",
        "issuedBy": "org-ext-1",
        "alternativeIdentifiers": {
            "uuids": ["fi-1", "fi-legacy"],
            "factsetIdentifier": "FS-1",
            "figiCode": "BBG000000001",
            "wsodIdentifier": "WSOD-1",
        },
    }
    payload.update(overrides)
    return FinancialInstrument.model_validate(payload)


def test_initialise_declares_constraints_and_identifier_index() -> None:
    index_manager = _FakeIndexManager()
    service = FinancialInstrumentService(_FakeRunner(), index_manager)

    service.initialise()

    assert index_manager.indexes == {"Identifier": "value"}
    assert index_manager.constraints == {
        "Thing": "uuid",
        "Concept": "uuid",
        "FinancialInstrument": "uuid",
        "Equity": "uuid",
        "UPPIdentifier": "value",
        "FactsetIdentifier": "value",
        "FIGIIdentifier": "value",
    }


def test_write_emits_detach_upsert_identifiers_and_issuer_in_order() -> None:
    runner = _FakeRunner()
    service = FinancialInstrumentService(runner)
    instrument = _instrument()

    digest = service.write(instrument)

    assert digest == content_hash(instrument)
    assert len(runner.batches) == 1
    batch = runner.batches[0]
    assert len(batch) == 8
    detach, upsert, *identifiers, issuer = batch

    assert "DETACH DELETE i" in detach.statement
    assert detach.parameters == {"uuid": "fi-1"}

    assert "SET t = $props" in upsert.statement
    assert "SET t:Concept:FinancialInstrument:Equity" in upsert.statement
    assert upsert.parameters["props"] == {"uuid": "fi-1", "hash": digest, "prefLabel": "Acme Ordinary Shares"}

    created = [(query.parameters["value"], query.statement) for query in identifiers]
    assert [value for value, _ in created] == ["fi-1", "fi-legacy", "FS-1", "BBG000000001", "WSOD-1"]
    assert "Identifier:UPPIdentifier" in created[0][1]
    assert "Identifier:UPPIdentifier" in created[1][1]
    assert "Identifier:FactsetIdentifier" in created[2][1]
    assert "Identifier:FIGIIdentifier" in created[3][1]
    assert "Identifier:WSODIdentifier" in created[4][1]

    assert "MERGE (fi)-[:ISSUED_BY]->(org)" in issuer.statement
    assert "coalesce(head(collect(known.uuid)), $issuedBy)" in issuer.statement
    assert issuer.parameters == {"uuid": "fi-1", "issuedBy": "org-ext-1"}


def test_write_omits_empty_label_and_skips_blank_identifiers_and_issuer() -> None:
    runner = _FakeRunner()
    service = FinancialInstrumentService(runner)
    instrument = FinancialInstrument(
        uuid="fi-2",
        pref_label="",
        alternative_identifiers=AlternativeIdentifiers(uuids=["", "fi-2"], figi_code=""),
    )

    service.write(instrument)

    batch = runner.batches[0]
    assert len(batch) == 3
    assert "prefLabel" not in batch[1].parameters["props"]
    assert "coalesce($props.prefLabel, previousLabel)" in batch[1].statement
    assert batch[2].parameters == {"uuid": "fi-2", "value": "fi-2"}
    assert not any("ISSUED_BY]->(org)" in query.statement for query in batch)


def test_write_propagates_executor_failure() -> None:
    service = FinancialInstrumentService(_FakeRunner(error=GraphExecutionError("boom")))

    with pytest.raises(GraphExecutionError):
        service.write(_instrument())


def test_read_maps_row_into_instrument() -> None:
    def _responder(query):
        return [
            {
                "uuid": "fi-1",
                "prefLabel": "Acme Ordinary Shares",
                "issuedBy": "org-uuid-1",
                "alternativeIdentifiers": {
                    "uuids": ["fi-legacy", "fi-1"],
                    "factsetIdentifier": "FS-1",
                    "figiCode": None,
                    "wsodIdentifier": None,
                },
            }
        ]

    runner = _FakeRunner(_responder)
    service = FinancialInstrumentService(runner)

    instrument, found = service.read("fi-1")

    assert found is True
    assert instrument is not None
    assert instrument.issued_by == "org-uuid-1"
    assert instrument.alternative_identifiers.uuids == ["fi-1", "fi-legacy"]
    assert instrument.alternative_identifiers.factset_identifier == "FS-1"
    assert instrument.to_wire()["alternativeIdentifiers"] == {"uuids": ["fi-1", "fi-legacy"], "factsetIdentifier": "FS-1"}
    query = runner.batches[0][0]
    assert "MATCH (fi:FinancialInstrument {uuid: $uuid})" in query.statement
    assert query.parameters == {"uuid": "fi-1"}


def test_read_unknown_or_empty_uuid_is_not_found() -> None:
    runner = _FakeRunner()
    service = FinancialInstrumentService(runner)

    assert service.read("missing") == (None, False)
    assert service.read("") == (None, False)
    assert len(runner.batches) == 1


def test_read_propagates_executor_failure() -> None:
    service = FinancialInstrumentService(_FakeRunner(error=GraphExecutionError("down")))

    with pytest.raises(GraphExecutionError):
        service.read("fi-1")


def test_delete_reports_true_when_labels_removed() -> None:
    runner = _FakeRunner(stats=QueryStats(contains_updates=True, labels_removed=3, properties_set=1))
    service = FinancialInstrumentService(runner)

    assert service.delete("fi-1") is True

    clear_node, remove_if_unused = runner.batches[0]
    assert clear_node.include_stats is True
    assert "REMOVE t:Concept:FinancialInstrument:Equity" in clear_node.statement
    assert clear_node.parameters == {"uuid": "fi-1", "props": {"uuid": "fi-1"}}
    assert "WHERE NOT (t)--()" in remove_if_unused.statement
    assert remove_if_unused.parameters == {"uuid": "fi-1"}


def test_delete_of_bare_placeholder_is_not_a_delete() -> None:
    runner = _FakeRunner(stats=QueryStats(contains_updates=True, labels_removed=0, properties_set=1))
    service = FinancialInstrumentService(runner)

    assert service.delete("org-uuid-1") is False


def test_delete_of_unknown_uuid_is_false_without_error() -> None:
    service = FinancialInstrumentService(_FakeRunner())

    assert service.delete("missing") is False


def test_count_reads_aggregate() -> None:
    service = FinancialInstrumentService(_FakeRunner(lambda query: [{"count": 42}]))

    assert service.count() == 42


def test_check_delegates_to_runner() -> None:
    service = FinancialInstrumentService(_FakeRunner(error=GraphExecutionError("unreachable")))

    with pytest.raises(GraphExecutionError):
        service.check()


def test_decode_json_returns_instrument_and_uuid() -> None:
    service = FinancialInstrumentService(_FakeRunner())

    instrument, uuid = service.decode_json(
        b'{"uuid": "fi-9", "prefLabel": "Nine", "alternativeIdentifiers": {"uuids": ["fi-9"], "figiCode": "BBG9"}}'
    )

    assert uuid == "fi-9"
    assert instrument.pref_label == "Nine"
    assert instrument.alternative_identifiers.figi_code == "BBG9"


@pytest.mark.parametrize(
    "raw",
    [
        b"{not json",
        b'{"prefLabel": "no uuid"}',
        b'{"uuid": ""}',
        b'{"uuid": "fi-1", "alternativeIdentifiers": {"uuids": "not-a-list"}}',
    ],
)
def test_decode_json_rejects_malformed_payloads(raw: bytes) -> None:
    service = FinancialInstrumentService(_FakeRunner())

    with pytest.raises(InvalidRequestError) as exc_info:
        service.decode_json(raw)

    assert str(exc_info.value) == "Invalid Request"
    assert exc_info.value.details
