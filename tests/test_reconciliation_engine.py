"""
tests/test_reconciliation_engine.py

Pytest unit tests for ReconciliationEngine.

All tests run against the in-memory record repository.

Coverage
--------
- new / updated / unchanged / invalid classification
- Field diffs limited to changed columns, compared on normalized values
- All row errors collected, identity failures drop the identity key
- Dictionary without an identity column
- Row numbering: start offset or source row numbers
- A stored boolean never equals a number
- Lazy evaluation: commits between rows are visible to later rows
- Idempotence of a repeated reconciliation
- Lookup errors propagate
- merged_record carries over fields outside the dictionary
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from app.domain.column_dictionary import ColumnDefinition, ColumnDictionary, ColumnType
from app.domain.person import PersonRecord
from app.domain.reconciliation import FieldDiff, RowClassification
from app.repositories.person_record_repository import InMemoryPersonRecordRepository
from app.services.reconciliation_engine import (
    MISSING_IDENTITY_MESSAGE,
    NO_IDENTITY_COLUMN_MESSAGE,
    ReconciliationEngine,
    merged_record,
)
from conftest import build_columns
from db.repositories.errors import RepositoryUnavailableError

ANA = PersonRecord(
    identity_key="11111111-1",
    fields={"rut": "11111111-1", "nombre": "Ana", "email": "ana@x.cl", "comuna": "Santiago"},
)


@pytest.fixture()
def engine() -> ReconciliationEngine:
    return ReconciliationEngine()


@pytest.fixture()
def repository() -> InMemoryPersonRecordRepository:
    return InMemoryPersonRecordRepository([ANA])


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassification:
    def test_mixed_file(
        self,
        engine: ReconciliationEngine,
        dictionary: ColumnDictionary,
        repository: InMemoryPersonRecordRepository,
    ) -> None:
        rows = [
            {"rut": "12.345.678-5", "nombre": "Pedro", "email": "pedro@x.cl", "comuna": "santiago"},
            {"rut": "11111111-1", "nombre": "Ana María", "email": "ANA@x.cl", "comuna": "Santiago"},
            {"rut": "11.111.111-1", "nombre": "Ana", "email": "ana@x.cl", "comuna": "Santiago"},
            {"rut": "11111111-1", "nombre": "Ana", "email": "ana-at-x", "comuna": "Santiago"},
        ]

        outcomes = list(engine.reconcile(rows, dictionary, repository))

        assert [outcome.classification for outcome in outcomes] == [
            RowClassification.NEW,
            RowClassification.UPDATED,
            RowClassification.UNCHANGED,
            RowClassification.INVALID,
        ]
        assert [outcome.row_number for outcome in outcomes] == [1, 2, 3, 4]

        new, updated, unchanged, invalid = outcomes
        assert new.identity_key == "12345678-5"
        assert new.values["comuna"] == "Santiago"
        assert new.existing is None

        assert updated.field_diffs == {"nombre": FieldDiff(old="Ana", new="Ana María")}
        assert updated.existing == ANA

        assert unchanged.field_diffs == {}
        assert not unchanged.requires_commit

        assert invalid.identity_key == "11111111-1"
        assert len(invalid.errors) == 1
        assert invalid.errors[0].column == "email"
        assert not invalid.requires_commit

    def test_all_errors_of_a_row_are_collected(
        self,
        engine: ReconciliationEngine,
        dictionary: ColumnDictionary,
        repository: InMemoryPersonRecordRepository,
    ) -> None:
        outcome = engine.reconcile_row(
            7,
            {"rut": "11111111-1", "nombre": "", "email": "bad", "comuna": "Lima"},
            dictionary,
            repository,
        )

        assert outcome.classification is RowClassification.INVALID
        assert outcome.row_number == 7
        assert {error.column for error in outcome.errors} == {"nombre", "email", "comuna"}
        assert outcome.field_diffs == {}

    def test_invalid_identity_has_no_identity_key(
        self,
        engine: ReconciliationEngine,
        dictionary: ColumnDictionary,
        repository: InMemoryPersonRecordRepository,
    ) -> None:
        outcome = engine.reconcile_row(
            1,
            {"rut": "11111111-2", "nombre": "Ana"},
            dictionary,
            repository,
        )

        assert outcome.classification is RowClassification.INVALID
        assert outcome.identity_key is None
        assert outcome.errors[0].column == "rut"
        assert outcome.errors[0].value == "11111111-2"

    def test_blank_optional_identity_is_invalid(
        self,
        engine: ReconciliationEngine,
        repository: InMemoryPersonRecordRepository,
    ) -> None:
        columns = build_columns()
        columns[0] = replace(columns[0], required=False)
        dictionary = ColumnDictionary.from_columns(columns)

        outcome = engine.reconcile_row(1, {"rut": "", "nombre": "Ana"}, dictionary, repository)

        assert outcome.classification is RowClassification.INVALID
        assert outcome.identity_key is None
        assert outcome.errors[0].message == MISSING_IDENTITY_MESSAGE

    def test_dictionary_without_identity_column(
        self,
        engine: ReconciliationEngine,
        repository: InMemoryPersonRecordRepository,
    ) -> None:
        dictionary = ColumnDictionary.from_columns(build_columns()[1:])

        outcome = engine.reconcile_row(1, {"nombre": "Ana"}, dictionary, repository)

        assert outcome.classification is RowClassification.INVALID
        assert outcome.errors[-1].message == NO_IDENTITY_COLUMN_MESSAGE

    def test_stored_native_values_compare_normalized(
        self,
        engine: ReconciliationEngine,
    ) -> None:
        dictionary = ColumnDictionary.from_columns(
            [
                ColumnDefinition(name="rut", type=ColumnType.IDENTITY, required=True),
                ColumnDefinition(name="edad", type=ColumnType.NUMBER, position=1),
                ColumnDefinition(name="activo", type=ColumnType.BOOLEAN, position=2),
            ]
        )
        repository = InMemoryPersonRecordRepository(
            [PersonRecord(identity_key="11111111-1", fields={"rut": "11111111-1", "edad": 42.0, "activo": True})]
        )

        outcome = engine.reconcile_row(
            1,
            {"rut": "11111111-1", "edad": "42", "activo": "sí"},
            dictionary,
            repository,
        )

        assert outcome.classification is RowClassification.UNCHANGED

    def test_stored_flag_differs_from_number_one(
        self,
        engine: ReconciliationEngine,
    ) -> None:
        dictionary = ColumnDictionary.from_columns(
            [
                ColumnDefinition(name="rut", type=ColumnType.IDENTITY, required=True),
                ColumnDefinition(name="hijos", type=ColumnType.NUMBER, position=1),
            ]
        )
        repository = InMemoryPersonRecordRepository(
            [PersonRecord(identity_key="11111111-1", fields={"rut": "11111111-1", "hijos": True})]
        )

        outcome = engine.reconcile_row(1, {"rut": "11111111-1", "hijos": "1"}, dictionary, repository)

        assert outcome.classification is RowClassification.UPDATED
        assert outcome.field_diffs == {"hijos": FieldDiff(old=True, new=1)}

    def test_new_column_without_stored_value_is_a_diff(
        self,
        engine: ReconciliationEngine,
        dictionary: ColumnDictionary,
    ) -> None:
        repository = InMemoryPersonRecordRepository(
            [PersonRecord(identity_key="11111111-1", fields={"rut": "11111111-1", "nombre": "Ana"})]
        )

        outcome = engine.reconcile_row(
            1,
            {"rut": "11111111-1", "nombre": "Ana", "email": "ana@x.cl"},
            dictionary,
            repository,
        )

        assert outcome.classification is RowClassification.UPDATED
        assert outcome.field_diffs == {"email": FieldDiff(old=None, new="ana@x.cl")}


# ---------------------------------------------------------------------------
# Sequencing
# ---------------------------------------------------------------------------


class TestSequencing:
    def test_start_row_offsets_numbering(
        self,
        engine: ReconciliationEngine,
        dictionary: ColumnDictionary,
        repository: InMemoryPersonRecordRepository,
    ) -> None:
        rows = [{"rut": "11111111-1", "nombre": "Ana"}] * 2
        outcomes = list(engine.reconcile(rows, dictionary, repository, start_row=10))
        assert [outcome.row_number for outcome in outcomes] == [10, 11]

    def test_source_row_numbers_replace_positions(
        self,
        engine: ReconciliationEngine,
        dictionary: ColumnDictionary,
        repository: InMemoryPersonRecordRepository,
    ) -> None:
        rows = [
            {"rut": "11111111-1", "nombre": "Ana", "email": "ana@x.cl", "comuna": "Santiago"},
            {"rut": "", "nombre": "Nadie"},
        ]
        outcomes = list(engine.reconcile(rows, dictionary, repository, row_numbers=[2, 7]))
        assert [(outcome.row_number, outcome.classification) for outcome in outcomes] == [
            (2, RowClassification.UNCHANGED),
            (7, RowClassification.INVALID),
        ]

    def test_commits_between_rows_are_seen_by_later_duplicates(
        self,
        engine: ReconciliationEngine,
        dictionary: ColumnDictionary,
        record_repository: InMemoryPersonRecordRepository,
    ) -> None:
        rows = [
            {"rut": "12345678-5", "nombre": "Pedro"},
            {"rut": "12.345.678-5", "nombre": "Pedro"},
            {"rut": "12345678-5", "nombre": "Pedro Pablo"},
        ]

        classifications = []
        for outcome in engine.reconcile(rows, dictionary, record_repository):
            classifications.append(outcome.classification)
            if outcome.requires_commit:
                record_repository.upsert(merged_record(outcome, "tester"))

        assert classifications == [
            RowClassification.NEW,
            RowClassification.UNCHANGED,
            RowClassification.UPDATED,
        ]
        assert record_repository.find_by_identity("12345678-5").fields["nombre"] == "Pedro Pablo"

    def test_reconciliation_is_idempotent_without_commits(
        self,
        engine: ReconciliationEngine,
        dictionary: ColumnDictionary,
        repository: InMemoryPersonRecordRepository,
    ) -> None:
        rows = [
            {"rut": "12345678-5", "nombre": "Pedro"},
            {"rut": "11111111-1", "nombre": "Ana B."},
            {"rut": "bad", "nombre": "X"},
        ]

        first = [outcome.to_payload() for outcome in engine.reconcile(rows, dictionary, repository)]
        second = [outcome.to_payload() for outcome in engine.reconcile(rows, dictionary, repository)]

        assert first == second

    def test_rows_are_independent(
        self,
        engine: ReconciliationEngine,
        dictionary: ColumnDictionary,
        repository: InMemoryPersonRecordRepository,
    ) -> None:
        good = {"rut": "12345678-5", "nombre": "Pedro"}
        alone = engine.reconcile_row(2, good, dictionary, repository)
        together = list(engine.reconcile([{"rut": "nope"}, good], dictionary, repository))

        assert together[1] == alone

    def test_lookup_errors_propagate(
        self,
        engine: ReconciliationEngine,
        dictionary: ColumnDictionary,
    ) -> None:
        class UnreachableRepository(InMemoryPersonRecordRepository):
            def find_by_identity(self, identity_key: str) -> PersonRecord | None:
                raise RepositoryUnavailableError("down")

        outcomes = engine.reconcile(
            [{"rut": "12345678-5", "nombre": "Pedro"}],
            dictionary,
            UnreachableRepository(),
        )
        with pytest.raises(RepositoryUnavailableError):
            list(outcomes)


# ---------------------------------------------------------------------------
# merged_record
# ---------------------------------------------------------------------------


class TestMergedRecord:
    def test_keeps_fields_outside_the_dictionary(
        self,
        engine: ReconciliationEngine,
        dictionary: ColumnDictionary,
    ) -> None:
        legacy = replace(ANA, fields={**ANA.fields, "sector": "Norte"})
        repository = InMemoryPersonRecordRepository([legacy])
        outcome = engine.reconcile_row(
            1,
            {"rut": "11111111-1", "nombre": "Ana María", "email": "ana@x.cl", "comuna": "Santiago"},
            dictionary,
            repository,
        )

        record = merged_record(outcome, "admin")

        assert record.fields["sector"] == "Norte"
        assert record.fields["nombre"] == "Ana María"
        assert record.updated_by == "admin"

    def test_requires_identity_key(self, engine: ReconciliationEngine, dictionary: ColumnDictionary) -> None:
        outcome = engine.reconcile_row(3, {"rut": "bad"}, dictionary, InMemoryPersonRecordRepository())
        with pytest.raises(ValueError, match="Row 3"):
            merged_record(outcome, "admin")
