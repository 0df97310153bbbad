"""
tests/test_person_service.py

Pytest unit tests for PersonService single-record operations.

Coverage
--------
- Create with normalization, duplicate and validation failures
- A create racing another writer never overwrites its record
- Lookup by any RUT spelling
- Partial update, identity immutability
- Delete
- History entries for every mutation, history failures are not fatal
"""

from __future__ import annotations

import pytest

from app.domain.column_dictionary import ColumnDictionary
from app.domain.history import HistoryAction, HistoryEntry
from app.domain.person import PersonRecord
from app.repositories.history_repository import InMemoryHistoryStore
from app.repositories.person_record_repository import InMemoryPersonRecordRepository
from app.services.person_service import (
    DuplicateIdentityError,
    PersonNotFoundError,
    PersonService,
    PersonValidationError,
)
from db.repositories.errors import RepositoryUnavailableError

PEDRO = {"rut": "12.345.678-5", "nombre": "Pedro", "email": "Pedro@X.cl", "comuna": "santiago"}


@pytest.fixture()
def service(
    record_repository: InMemoryPersonRecordRepository,
    history_store: InMemoryHistoryStore,
) -> PersonService:
    return PersonService(record_repository=record_repository, history_recorder=history_store)


class TestCreate:
    def test_creates_normalized_record(
        self,
        service: PersonService,
        dictionary: ColumnDictionary,
        history_store: InMemoryHistoryStore,
    ) -> None:
        created = service.create_person(PEDRO, dictionary, "admin")

        assert created.identity_key == "12345678-5"
        assert created.fields == {
            "rut": "12345678-5",
            "nombre": "Pedro",
            "email": "pedro@x.cl",
            "comuna": "Santiago",
        }
        assert created.updated_by == "admin"
        [entry] = history_store.entries
        assert entry.action is HistoryAction.CREATE
        assert entry.subject_id == "12345678-5"
        assert entry.before_snapshot is None
        assert entry.after_snapshot["fields"]["email"] == "pedro@x.cl"
        assert entry.job_id is None

    def test_duplicate_identity_is_refused(self, service: PersonService, dictionary: ColumnDictionary) -> None:
        service.create_person(PEDRO, dictionary, "admin")
        with pytest.raises(DuplicateIdentityError):
            service.create_person({**PEDRO, "rut": "12345678-5"}, dictionary, "admin")

    def test_concurrent_create_keeps_the_first_record(
        self,
        dictionary: ColumnDictionary,
        history_store: InMemoryHistoryStore,
    ) -> None:
        competitor = PersonRecord(identity_key="12345678-5", fields={"rut": "12345678-5", "nombre": "Otro"})

        class RacingRepository(InMemoryPersonRecordRepository):
            def insert(self, record: PersonRecord) -> PersonRecord | None:
                # Another writer commits the same RUT just before this insert.
                self.upsert(competitor)
                return super().insert(record)

        repository = RacingRepository()
        service = PersonService(record_repository=repository, history_recorder=history_store)

        with pytest.raises(DuplicateIdentityError):
            service.create_person(PEDRO, dictionary, "admin")

        assert repository.find_by_identity("12345678-5").fields["nombre"] == "Otro"
        assert history_store.entries == []

    def test_insert_never_overwrites(self, record_repository: InMemoryPersonRecordRepository) -> None:
        first = PersonRecord(identity_key="12345678-5", fields={"nombre": "Pedro"})

        assert record_repository.insert(first).fields == {"nombre": "Pedro"}
        assert record_repository.insert(PersonRecord(identity_key="12345678-5", fields={"nombre": "Otro"})) is None
        assert record_repository.find_by_identity("12345678-5").fields == {"nombre": "Pedro"}

    def test_validation_errors_are_all_reported(
        self,
        service: PersonService,
        dictionary: ColumnDictionary,
        record_repository: InMemoryPersonRecordRepository,
    ) -> None:
        with pytest.raises(PersonValidationError) as excinfo:
            service.create_person({"rut": "12345678-6", "email": "nope"}, dictionary, "admin")

        columns = [error["column"] for error in excinfo.value.to_dict()["errors"]]
        assert columns == ["rut", "nombre", "email"]
        assert len(record_repository) == 0

    def test_history_failure_does_not_undo_create(
        self,
        record_repository: InMemoryPersonRecordRepository,
        dictionary: ColumnDictionary,
    ) -> None:
        class BrokenHistory(InMemoryHistoryStore):
            def append(self, entry: HistoryEntry) -> None:
                raise RepositoryUnavailableError("down")

        service = PersonService(record_repository=record_repository, history_recorder=BrokenHistory())
        service.create_person(PEDRO, dictionary, "admin")

        assert record_repository.find_by_identity("12345678-5") is not None


class TestReadUpdateDelete:
    @pytest.fixture(autouse=True)
    def _seed(self, service: PersonService, dictionary: ColumnDictionary) -> None:
        service.create_person(PEDRO, dictionary, "admin")

    @pytest.mark.parametrize("identity", ["12345678-5", "12.345.678-5", "123456785"])
    def test_get_accepts_any_spelling(self, service: PersonService, identity: str) -> None:
        assert service.get_person(identity).identity_key == "12345678-5"

    @pytest.mark.parametrize("identity", ["11111111-1", "12345678-6", "abc"])
    def test_get_unknown_or_invalid(self, service: PersonService, identity: str) -> None:
        with pytest.raises(PersonNotFoundError):
            service.get_person(identity)

    def test_list_people(self, service: PersonService, dictionary: ColumnDictionary) -> None:
        service.create_person({"rut": "11111111-1", "nombre": "Ana"}, dictionary, "admin")
        assert [person.identity_key for person in service.list_people()] == ["11111111-1", "12345678-5"]
        assert [person.identity_key for person in service.list_people(limit=1, offset=1)] == ["12345678-5"]

    def test_partial_update_keeps_other_fields(
        self,
        service: PersonService,
        dictionary: ColumnDictionary,
        history_store: InMemoryHistoryStore,
    ) -> None:
        updated = service.update_person("12.345.678-5", {"email": "NUEVO@x.cl"}, dictionary, "operador")

        assert updated.fields["email"] == "nuevo@x.cl"
        assert updated.fields["nombre"] == "Pedro"
        assert updated.updated_by == "operador"
        entry = history_store.entries[-1]
        assert entry.action is HistoryAction.UPDATE
        assert entry.actor_id == "operador"
        assert entry.before_snapshot["fields"]["email"] == "pedro@x.cl"
        assert entry.after_snapshot["fields"]["email"] == "nuevo@x.cl"

    def test_update_validates_merged_values(self, service: PersonService, dictionary: ColumnDictionary) -> None:
        with pytest.raises(PersonValidationError) as excinfo:
            service.update_person("12345678-5", {"comuna": "Lima"}, dictionary, "admin")
        assert excinfo.value.errors[0].column == "comuna"

    def test_identity_cannot_change(self, service: PersonService, dictionary: ColumnDictionary) -> None:
        with pytest.raises(PersonValidationError, match="cannot be changed"):
            service.update_person("12345678-5", {"rut": "11111111-1"}, dictionary, "admin")

    def test_update_missing_person(self, service: PersonService, dictionary: ColumnDictionary) -> None:
        with pytest.raises(PersonNotFoundError):
            service.update_person("11111111-1", {"nombre": "Ana"}, dictionary, "admin")

    def test_delete_records_history(
        self,
        service: PersonService,
        history_store: InMemoryHistoryStore,
    ) -> None:
        service.delete_person("12.345.678-5", "admin")

        with pytest.raises(PersonNotFoundError):
            service.get_person("12345678-5")
        entry = history_store.entries[-1]
        assert entry.action is HistoryAction.DELETE
        assert entry.before_snapshot["identity_key"] == "12345678-5"
        assert entry.after_snapshot is None

    def test_delete_missing_person(self, service: PersonService) -> None:
        with pytest.raises(PersonNotFoundError):
            service.delete_person("11111111-1", "admin")
