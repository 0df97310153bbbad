from __future__ import annotations

import logging
import threading
import uuid

import pytest

from app.config import ImportSettings
from app.domain.column_dictionary import ColumnDictionary
from app.domain.import_job import ImportJobStatus
from app.repositories.history_repository import InMemoryHistoryStore
from app.repositories.import_job_store import InMemoryImportJobStore
from app.repositories.person_record_repository import InMemoryPersonRecordRepository
from app.services.import_job_manager import ImportJobManager
from app.services.import_worker_pool import ImportJobMessage, ImportWorkerPool, WorkerPoolClosedError


def message_for(dictionary: ColumnDictionary, job_id: uuid.UUID | None = None) -> ImportJobMessage:
    return ImportJobMessage(
        job_id=job_id or uuid.uuid4(),
        rows=({"rut": "12345678-5", "nombre": "Pedro"},),
        dictionary=dictionary,
        actor_id="admin",
    )


@pytest.fixture()
def handled() -> list[uuid.UUID]:
    return []


@pytest.fixture()
def pool(handled: list[uuid.UUID]):
    lock = threading.Lock()

    def handler(message: ImportJobMessage) -> None:
        with lock:
            handled.append(message.job_id)

    worker_pool = ImportWorkerPool(worker_count=2, handler=handler)
    yield worker_pool
    worker_pool.shutdown(wait=True)


class TestImportWorkerPool:
    def test_dispatch_requires_started_pool(self, pool: ImportWorkerPool, dictionary: ColumnDictionary) -> None:
        assert not pool.is_running
        with pytest.raises(WorkerPoolClosedError):
            pool.dispatch(message_for(dictionary))

    def test_runs_every_dispatched_job(
        self,
        pool: ImportWorkerPool,
        handled: list[uuid.UUID],
        dictionary: ColumnDictionary,
    ) -> None:
        pool.start()
        messages = [message_for(dictionary) for _ in range(5)]
        for message in messages:
            pool.dispatch(message)

        assert pool.wait_until_idle(timeout=5)
        assert sorted(handled) == sorted(message.job_id for message in messages)

    def test_start_is_idempotent(self, pool: ImportWorkerPool) -> None:
        pool.start()
        pool.start()
        assert pool.is_running

    def test_shutdown_stops_accepting_jobs(self, pool: ImportWorkerPool, dictionary: ColumnDictionary) -> None:
        pool.start()
        pool.shutdown(wait=True)

        assert not pool.is_running
        with pytest.raises(WorkerPoolClosedError):
            pool.dispatch(message_for(dictionary))

    def test_worker_count_has_a_floor(self) -> None:
        assert ImportWorkerPool(worker_count=0, handler=lambda message: None).worker_count == 1

    def test_same_job_cannot_be_dispatched_twice_while_running(self, dictionary: ColumnDictionary) -> None:
        release = threading.Event()
        started = threading.Event()

        def blocking_handler(message: ImportJobMessage) -> None:
            started.set()
            release.wait(timeout=5)

        worker_pool = ImportWorkerPool(worker_count=1, handler=blocking_handler)
        worker_pool.start()
        try:
            message = message_for(dictionary)
            worker_pool.dispatch(message)
            assert started.wait(timeout=5)
            with pytest.raises(WorkerPoolClosedError, match="already dispatched"):
                worker_pool.dispatch(message)
        finally:
            release.set()
            worker_pool.shutdown(wait=True)

    def test_handler_crash_is_logged_and_pool_keeps_working(
        self,
        dictionary: ColumnDictionary,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        handled: list[uuid.UUID] = []

        def handler(message: ImportJobMessage) -> None:
            if not handled:
                handled.append(message.job_id)
                raise RuntimeError("boom")
            handled.append(message.job_id)

        worker_pool = ImportWorkerPool(worker_count=1, handler=handler)
        worker_pool.start()
        try:
            with caplog.at_level(logging.ERROR, logger="app.services.import_worker_pool"):
                worker_pool.dispatch(message_for(dictionary))
                assert worker_pool.wait_until_idle(timeout=5)
                worker_pool.dispatch(message_for(dictionary))
                assert worker_pool.wait_until_idle(timeout=5)
        finally:
            worker_pool.shutdown(wait=True)

        assert len(handled) == 2
        assert any("Import worker crashed" in record.getMessage() for record in caplog.records)


def test_concurrent_jobs_complete_through_the_pool(dictionary: ColumnDictionary) -> None:
    job_store = InMemoryImportJobStore()
    records = InMemoryPersonRecordRepository()
    history = InMemoryHistoryStore()
    manager = ImportJobManager(
        job_store=job_store,
        record_repository=records,
        history_recorder=history,
        settings=ImportSettings(worker_count=2, progress_flush_interval=1, max_rows=100),
    )
    worker_pool = ImportWorkerPool(worker_count=2, handler=manager.run_job)
    manager.bind_executor(worker_pool)
    worker_pool.start()
    try:
        first = manager.submit(
            [{"rut": "12345678-5", "nombre": "Pedro"}, {"rut": "11111111-1", "nombre": "Ana"}],
            dictionary,
            "admin",
        )
        second = manager.submit(
            [{"rut": "1111111-4", "nombre": "Luis"}, {"rut": "12345670-K", "nombre": "Rosa"}],
            dictionary,
            "operador",
        )
        assert worker_pool.wait_until_idle(timeout=10)
    finally:
        worker_pool.shutdown(wait=True)

    for ticket in (first, second):
        job = manager.get_status(ticket.job_id)
        assert job.status is ImportJobStatus.COMPLETED
        assert job.summary.new == 2
    assert len(records) == 4
