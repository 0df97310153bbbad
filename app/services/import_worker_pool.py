"""
app/services/import_worker_pool.py

Bounded background pool that runs import jobs off the request thread.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_for_futures
from dataclasses import dataclass
from typing import Protocol

from app.domain.column_dictionary import ColumnDictionary
from app.domain.person import RawRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportJobMessage:
    """
    Everything a worker needs to run one job; nothing is re-read later.
    """

    job_id: uuid.UUID
    rows: tuple[RawRow, ...]
    dictionary: ColumnDictionary
    actor_id: str
    dry_run: bool = False
    row_numbers: tuple[int, ...] | None = None


class ImportTaskExecutor(Protocol):
    def dispatch(self, message: ImportJobMessage) -> None:
        ...


class WorkerPoolClosedError(RuntimeError):
    """
    Raised when a message is dispatched to a pool that is not running.
    """


class ImportWorkerPool:
    """
    Fixed-size thread pool; each job runs start to finish on one worker.
    """

    def __init__(self, *, worker_count: int, handler: Callable[[ImportJobMessage], None]) -> None:
        self._worker_count = max(1, worker_count)
        self._handler = handler
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._in_flight: dict[uuid.UUID, Future[None]] = {}

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._executor is not None

    def start(self) -> None:
        with self._lock:
            if self._executor is not None:
                return
            self._executor = ThreadPoolExecutor(
                max_workers=self._worker_count,
                thread_name_prefix="import-worker",
            )
        logger.info("Import worker pool started workers=%s", self._worker_count)

    def dispatch(self, message: ImportJobMessage) -> None:
        with self._lock:
            if self._executor is None:
                raise WorkerPoolClosedError("Import worker pool is not running.")
            if message.job_id in self._in_flight:
                raise WorkerPoolClosedError(f"Import job {message.job_id} is already dispatched.")
            future = self._executor.submit(self._run, message)
            self._in_flight[message.job_id] = future
        future.add_done_callback(lambda _: self._forget(message.job_id))

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """
        Block until every dispatched job has finished; False on timeout.
        """

        with self._lock:
            pending = list(self._in_flight.values())
        if not pending:
            return True
        _, not_done = wait_for_futures(pending, timeout=timeout)
        return not not_done

    def shutdown(self, *, wait: bool = True) -> None:
        with self._lock:
            executor = self._executor
            self._executor = None
        if executor is None:
            return
        executor.shutdown(wait=wait)
        logger.info("Import worker pool stopped")

    def _run(self, message: ImportJobMessage) -> None:
        try:
            self._handler(message)
        except Exception:
            logger.exception("Import worker crashed job_id=%s", message.job_id)

    def _forget(self, job_id: uuid.UUID) -> None:
        with self._lock:
            self._in_flight.pop(job_id, None)
