"""Tests for worker classes and the transfer dispatcher."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from scpsync.core.types import EntryKind, TransferStatus
from scpsync.sync.state import StateTable
from scpsync.sync.types import TransferTask
from scpsync.sync.workers import (
    BaseWorker,
    DispatcherState,
    TransferDispatcher,
    TransferWorker,
    WorkerResult,
    WorkerState,
)


def make_task(path: str) -> TransferTask:
    return TransferTask(path=path, source=Path("/src") / path, destination=f"host:/dst/{path}")


def schedule(table: StateTable, path: str) -> TransferTask:
    """Register a file and move it to TRANSFERRING the way the scheduler does."""
    table.add_new_file(path, 1)
    assert table.try_schedule(path, threshold=0)
    return make_task(path)


class ConcreteWorker(BaseWorker):
    """Concrete worker implementation for testing."""

    def __init__(self, work_result: object = True, raise_error: bool = False) -> None:
        super().__init__()
        self._work_result = work_result
        self._raise_error = raise_error
        self.work_called = False

    @property
    def worker_type(self) -> str:
        return "test"

    def _do_work(self, task: TransferTask) -> object:
        self.work_called = True
        if self._raise_error:
            raise ValueError("Test error")
        return self._work_result


class TestWorkerResult:
    """Tests for WorkerResult dataclass."""

    def test_create_success_result(self) -> None:
        result = WorkerResult(success=True, path="a", result="test_value")
        assert result.success is True
        assert result.path == "a"
        assert result.result == "test_value"
        assert result.error is None

    def test_create_failure_result(self) -> None:
        result = WorkerResult(success=False, error="test error")
        assert result.success is False
        assert result.error == "test error"


class TestBaseWorker:
    """Tests for BaseWorker abstract class."""

    def test_initial_state(self) -> None:
        worker = ConcreteWorker()
        assert worker.state == WorkerState.IDLE
        assert worker.last_result is None

    def test_execute_success(self) -> None:
        worker = ConcreteWorker()

        assert worker.execute(make_task("a")) is True
        assert worker.work_called is True
        assert worker.state == WorkerState.COMPLETED
        assert worker.last_result.success is True
        assert worker.last_result.path == "a"
        assert worker.last_result.elapsed_time >= 0

    def test_falsy_result_is_failure(self) -> None:
        worker = ConcreteWorker(work_result=False)

        assert worker.execute(make_task("a")) is False
        assert worker.state == WorkerState.FAILED
        assert worker.last_result.error == "copy failed"

    def test_exception_is_failure(self) -> None:
        """Errors from _do_work should be caught and reported."""
        worker = ConcreteWorker(raise_error=True)

        assert worker.execute(make_task("a")) is False
        assert worker.state == WorkerState.FAILED
        assert worker.last_result.error == "Test error"

    def test_reusable(self) -> None:
        """A worker can run several tasks one after the other."""
        worker = ConcreteWorker()
        assert worker.execute(make_task("a"))
        assert worker.execute(make_task("b"))
        assert worker.last_result.path == "b"


class TestTransferWorker:
    """Tests for TransferWorker."""

    def test_worker_type(self, transport: Any) -> None:
        assert TransferWorker(transport).worker_type == "transfer"

    def test_calls_transport(self, transport: Any) -> None:
        task = make_task("a.txt")

        assert TransferWorker(transport).execute(task) is True
        assert transport.calls == [(task.source, task.destination)]

    def test_transport_failure(self, transport: Any) -> None:
        transport.result = False
        assert TransferWorker(transport).execute(make_task("a.txt")) is False


class TestDispatcherProcess:
    """Tests for synchronous processing and reconciliation."""

    def test_marks_complete(self, table: StateTable, transport: Any) -> None:
        dispatcher = TransferDispatcher(table, transport)
        task = schedule(table, "a.txt")

        assert dispatcher.process(task) is True
        assert table.get_status("a.txt") == TransferStatus.COMPLETE
        assert dispatcher.completed_count == 1

    def test_failure_still_marked_complete(self, table: StateTable, transport: Any) -> None:
        """A failed copy is logged and reconciled like a successful one."""
        transport.result = False
        dispatcher = TransferDispatcher(table, transport)
        task = schedule(table, "a.txt")

        assert dispatcher.process(task) is False
        assert table.get_status("a.txt") == TransferStatus.COMPLETE
        assert dispatcher.failed_count == 1

    def test_failure_logged_at_debug(
        self, table: StateTable, transport: Any, caplog: pytest.LogCaptureFixture
    ) -> None:
        transport.result = False
        dispatcher = TransferDispatcher(table, transport)

        with caplog.at_level(logging.DEBUG, logger="scpsync"):
            dispatcher.process(schedule(table, "a.txt"))

        failures = [r for r in caplog.records if "Transfer failed" in r.getMessage()]
        assert len(failures) == 1
        assert failures[0].levelno == logging.DEBUG
        assert "copy failed" in failures[0].getMessage()

    def test_reset_during_transfer_stays_idle(self, table: StateTable, transport: Any) -> None:
        """A file that grows while being sent is left IDLE to be sent again."""
        task = schedule(table, "a.txt")
        transport.on_copy = lambda source, destination: table.record_size("a.txt", 500)
        dispatcher = TransferDispatcher(table, transport)

        dispatcher.process(task)

        entry = table.get("a.txt")
        assert entry.status == TransferStatus.IDLE
        assert entry.size == 500
        assert entry.stability_count == 0

    def test_transport_exception_counts_as_failure(self, table: StateTable, transport: Any) -> None:
        def boom(source: Path, destination: str) -> None:
            raise OSError("connection reset")

        transport.on_copy = boom
        dispatcher = TransferDispatcher(table, transport)
        task = schedule(table, "a.txt")

        assert dispatcher.process(task) is False
        assert table.get_status("a.txt") == TransferStatus.COMPLETE


class TestDispatcherThread:
    """Tests for the worker thread."""

    @pytest.fixture
    def dispatcher(self, table: StateTable, transport: Any) -> Iterator[TransferDispatcher]:
        d = TransferDispatcher(table, transport)
        yield d
        d.stop(timeout=2)

    def test_submit_requires_start(self, dispatcher: TransferDispatcher) -> None:
        assert dispatcher.state == DispatcherState.STOPPED
        assert dispatcher.submit(make_task("a")) is False

    def test_start_stop(self, dispatcher: TransferDispatcher) -> None:
        dispatcher.start()
        assert dispatcher.state == DispatcherState.RUNNING

        dispatcher.stop(timeout=2)
        assert dispatcher.state == DispatcherState.STOPPED
        assert dispatcher.queue.is_closed

    def test_transfers_submitted_tasks(
        self, dispatcher: TransferDispatcher, table: StateTable, transport: Any
    ) -> None:
        dispatcher.start()
        tasks = [schedule(table, name) for name in ("a", "b", "c")]

        for task in tasks:
            assert dispatcher.submit(task, timeout=5)
        assert dispatcher.wait_idle(timeout=5)

        assert [source.name for source in transport.sources] == ["a", "b", "c"]
        assert all(table.get_status(task.path) == TransferStatus.COMPLETE for task in tasks)
        assert dispatcher.completed_count == 3

    def test_one_transfer_at_a_time(
        self,
        dispatcher: TransferDispatcher,
        table: StateTable,
        transport: Any,
        wait_for: Callable[..., bool],
    ) -> None:
        """Only one copy may run at once and only one more may wait."""
        transport.gate = threading.Event()
        dispatcher.start()
        tasks = [schedule(table, name) for name in ("a", "b", "c")]

        assert dispatcher.submit(tasks[0], timeout=1)
        assert wait_for(lambda: len(transport.calls) == 1)
        assert dispatcher.submit(tasks[1], timeout=1)
        # The single slot is taken: the third handoff blocks
        assert dispatcher.submit(tasks[2], timeout=0.1) is False

        transport.gate.set()
        assert dispatcher.submit(tasks[2], timeout=5)
        assert dispatcher.wait_idle(timeout=5)
        assert transport.max_concurrent == 1
        assert len(transport.calls) == 3

    def test_worker_survives_errors(
        self, dispatcher: TransferDispatcher, table: StateTable, transport: Any
    ) -> None:
        def fail_first(source: Path, destination: str) -> None:
            if source.name == "a":
                raise RuntimeError("boom")

        transport.on_copy = fail_first
        dispatcher.start()
        for name in ("a", "b"):
            dispatcher.submit(schedule(table, name), timeout=5)

        assert dispatcher.wait_idle(timeout=5)
        assert dispatcher.failed_count == 1
        assert dispatcher.completed_count == 1

    def test_wait_idle_times_out(
        self,
        dispatcher: TransferDispatcher,
        table: StateTable,
        transport: Any,
        wait_for: Callable[..., bool],
    ) -> None:
        transport.gate = threading.Event()
        dispatcher.start()
        dispatcher.submit(schedule(table, "a"), timeout=1)

        assert dispatcher.wait_idle(timeout=0.1) is False
        transport.gate.set()
        assert dispatcher.wait_idle(timeout=5) is True

    def test_directory_entry_reconciled(
        self, dispatcher: TransferDispatcher, table: StateTable
    ) -> None:
        table.add("sub", EntryKind.DIRECTORY, 0)
        table.try_schedule("sub", threshold=10)
        dispatcher.start()

        dispatcher.submit(make_task("sub"), timeout=5)
        assert dispatcher.wait_idle(timeout=5)
        assert table.get_status("sub") == TransferStatus.COMPLETE
