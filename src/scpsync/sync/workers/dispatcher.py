"""Single-threaded transfer dispatcher.

This module provides:
- DispatcherState: Lifecycle of the dispatcher
- TransferDispatcher: Owns the task queue and the one worker thread

Transfers are strictly serialized: one thread takes tasks from a
capacity-1 TaskQueue and runs them one after the other. After each transfer
the entry is marked COMPLETE unless the scanner put it back to IDLE while
the copy was running, in which case it stays IDLE and is sent again later.
A failed copy is logged and still reconciled the same way; there is no
retry.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from scpsync.sync.queue import TaskQueue
from scpsync.sync.workers.transfer_worker import TransferWorker

if TYPE_CHECKING:
    from scpsync.sync.state import StateTable
    from scpsync.sync.transport import Transport
    from scpsync.sync.types import TransferTask

logger = logging.getLogger(__name__)


class DispatcherState(Enum):
    """State of the dispatcher."""

    STOPPED = auto()
    RUNNING = auto()
    STOPPING = auto()


class TransferDispatcher:
    """Feeds transfer tasks to a single worker thread.

    Usage:
        dispatcher = TransferDispatcher(table, transport)
        dispatcher.start()
        dispatcher.submit(task)  # blocks while another task is waiting
        dispatcher.stop()
    """

    def __init__(
        self,
        table: StateTable,
        transport: Transport,
        queue: TaskQueue | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            table: Shared state table, reconciled after each transfer.
            transport: Copy mechanism used by the worker.
            queue: Handoff queue (defaults to a capacity-1 TaskQueue).
        """
        self._table = table
        self._worker = TransferWorker(transport)
        self._queue = queue or TaskQueue(maxsize=1)

        self._dispatcher_state = DispatcherState.STOPPED
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._thread: threading.Thread | None = None
        # Submitted tasks not yet finished (queued or running)
        self._pending = 0

        # Statistics
        self._completed_count = 0
        self._failed_count = 0

    @property
    def state(self) -> DispatcherState:
        return self._dispatcher_state

    @property
    def queue(self) -> TaskQueue:
        return self._queue

    @property
    def completed_count(self) -> int:
        """Get number of transfers that succeeded."""
        return self._completed_count

    @property
    def failed_count(self) -> int:
        """Get number of transfers that failed."""
        return self._failed_count

    def start(self) -> None:
        """Start the worker thread."""
        with self._lock:
            if self._dispatcher_state != DispatcherState.STOPPED:
                logger.warning("Transfer dispatcher already running")
                return

            self._dispatcher_state = DispatcherState.RUNNING
            self._thread = threading.Thread(
                target=self._worker_loop,
                name="TransferWorker",
                daemon=True,
            )
            self._thread.start()
            logger.debug("Transfer dispatcher started")

    def stop(self, timeout: float = 10.0) -> None:
        """Stop the worker thread.

        A transfer in progress is not interrupted; the thread exits after it.

        Args:
            timeout: Maximum time to wait for the thread to finish.
        """
        with self._lock:
            if self._dispatcher_state == DispatcherState.STOPPED:
                return
            self._dispatcher_state = DispatcherState.STOPPING

        self._queue.close()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

        with self._lock:
            self._dispatcher_state = DispatcherState.STOPPED
            self._thread = None
            self._idle.notify_all()
            logger.debug("Transfer dispatcher stopped")

    def submit(self, task: TransferTask, timeout: float | None = None) -> bool:
        """Hand a task to the worker, blocking while the queue is full.

        Args:
            task: Task to transfer.
            timeout: Maximum seconds to wait for room in the queue.

        Returns:
            True if the task was queued, False on timeout or if stopped.
        """
        if self._dispatcher_state != DispatcherState.RUNNING:
            logger.warning("Cannot submit %r: dispatcher not running", task)
            return False

        with self._lock:
            self._pending += 1
        try:
            queued = self._queue.put(task, timeout=timeout)
        except RuntimeError:
            # Closed by stop() while waiting
            queued = False
        if not queued:
            self._task_finished()
        return queued

    def process(self, task: TransferTask) -> bool:
        """Transfer a task on the calling thread and reconcile its entry.

        Returns:
            True if the copy succeeded.
        """
        success = self._worker.execute(task)
        result = self._worker.last_result
        elapsed = result.elapsed_time if result else 0.0
        if success:
            self._completed_count += 1
            logger.info("Transferred %s -> %s in %.2fs", task.source, task.destination, elapsed)
        else:
            self._failed_count += 1
            logger.debug(
                "Transfer failed after %.2fs: %s -> %s (%s)",
                elapsed,
                task.source,
                task.destination,
                result.error if result else "unknown error",
            )

        # Failed copies are reconciled like successful ones
        if not self._table.complete_unless_idle(task.path):
            logger.debug("%s changed during transfer; left idle", task.path)
        return success

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Wait until no task is queued or running.

        Returns:
            True if the dispatcher became idle before the timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._idle:
            while self._pending > 0 and self._dispatcher_state == DispatcherState.RUNNING:
                if deadline is None:
                    self._idle.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._idle.wait(timeout=remaining)
            return self._pending == 0

    def _task_finished(self) -> None:
        with self._lock:
            self._pending -= 1
            self._idle.notify_all()

    def _worker_loop(self) -> None:
        """Main loop of the worker thread."""
        while self._dispatcher_state == DispatcherState.RUNNING:
            try:
                task = self._queue.get(timeout=1.0)
            except RuntimeError:
                # Queue closed
                break
            if task is None:
                continue

            try:
                self.process(task)
            except Exception:
                logger.exception("Unexpected error transferring %s", task.path)
            finally:
                self._task_finished()
