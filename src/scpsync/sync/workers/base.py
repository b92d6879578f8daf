"""Worker abstraction for running a single transfer.

This module provides:
- WorkerState: Lifecycle of a worker between transfers
- WorkerResult: Outcome of one transfer attempt
- BaseWorker: Runs one task at a time and records how it went

A worker never touches the state table; the dispatcher reconciles the
entry once execute() returns.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from scpsync.sync.types import TransferTask

logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Where a worker stands after its last call to execute()."""

    IDLE = auto()
    RUNNING = auto()
    COMPLETED = auto()
    FAILED = auto()


@dataclass
class WorkerResult:
    """Outcome of one transfer attempt.

    Attributes:
        success: Whether the copy went through.
        path: Table key of the transferred entry.
        result: Value returned by _do_work.
        error: Why the attempt failed, if it did.
        elapsed_time: Wall clock seconds spent in _do_work.
    """

    success: bool
    path: str = ""
    result: Any = None
    error: str | None = None
    elapsed_time: float = 0.0


class BaseWorker(ABC):
    """Runs transfer tasks one at a time.

    Subclasses provide worker_type and _do_work(). A falsy return value or
    an exception from _do_work counts as a failed transfer; execute() never
    raises.
    """

    def __init__(self) -> None:
        self._worker_state = WorkerState.IDLE
        self._lock = threading.Lock()
        self._last_result: WorkerResult | None = None

    @property
    @abstractmethod
    def worker_type(self) -> str:
        """Short name used in log messages."""
        ...

    @property
    def state(self) -> WorkerState:
        return self._worker_state

    @property
    def last_result(self) -> WorkerResult | None:
        return self._last_result

    def execute(self, task: TransferTask) -> bool:
        """Run one task.

        Returns:
            True if the transfer succeeded. Also False if the worker is
            already busy with another task.
        """
        with self._lock:
            if self._worker_state == WorkerState.RUNNING:
                logger.warning(f"{self.worker_type} worker busy, refusing {task.path}")
                return False
            self._worker_state = WorkerState.RUNNING

        started = time.monotonic()
        try:
            value = self._do_work(task)
        except Exception as e:
            logger.error(f"{self.worker_type} worker failed on {task.path}: {e}")
            result = WorkerResult(success=False, path=task.path, error=str(e))
        else:
            if value:
                result = WorkerResult(success=True, path=task.path, result=value)
            else:
                result = WorkerResult(success=False, path=task.path, result=value, error="copy failed")
        result.elapsed_time = time.monotonic() - started

        with self._lock:
            self._worker_state = WorkerState.COMPLETED if result.success else WorkerState.FAILED
            self._last_result = result
        return result.success

    @abstractmethod
    def _do_work(self, task: TransferTask) -> Any:
        """Copy the task's source to its destination.

        Returns:
            A truthy value on success.
        """
        ...
