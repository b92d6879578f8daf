"""Bounded handoff queue between the scheduler and the transfer worker.

This module provides:
- TaskQueue: Thread-safe FIFO with a fixed capacity (1 by default)

With a capacity of one, the scheduler blocks on put() while a task is
already waiting, so at most one transfer runs and at most one more is
pending. A slow transfer therefore slows down dispatch without holding up
the next scan.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque

from scpsync.sync.types import TransferTask

logger = logging.getLogger(__name__)


class TaskQueue:
    """Thread-safe bounded FIFO of transfer tasks.

    Attributes:
        maxsize: Maximum number of waiting tasks.
    """

    def __init__(self, maxsize: int = 1) -> None:
        """Initialize the queue.

        Args:
            maxsize: Capacity, must be at least 1.
        """
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._maxsize = maxsize
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)
        self._tasks: deque[TransferTask] = deque()
        self._closed = False

    @property
    def maxsize(self) -> int:
        return self._maxsize

    def put(self, task: TransferTask, timeout: float | None = None) -> bool:
        """Add a task, blocking while the queue is full.

        Args:
            task: The task to add.
            timeout: Maximum seconds to wait (None = wait forever).

        Returns:
            True if the task was queued, False if the timeout expired.

        Raises:
            RuntimeError: If the queue is closed.
        """
        with self._not_full:
            deadline = None if timeout is None else time.monotonic() + timeout

            while len(self._tasks) >= self._maxsize and not self._closed:
                if deadline is None:
                    self._not_full.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._not_full.wait(timeout=remaining)

            if self._closed:
                raise RuntimeError("Queue is closed")

            self._tasks.append(task)
            self._not_empty.notify()
            logger.debug("Queued %r", task)
            return True

    def get(self, timeout: float | None = None) -> TransferTask | None:
        """Take the oldest task, blocking while the queue is empty.

        Args:
            timeout: Maximum seconds to wait (None = wait forever).

        Returns:
            The task, or None if the timeout expired.

        Raises:
            RuntimeError: If the queue is closed and empty.
        """
        with self._not_empty:
            deadline = None if timeout is None else time.monotonic() + timeout

            while not self._tasks and not self._closed:
                if deadline is None:
                    self._not_empty.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._not_empty.wait(timeout=remaining)

            if not self._tasks:
                raise RuntimeError("Queue is closed")

            task = self._tasks.popleft()
            self._not_full.notify()
            return task

    def close(self) -> None:
        """Close the queue and wake up every waiting thread."""
        with self._lock:
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()
            logger.debug("Task queue closed")

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)
