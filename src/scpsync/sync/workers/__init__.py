"""Workers for transfer operations.

This package provides:
- BaseWorker: Abstract base class with lifecycle state and callbacks
- TransferWorker: Copies one path through the transport
- TransferDispatcher: Owns the single worker thread and the handoff queue

Usage:
    from scpsync.sync.workers import TransferDispatcher

    dispatcher = TransferDispatcher(table, ScpTransport())
    dispatcher.start()
    dispatcher.submit(task)
    dispatcher.stop()
"""

from scpsync.sync.workers.base import (
    BaseWorker,
    WorkerResult,
    WorkerState,
)
from scpsync.sync.workers.dispatcher import DispatcherState, TransferDispatcher
from scpsync.sync.workers.transfer_worker import TransferWorker

__all__ = [
    # Base
    "BaseWorker",
    "WorkerResult",
    "WorkerState",
    # Workers
    "TransferWorker",
    # Dispatcher
    "DispatcherState",
    "TransferDispatcher",
]
