"""Change detection and transfer scheduling.

Architecture:
    ChangeScanner → StateTable → TransferScheduler → TaskQueue → TransferDispatcher

Components:
- **StateTable**: Thread-safe path → status table, the single source of truth
- **ChangeScanner**: Baseline and incremental walks of the source tree
- **TransferScheduler**: Picks ready entries, debouncing files that still grow
- **TaskQueue**: Capacity-1 handoff between the scheduler and the worker
- **TransferDispatcher**: The single worker thread running transfers
- **SyncEngine**: The poll loop tying it all together

All public symbols are re-exported here.
"""

from scpsync.sync.engine import EngineStats, SyncEngine
from scpsync.sync.queue import TaskQueue
from scpsync.sync.scanner import ROOT_KEY, ChangeScanner, relative_key
from scpsync.sync.scheduler import TransferScheduler
from scpsync.sync.state import StateTable
from scpsync.sync.transport import ScpTransport, Transport, remote_join
from scpsync.sync.types import (
    Entry,
    ScanResult,
    SourceMissingError,
    SyncError,
    TransferTask,
)
from scpsync.sync.workers import (
    BaseWorker,
    DispatcherState,
    TransferDispatcher,
    TransferWorker,
    WorkerResult,
    WorkerState,
)

__all__ = [
    # Types and errors
    "Entry",
    "ScanResult",
    "SourceMissingError",
    "SyncError",
    "TransferTask",
    # State
    "StateTable",
    # Scanning and scheduling
    "ROOT_KEY",
    "ChangeScanner",
    "TransferScheduler",
    "relative_key",
    # Transfer
    "ScpTransport",
    "Transport",
    "remote_join",
    "TaskQueue",
    # Workers
    "BaseWorker",
    "DispatcherState",
    "TransferDispatcher",
    "TransferWorker",
    "WorkerResult",
    "WorkerState",
    # Engine
    "EngineStats",
    "SyncEngine",
]
