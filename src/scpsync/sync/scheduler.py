"""Transfer scheduler applying the debounce policy.

This module provides:
- TransferScheduler: Selects IDLE entries that are ready to be sent

A directory is sent as soon as it is seen IDLE. A file is sent only after
its size has stayed the same for `count` consecutive polls, so large files
that are still being written are not copied half way. With count == 0 a file
is sent on its first idle poll.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from scpsync.core.types import TransferStatus
from scpsync.sync.scanner import ROOT_KEY
from scpsync.sync.transport import remote_join
from scpsync.sync.types import TransferTask

if TYPE_CHECKING:
    from scpsync.core.config import WatchConfig
    from scpsync.sync.state import StateTable

logger = logging.getLogger(__name__)


class TransferScheduler:
    """Walks a snapshot of the state table and yields transfer tasks."""

    def __init__(self, config: WatchConfig, table: StateTable) -> None:
        self._config = config
        self._table = table
        self._threshold = config.count

    def iter_tasks(self) -> Iterator[TransferTask]:
        """Yield a task for every entry that is ready, marking it TRANSFERRING.

        Tasks are produced lazily: the decision for an entry is only taken
        once the consumer has accepted the previous task.
        """
        for entry in self._table.snapshot():
            if entry.status != TransferStatus.IDLE:
                continue
            if not self._table.try_schedule(entry.path, self._threshold):
                logger.debug(
                    "Waiting for %s to settle (%d/%d)",
                    entry.path,
                    self._table.get_count(entry.path),
                    self._threshold,
                )
                continue
            yield self.make_task(entry.path)

    def make_task(self, path: str) -> TransferTask:
        """Build the task copying a table entry to its remote location."""
        if path == ROOT_KEY:
            return TransferTask(
                path=path,
                source=self._config.source,
                destination=self._config.destination,
            )
        return TransferTask(
            path=path,
            source=self._config.source / path,
            destination=remote_join(self._config.destination, path),
        )
