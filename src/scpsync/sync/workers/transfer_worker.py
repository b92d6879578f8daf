"""Worker that copies one path to the remote destination."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from scpsync.sync.workers.base import BaseWorker

if TYPE_CHECKING:
    from scpsync.sync.transport import Transport
    from scpsync.sync.types import TransferTask

logger = logging.getLogger(__name__)


class TransferWorker(BaseWorker):
    """Runs the transport for a single TransferTask."""

    def __init__(self, transport: Transport) -> None:
        super().__init__()
        self._transport = transport

    @property
    def worker_type(self) -> str:
        return "transfer"

    def _do_work(self, task: TransferTask) -> bool:
        logger.debug("Transfer: %s -> %s", task.source, task.destination)
        return self._transport.copy(task.source, task.destination)
