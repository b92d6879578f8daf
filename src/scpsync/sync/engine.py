"""Sync engine driving the poll loop.

This module provides:
- EngineStats: Counters kept by the engine
- SyncEngine: Ties scanner, scheduler and dispatcher into a poll loop

Startup runs the baseline scan and, unless ignore_existing is set, sends the
whole source tree in one recursive copy. Each poll cycle then scans the tree
and starts a scheduler pass on a separate thread, so a slow transfer blocks
dispatch but never the next scan. Only one scheduler pass is outstanding at
a time; while one is still waiting on the worker, later cycles only scan.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

from scpsync.core.config import WatchConfig
from scpsync.core.types import TransferStatus
from scpsync.sync.scanner import ROOT_KEY, ChangeScanner
from scpsync.sync.scheduler import TransferScheduler
from scpsync.sync.state import StateTable
from scpsync.sync.transport import ScpTransport, Transport
from scpsync.sync.types import ScanResult
from scpsync.sync.workers import TransferDispatcher

logger = logging.getLogger(__name__)


@dataclass
class EngineStats:
    """Counters emitted by the engine for observability."""

    cycles: int = 0
    tasks_dispatched: int = 0
    skipped_passes: int = 0


class SyncEngine:
    """Watches the source tree and mirrors changes to the destination.

    Usage:
        engine = SyncEngine(config)
        engine.run()  # blocks until stop() or a fatal error

    Step by step (as the tests do):
        engine.start()
        engine.run_cycle()
        engine.drain()
        engine.stop()
    """

    def __init__(
        self,
        config: WatchConfig,
        table: StateTable | None = None,
        transport: Transport | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Run configuration.
            table: State table (a fresh one by default).
            transport: Copy mechanism (scp by default).
        """
        self._config = config
        self._table = table if table is not None else StateTable()
        self._transport = transport or ScpTransport(
            program=config.scp_program,
            verbose=config.verbose,
        )
        self._scanner = ChangeScanner(config, self._table)
        self._scheduler = TransferScheduler(config, self._table)
        self._dispatcher = TransferDispatcher(self._table, self._transport)

        self._stop_event = threading.Event()
        self._pass_thread: threading.Thread | None = None
        self._stats = EngineStats()

    @property
    def table(self) -> StateTable:
        return self._table

    @property
    def scanner(self) -> ChangeScanner:
        return self._scanner

    @property
    def scheduler(self) -> TransferScheduler:
        return self._scheduler

    @property
    def dispatcher(self) -> TransferDispatcher:
        return self._dispatcher

    @property
    def stats(self) -> EngineStats:
        return self._stats

    def initialize(self) -> None:
        """Record existing content and send it unless ignore_existing is set.

        Raises:
            SourceMissingError: If the source root does not exist.
        """
        self._scanner.baseline()
        if self._config.ignore_existing:
            logger.info("Ignoring existing content of %s", self._config.source)
            return

        # Runs before the worker thread exists, on the calling thread
        task = self._scheduler.make_task(ROOT_KEY)
        logger.info("Initial transfer: %s -> %s", task.source, task.destination)
        self._dispatcher.process(task)
        self._stats.tasks_dispatched += 1

    def start(self) -> None:
        """Initialize and start the worker thread."""
        self._stop_event.clear()
        self.initialize()
        self._dispatcher.start()

    def run_cycle(self) -> ScanResult:
        """Run one poll cycle: scan, then start a scheduler pass.

        Returns:
            What the scan found.

        Raises:
            SourceMissingError: If the source root does not exist.
        """
        result = self._scanner.scan()
        self._stats.cycles += 1

        if self._pass_thread is not None and self._pass_thread.is_alive():
            logger.debug("Previous dispatch still waiting on the worker; skipping pass")
            self._stats.skipped_passes += 1
            return result

        self._pass_thread = threading.Thread(
            target=self._dispatch_pass,
            name=f"SchedulerPass-{self._stats.cycles}",
            daemon=True,
        )
        self._pass_thread.start()
        return result

    def run(self) -> None:
        """Run the poll loop until stop() is called.

        Raises:
            SourceMissingError: If the source root disappears.
        """
        logger.info(
            "Watching %s -> %s every %ss (count=%d)",
            self._config.source,
            self._config.destination,
            self._config.interval,
            self._config.count,
        )
        self.start()
        try:
            while not self._stop_event.is_set():
                started_at = time.monotonic()
                self.run_cycle()
                self._sleep_until_next_cycle(started_at)
        finally:
            self.stop()
            logger.info(
                "Engine stopped after %s cycles, %s transfers (%s failed)",
                self._stats.cycles,
                self._dispatcher.completed_count + self._dispatcher.failed_count,
                self._dispatcher.failed_count,
            )
            logger.debug("Entries by status: %s", self._table.counts())

    def stop(self, timeout: float = 10.0) -> None:
        """Stop the loop and the worker thread."""
        self._stop_event.set()
        self._dispatcher.stop(timeout=timeout)
        if self._pass_thread is not None:
            self._pass_thread.join(timeout=timeout)
            self._pass_thread = None

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for the current scheduler pass and its transfers to finish.

        Returns:
            True if everything finished before the timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        if self._pass_thread is not None:
            self._pass_thread.join(timeout=timeout)
            if self._pass_thread.is_alive():
                return False
        remaining = None if deadline is None else max(deadline - time.monotonic(), 0.0)
        return self._dispatcher.wait_idle(timeout=remaining)

    def _dispatch_pass(self) -> None:
        """Feed every ready entry to the worker, one at a time."""
        try:
            for task in self._scheduler.iter_tasks():
                if self._stop_event.is_set() or not self._dispatcher.submit(task):
                    # Never handed to the worker: make it eligible again
                    self._table.set_status(task.path, TransferStatus.IDLE)
                    logger.debug("Dispatch stopped; %s left idle", task.path)
                    break
                self._stats.tasks_dispatched += 1
        except Exception:
            logger.exception("Unexpected error in scheduler pass")

    def _sleep_until_next_cycle(self, started_at: float) -> None:
        elapsed = time.monotonic() - started_at
        remaining = max(self._config.interval - elapsed, 0.0)
        if remaining > 0:
            self._stop_event.wait(remaining)
