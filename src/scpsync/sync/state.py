"""In-memory state table for tracked paths.

This module provides:
- StateTable: Thread-safe mapping from path to transfer metadata

Architecture:
    The table is the single source of truth for sync status. The scanner,
    the scheduler and the transfer worker all run on different threads and
    mutate it concurrently, so every method takes the table lock for the
    duration of one operation and releases it before returning. No lock is
    ever held across a transfer.

    Entries are never removed. Callers that need to walk the table use
    snapshot(), which copies the rows under the lock; new paths inserted by
    a concurrent scan simply do not appear in a snapshot already taken.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from scpsync.core.types import DIRECTORY_SIZE, EntryKind, TransferStatus
from scpsync.sync.types import Entry

logger = logging.getLogger(__name__)


@dataclass
class _Row:
    """Mutable row stored in the table."""

    kind: EntryKind
    size: int
    status: TransferStatus
    stability_count: int = 0

    def freeze(self, path: str) -> Entry:
        return Entry(
            path=path,
            kind=self.kind,
            size=self.size,
            status=self.status,
            stability_count=self.stability_count,
        )


class StateTable:
    """Thread-safe table of tracked paths.

    Unknown paths are treated the way a zero-value row would be: getters
    return None/0 and setters are no-ops that log at debug level.
    """

    def __init__(self) -> None:
        """Initialize an empty table."""
        self._lock = threading.RLock()
        self._rows: dict[str, _Row] = {}

    # === Registration ===

    def add(
        self,
        path: str,
        kind: EntryKind,
        size: int,
        status: TransferStatus = TransferStatus.IDLE,
    ) -> None:
        """Register a path, overwriting any previous metadata.

        The stability counter always starts at zero.

        Raises:
            ValueError: If status is TRANSFERRING.
        """
        if status == TransferStatus.TRANSFERRING:
            raise ValueError(f"cannot register {path} as {status.value}")
        if kind == EntryKind.DIRECTORY:
            size = DIRECTORY_SIZE
        with self._lock:
            self._rows[path] = _Row(kind=kind, size=size, status=status)

    def add_new_file(self, path: str, size: int) -> None:
        """Register a newly discovered file as IDLE."""
        self.add(path, EntryKind.FILE, size)

    def add_directory(self, path: str, status: TransferStatus = TransferStatus.IDLE) -> None:
        """Register a directory with the nominal directory size."""
        self.add(path, EntryKind.DIRECTORY, DIRECTORY_SIZE, status)

    # === Lookups ===

    def exists(self, path: str) -> bool:
        with self._lock:
            return path in self._rows

    def get(self, path: str) -> Entry | None:
        """Get a snapshot of one entry."""
        with self._lock:
            row = self._rows.get(path)
            return row.freeze(path) if row else None

    def get_status(self, path: str) -> TransferStatus | None:
        with self._lock:
            row = self._rows.get(path)
            return row.status if row else None

    def get_size(self, path: str) -> int:
        with self._lock:
            row = self._rows.get(path)
            return row.size if row else 0

    def get_count(self, path: str) -> int:
        with self._lock:
            row = self._rows.get(path)
            return row.stability_count if row else 0

    def is_idle(self, path: str) -> bool:
        with self._lock:
            row = self._rows.get(path)
            return row is not None and row.status == TransferStatus.IDLE

    # === Single-field mutations ===

    def set_status(self, path: str, status: TransferStatus) -> None:
        """Set the status of an entry.

        Raises:
            ValueError: If moving to TRANSFERRING from anything but IDLE.
        """
        with self._lock:
            row = self._rows.get(path)
            if row is None:
                logger.debug("set_status on unknown path %s", path)
                return
            if status == TransferStatus.TRANSFERRING and row.status != TransferStatus.IDLE:
                raise ValueError(
                    f"{path}: cannot move from {row.status.value} to {status.value}"
                )
            row.status = status

    def set_size(self, path: str, size: int) -> None:
        with self._lock:
            row = self._rows.get(path)
            if row is not None:
                row.size = size

    def reset_count(self, path: str) -> None:
        with self._lock:
            row = self._rows.get(path)
            if row is not None:
                row.stability_count = 0

    def increment_count(self, path: str) -> int:
        """Increment the stability counter and return its new value."""
        with self._lock:
            row = self._rows.get(path)
            if row is None:
                return 0
            row.stability_count += 1
            return row.stability_count

    # === Compound operations ===

    def record_size(self, path: str, size: int) -> bool:
        """Record an observed file size.

        If it differs from the stored size the entry goes back to IDLE with
        its stability counter reset, whatever its previous status.

        Returns:
            True if the size changed.
        """
        with self._lock:
            row = self._rows.get(path)
            if row is None or row.size == size:
                return False
            row.size = size
            row.status = TransferStatus.IDLE
            row.stability_count = 0
            return True

    def try_schedule(self, path: str, threshold: int) -> bool:
        """Decide whether an IDLE entry should be transferred now.

        Directories are always eligible. A file is eligible once its
        stability counter has reached threshold; otherwise the counter is
        incremented and the file stays IDLE. Eligible entries have their
        counter reset and move to TRANSFERRING.

        Returns:
            True if the entry was marked TRANSFERRING.
        """
        with self._lock:
            row = self._rows.get(path)
            if row is None or row.status != TransferStatus.IDLE:
                return False
            if row.kind == EntryKind.FILE:
                if row.stability_count < threshold:
                    row.stability_count += 1
                    return False
                row.stability_count = 0
            row.status = TransferStatus.TRANSFERRING
            return True

    def complete_unless_idle(self, path: str) -> bool:
        """Mark an entry COMPLETE after a transfer.

        An entry the scanner reset to IDLE while the transfer was running
        is left IDLE so it gets sent again.

        Returns:
            True if the entry was marked COMPLETE.
        """
        with self._lock:
            row = self._rows.get(path)
            if row is None or row.status == TransferStatus.IDLE:
                return False
            row.status = TransferStatus.COMPLETE
            return True

    # === Iteration ===

    def snapshot(self) -> list[Entry]:
        """Copy every entry under the lock, in insertion order."""
        with self._lock:
            return [row.freeze(path) for path, row in self._rows.items()]

    def counts(self) -> dict[str, int]:
        """Get the number of entries per status."""
        with self._lock:
            stats = {status.value: 0 for status in TransferStatus}
            for row in self._rows.values():
                stats[row.status.value] += 1
            stats["total"] = len(self._rows)
            return stats

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._rows
