"""Shared types and dataclasses for the sync engine.

This module provides:
- SyncError, SourceMissingError: Exception classes
- Entry: Immutable snapshot of one state table row
- TransferTask: A unit of work handed from the scheduler to the worker
- ScanResult: Summary of one scanner pass
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from scpsync.core.types import EntryKind, TransferStatus


class SyncError(Exception):
    """Base exception for sync errors."""


class SourceMissingError(SyncError):
    """The watched source directory does not exist (fatal)."""

    def __init__(self, source: Path) -> None:
        self.source = source
        super().__init__(f"{source} does not exist")


@dataclass(frozen=True)
class Entry:
    """Snapshot of a tracked path.

    Attributes:
        path: Path relative to the source root, POSIX separators ("." is the root).
        kind: File or directory.
        size: Last observed size (DIRECTORY_SIZE for directories).
        status: Current transfer status.
        stability_count: Consecutive idle polls observed with an unchanged size.
    """

    path: str
    kind: EntryKind
    size: int
    status: TransferStatus = TransferStatus.IDLE
    stability_count: int = 0


@dataclass(frozen=True)
class TransferTask:
    """A transfer to perform.

    Attributes:
        path: State table key of the entry being transferred.
        source: Local filesystem path handed to the copy.
        destination: scp destination, e.g. "host:/dir/file".
    """

    path: str
    source: Path
    destination: str

    def __repr__(self) -> str:
        return f"TransferTask({self.source} -> {self.destination})"


@dataclass
class ScanResult:
    """Result of one incremental scan."""

    new_files: list[str] = field(default_factory=list)
    new_directories: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.new_files or self.new_directories or self.modified)
