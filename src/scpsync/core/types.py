"""Shared types for scpsync.

This module defines the enums used by the state table and every component
that reads or mutates it.
"""

from __future__ import annotations

from enum import Enum

# Nominal size recorded for directories. Directories never change size in
# the table, so they never look modified to the scanner.
DIRECTORY_SIZE = 4096


class EntryKind(str, Enum):
    """Kind of filesystem entry tracked by the state table."""

    FILE = "file"
    DIRECTORY = "directory"


class TransferStatus(str, Enum):
    """Sync status of a tracked path.

    IDLE -> TRANSFERRING: selected by the scheduler.
    TRANSFERRING -> COMPLETE: the worker finished and nothing reset the entry.
    any -> IDLE: the scanner saw a new size for a file.
    """

    IDLE = "idle"
    TRANSFERRING = "transferring"
    COMPLETE = "complete"
