"""Change scanner for detecting new and modified local entries.

This module provides:
- ChangeScanner: Walks the source tree and updates the StateTable

Architecture:
    ChangeScanner is the only writer of new rows. It runs two kinds of
    pass over the source tree:

    1. baseline(): once at startup. Every path that already exists is
       registered as COMPLETE so it is not sent again.
    2. scan(): once per poll cycle. Unknown files are registered IDLE,
       unknown directories are registered IDLE together with their whole
       subtree as COMPLETE (one recursive copy of the directory carries the
       children), and files whose size changed go back to IDLE.

    Flow: ChangeScanner → StateTable → TransferScheduler → TransferDispatcher
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from scpsync.core.types import EntryKind, TransferStatus
from scpsync.sync.types import ScanResult, SourceMissingError

if TYPE_CHECKING:
    from scpsync.core.config import WatchConfig
    from scpsync.sync.state import StateTable

logger = logging.getLogger(__name__)

ROOT_KEY = "."


def relative_key(path: Path, root: Path) -> str:
    """Build the state table key for a path below root."""
    relative = path.relative_to(root).as_posix()
    return relative or ROOT_KEY


class ChangeScanner:
    """Walks the source tree and records what it finds in the state table.

    Usage:
        table = StateTable()
        scanner = ChangeScanner(config, table)
        scanner.baseline()     # at startup
        result = scanner.scan()  # every poll cycle
    """

    def __init__(self, config: WatchConfig, table: StateTable) -> None:
        """Initialize the scanner.

        Args:
            config: Run configuration (source root).
            table: Shared state table.
        """
        self._config = config
        self._root = config.source
        self._table = table

    @property
    def root(self) -> Path:
        return self._root

    def baseline(self) -> int:
        """Register everything currently under the source root as COMPLETE.

        Returns:
            Number of paths registered (the root included).

        Raises:
            SourceMissingError: If the source root does not exist.
        """
        self._check_root()
        errors: list[str] = []

        self._table.add_directory(ROOT_KEY, TransferStatus.COMPLETE)
        registered = 1
        for path, kind, size in self._walk(self._root, errors):
            self._table.add(relative_key(path, self._root), kind, size, TransferStatus.COMPLETE)
            registered += 1

        self._check_root_after_walk(errors)
        logger.info("Baseline: %d existing paths under %s", registered, self._root)
        return registered

    def scan(self) -> ScanResult:
        """Detect new and resized entries since the last pass.

        Returns:
            ScanResult listing what changed.

        Raises:
            SourceMissingError: If the source root does not exist.
        """
        self._check_root()
        result = ScanResult()

        for path, kind, size in self._walk(self._root, result.errors):
            key = relative_key(path, self._root)

            if kind == EntryKind.DIRECTORY:
                if not self._table.exists(key):
                    logger.debug("Found new directory: %s", key)
                    self.add_new_directory(path)
                    result.new_directories.append(key)
            elif not self._table.exists(key):
                logger.debug("Found new file: %s", key)
                self._table.add_new_file(key, size)
                result.new_files.append(key)
            elif self._table.record_size(key, size):
                logger.debug("Found updated file: %s (%d bytes)", key, size)
                result.modified.append(key)

        self._check_root_after_walk(result.errors)
        return result

    def add_new_directory(self, directory: Path) -> int:
        """Register a new directory and its subtree.

        The directory itself becomes IDLE so the scheduler sends it as a
        single recursive copy. Every descendant is registered COMPLETE.

        Returns:
            Number of descendants registered.
        """
        self._table.add_directory(relative_key(directory, self._root))

        errors: list[str] = []
        registered = 0
        for path, kind, size in self._walk(directory, errors):
            self._table.add(relative_key(path, self._root), kind, size, TransferStatus.COMPLETE)
            registered += 1
        return registered

    def _walk(self, top: Path, errors: list[str]) -> Iterator[tuple[Path, EntryKind, int]]:
        """Yield (path, kind, size) for everything below top, top excluded.

        Symlinks are not followed; they are reported as files with their
        link size. Entries that cannot be read are logged and skipped.
        """

        def on_error(exc: OSError) -> None:
            logger.debug("Error walking %s: %s", exc.filename or top, exc.strerror or exc)
            errors.append(str(exc))

        for dirpath, dirnames, filenames in os.walk(top, onerror=on_error):
            current = Path(dirpath)
            dirnames.sort()

            for name in list(dirnames):
                path = current / name
                if path.is_symlink():
                    # os.walk does not descend into it; report it as a file
                    dirnames.remove(name)
                    filenames.append(name)
                    continue
                yield path, EntryKind.DIRECTORY, 0

            for name in sorted(filenames):
                path = current / name
                try:
                    size = path.lstat().st_size
                except OSError as e:
                    # Vanished between listing and stat
                    logger.debug("Skipping %s: %s", path, e)
                    continue
                yield path, EntryKind.FILE, size

    def _check_root(self) -> None:
        if not self._root.is_dir():
            logger.error("%s does not exist", self._root)
            raise SourceMissingError(self._root)

    def _check_root_after_walk(self, errors: list[str]) -> None:
        # os.walk reports a vanished root through onerror only
        if errors and not self._root.exists():
            logger.error("%s does not exist", self._root)
            raise SourceMissingError(self._root)
