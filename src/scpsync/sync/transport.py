"""Remote copy over scp.

This module provides:
- ScpTransport: Runs `scp -r` for one local path
- remote_join: Joins a relative path onto a remote destination

The engine only needs copy(local_path, destination) -> bool; anything with
that method can stand in for ScpTransport.
"""

from __future__ import annotations

import logging
import posixpath
import subprocess
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Something that can copy a local path to a remote destination."""

    def copy(self, source: Path, destination: str) -> bool: ...


def remote_join(destination: str, relative: str) -> str:
    """Join a POSIX relative path onto a destination like "host:/dir".

    A destination ending in ':' refers to the remote home directory, so the
    relative path is appended without a separator.
    """
    if destination.endswith(":"):
        return destination + relative
    return posixpath.join(destination, relative)


class ScpTransport:
    """Copies files and directories with the scp command line client."""

    def __init__(self, program: str = "scp", verbose: bool = False) -> None:
        """Initialize the transport.

        Args:
            program: scp executable to run.
            verbose: Log scp's stderr on failure instead of running it quietly.
        """
        self._program = program
        self._verbose = verbose

    def build_command(self, source: Path, destination: str) -> list[str]:
        command = [self._program, "-r"]
        if not self._verbose:
            command.append("-q")
        command += [str(source), destination]
        return command

    def copy(self, source: Path, destination: str) -> bool:
        """Recursively copy source to destination.

        Returns:
            True if scp exited with status 0.
        """
        command = self.build_command(source, destination)
        try:
            completed = subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            logger.debug("Failed to run %s: %s", self._program, e)
            return False

        if completed.returncode != 0:
            logger.debug(
                "scp %s -> %s exited with status %d",
                source,
                destination,
                completed.returncode,
            )
            if self._verbose and completed.stderr:
                logger.debug("scp stderr: %s", completed.stderr.strip())
            return False
        return True
