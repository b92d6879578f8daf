"""Resolved configuration for a scpsync run.

The CLI builds one WatchConfig and every component receives it at
construction time.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class ConfigError(Exception):
    """Raised when a configuration value is invalid."""


@dataclass
class WatchConfig:
    """Configuration for watching a source tree and mirroring it over scp.

    Attributes:
        source: Local directory to watch.
        destination: Remote destination, e.g. "host:/srv/mirror".
        interval: Seconds between two poll cycles.
        ignore_existing: Skip the initial bulk transfer of the source tree.
        count: Number of unchanged polls required before a file is sent.
        verbose: Emit debug output and scp diagnostics.
        scp_program: Executable used for the copy.
    """

    source: Path
    destination: str
    interval: float = 1.0
    ignore_existing: bool = False
    count: int = 0
    verbose: bool = False
    scp_program: str = "scp"

    def __post_init__(self) -> None:
        """Normalize and validate values."""
        self.source = Path(self.source).expanduser().resolve()
        self.destination = str(self.destination).strip()

        if not self.destination:
            raise ConfigError("destination must not be empty")
        if self.interval <= 0:
            raise ConfigError(f"interval must be positive, got {self.interval}")
        if self.count < 0:
            raise ConfigError(f"count must not be negative, got {self.count}")
        if not self.scp_program:
            raise ConfigError("scp_program must not be empty")
