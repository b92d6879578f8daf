"""Core module - Shared configuration and types."""

from scpsync.core.config import ConfigError, WatchConfig
from scpsync.core.types import DIRECTORY_SIZE, EntryKind, TransferStatus

__all__ = [
    # Config
    "ConfigError",
    "WatchConfig",
    # Types
    "DIRECTORY_SIZE",
    "EntryKind",
    "TransferStatus",
]
