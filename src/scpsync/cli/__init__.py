"""Command-line interface for scpsync.

This module provides the main CLI entry point.

Usage:
    scpsync [OPTIONS] SRC DST
"""

from __future__ import annotations

from scpsync.cli.watch import setup_logging, watch

# The whole CLI is the watch command
cli = watch


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "setup_logging",
    "watch",
]
