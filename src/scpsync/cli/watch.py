"""Watch command for scpsync CLI.

Commands:
- scpsync SRC DST: Watch SRC and mirror changes to DST over scp
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from scpsync.core.config import ConfigError, WatchConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(verbose: bool) -> logging.Logger:
    """Install a single stderr handler on the scpsync logger.

    Args:
        verbose: Log at DEBUG instead of WARNING.

    Returns:
        The configured package logger.
    """
    scpsync_logger = logging.getLogger("scpsync")
    # Remove any existing handlers
    for handler in scpsync_logger.handlers[:]:
        scpsync_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    scpsync_logger.addHandler(handler)
    scpsync_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    scpsync_logger.propagate = False
    return scpsync_logger


def _usage_error(ctx: click.Context) -> None:
    click.echo(ctx.get_help(), err=True)
    ctx.exit(1)


@click.command(context_settings={"help_option_names": []})
@click.argument("src", required=False)
@click.argument("dst", required=False)
@click.option(
    "-n",
    "--interval",
    type=float,
    default=1.0,
    show_default=True,
    help="Check the source directory every N seconds.",
)
@click.option(
    "--ignore-existing",
    is_flag=True,
    help="Do not transfer files that already exist at startup.",
)
@click.option(
    "--count",
    type=int,
    default=0,
    show_default=True,
    help=(
        "Transfer a file only after its size stayed the same for this many checks. "
        "Useful for large files that are still being written."
    ),
)
@click.option("-v", "--verbose", is_flag=True, help="Print debug messages.")
@click.option("-h", "--help", "show_help", is_flag=True, help="Show this message and exit.")
@click.version_option(package_name="scpsync")
@click.pass_context
def watch(
    ctx: click.Context,
    src: str | None,
    dst: str | None,
    interval: float,
    ignore_existing: bool,
    count: int,
    verbose: bool,
    show_help: bool,
) -> None:
    """Watch SRC and copy new or changed entries to DST with scp.

    DST is an scp destination such as user@host:/path.
    """
    from scpsync.sync import SourceMissingError, SyncEngine

    if show_help or not src or not dst:
        _usage_error(ctx)
        return

    try:
        config = WatchConfig(
            source=Path(src),
            destination=dst,
            interval=interval,
            ignore_existing=ignore_existing,
            count=count,
            verbose=verbose,
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    setup_logging(config.verbose)
    engine = SyncEngine(config)

    try:
        engine.run()
    except SourceMissingError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nStopping...", err=True)
