"""Shared pytest fixtures for scpsync tests."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from scpsync.core.config import WatchConfig
from scpsync.sync.state import StateTable


class FakeTransport:
    """In-process stand-in for ScpTransport.

    Records every copy, optionally runs a hook inside the transfer window
    and can be held open with a gate event.
    """

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.calls: list[tuple[Path, str]] = []
        self.on_copy: Callable[[Path, str], None] | None = None
        self.gate: threading.Event | None = None
        self.max_concurrent = 0
        self._running = 0
        self._lock = threading.Lock()

    def copy(self, source: Path, destination: str) -> bool:
        with self._lock:
            self.calls.append((source, destination))
            self._running += 1
            self.max_concurrent = max(self.max_concurrent, self._running)
        try:
            if self.on_copy:
                self.on_copy(source, destination)
            if self.gate is not None:
                self.gate.wait(timeout=5.0)
            return self.result
        finally:
            with self._lock:
                self._running -= 1

    @property
    def sources(self) -> list[Path]:
        with self._lock:
            return [source for source, _ in self.calls]


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll predicate until it is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Create an empty source directory."""
    source = tmp_path / "source"
    source.mkdir()
    return source


@pytest.fixture
def make_config(source_dir: Path) -> Callable[..., WatchConfig]:
    """Build a WatchConfig for the source directory."""

    def _make(**overrides: object) -> WatchConfig:
        values: dict[str, object] = {
            "source": source_dir,
            "destination": "backup:/srv/mirror",
            "interval": 0.05,
            "ignore_existing": True,
            "count": 0,
        }
        values.update(overrides)
        return WatchConfig(**values)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def table() -> StateTable:
    """Create an empty state table."""
    return StateTable()


@pytest.fixture
def transport() -> FakeTransport:
    """Create a transport that always succeeds."""
    return FakeTransport()


@pytest.fixture(name="wait_for")
def wait_for_fixture() -> Callable[..., bool]:
    """Expose wait_for() to tests."""
    return wait_for


@pytest.fixture(autouse=True)
def reset_scpsync_logger() -> Iterator[None]:
    """Undo any logging setup done by the CLI during a test."""
    logger = logging.getLogger("scpsync")
    handlers = logger.handlers[:]
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
