"""Shared test fixtures for authkeeper.

Provides a manually advanced clock, an event recorder, isolated config
directories, and session managers that never start the background monitor.
These fixtures are automatically discovered by pytest and available to all
test modules without explicit imports.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from authkeeper.auth import MemoryStore, SessionManager
from authkeeper.events import EventBus, SessionEvent
from authkeeper.models import SessionConfig
from authkeeper.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams and the
    test finishes, the cached references become stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Time and events
# ---------------------------------------------------------------------------


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now = self.now + timedelta(minutes=minutes, seconds=seconds)


class EventRecorder:
    """Subscribe to every session event and remember what was emitted."""

    def __init__(self, bus: EventBus) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        for event in SessionEvent:
            bus.on(event, self._recorder(event.value))

    def _recorder(self, name: str):
        def _record(*payload: Any) -> None:
            self.calls.append((name, payload))

        return _record

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def count(self, name: SessionEvent) -> int:
        return self.names.count(name.value)

    def clear(self) -> None:
        self.calls.clear()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(bus: EventBus) -> EventRecorder:
    return EventRecorder(bus)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def config() -> SessionConfig:
    return SessionConfig(
        base_url="https://app.example.com/index.html",
        authenticate_url="/api/authenticate",
    )


@pytest.fixture
def session(
    config: SessionConfig,
    store: MemoryStore,
    bus: EventBus,
    clock: ManualClock,
) -> SessionManager:
    """Session manager wired to the shared store, bus and clock, without a monitor."""
    manager = SessionManager(config, store=store, events=bus, clock=clock, start_monitor=False)
    yield manager
    manager.close()


# ---------------------------------------------------------------------------
# Isolated configuration environment
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, and clears all AUTHKEEPER_*
    environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("authkeeper.config._is_xdg_platform", lambda: True)

    for var in [
        "AUTHKEEPER_BASE_URL",
        "AUTHKEEPER_AUTHENTICATE_URL",
        "AUTHKEEPER_SESSION_MINUTES",
    ]:
        monkeypatch.delenv(var, raising=False)

    return tmp_path


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
