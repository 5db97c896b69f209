"""Global test configuration and shared fixtures."""

from __future__ import annotations

import pytest

from callmox.controller import Controller
from callmox.reporter import FATAL_STACK_ENV, RaisingReporter
from callmox.unittests._mocks import MockStore

pytest_plugins = ("callmox.pytest_plugin", "pytester")


@pytest.fixture(autouse=True)
def _quiet_fatal_stacks(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep failure messages short unless a test opts back in."""
    monkeypatch.setenv(FATAL_STACK_ENV, "0")


@pytest.fixture
def reporter() -> RaisingReporter:
    """Return a reporter that raises the requested error type."""
    return RaisingReporter()


@pytest.fixture
def ctrl(reporter: RaisingReporter) -> Controller:
    """Return a controller that raises on fatal failures."""
    return Controller(reporter)


@pytest.fixture
def store(ctrl: Controller) -> MockStore:
    """Return a mock store bound to ``ctrl``."""
    return MockStore(ctrl)
