"""Pytest plugin providing the ``call_mox`` fixture."""

from __future__ import annotations

import logging
import typing as t

import pytest

from .controller import Controller, Phase
from .reporter import PytestReporter

logger = logging.getLogger(__name__)


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line and ini options for the plugin."""
    group = parser.getgroup("call_mox")
    group.addoption(
        "--call-mox-auto-finish",
        action="store_true",
        dest="call_mox_auto_finish",
        default=None,
        help=(
            "Call finish() on the call_mox fixture during teardown. "
            "Overrides the pytest.ini setting."
        ),
    )
    group.addoption(
        "--no-call-mox-auto-finish",
        action="store_false",
        dest="call_mox_auto_finish",
        default=None,
        help=(
            "Do not call finish() on the call_mox fixture during teardown. "
            "Overrides the pytest.ini setting."
        ),
    )
    parser.addini(
        "call_mox_auto_finish",
        "Automatically call finish() on the call_mox fixture during teardown.",
        type="bool",
        default=True,
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register plugin-specific markers."""
    config.addinivalue_line(
        "markers",
        (
            "call_mox(auto_finish: bool = True): override automatic finish() "
            "for a single test."
        ),
    )


def _auto_finish_enabled(request: pytest.FixtureRequest) -> bool:
    """Return whether the fixture should call ``finish()`` at teardown."""
    # Priority order: marker > CLI option > INI setting
    marker = request.node.get_closest_marker("call_mox")
    if marker is not None and "auto_finish" in marker.kwargs:
        return bool(marker.kwargs["auto_finish"])

    config = request.config
    cli_value = config.getoption("call_mox_auto_finish")
    if cli_value is not None:
        return bool(cli_value)

    return bool(config.getini("call_mox_auto_finish"))


@pytest.fixture
def call_mox(request: pytest.FixtureRequest) -> t.Generator[Controller, None, None]:
    """Provide a :class:`Controller` reporting failures through pytest."""
    controller = Controller(PytestReporter())
    auto_finish = _auto_finish_enabled(request)
    yield controller
    if auto_finish and controller.phase is Phase.ACTIVE:
        try:
            controller.finish()
        except pytest.fail.Exception:
            logger.exception("Error during call_mox verification")
            raise
