"""Test-failure reporters used for fatal callmox errors.

Declaration mistakes and unmatched invocations are reported through a
:class:`TestReporter`. The reporter is expected to stop the current test, as a
failed hard assertion would.
"""

from __future__ import annotations

import os
import traceback
import typing as t

from .errors import CallMoxError, SetupError

# Set to ``0``/``false``/``no``/``off`` to omit stack traces from fatal messages.
FATAL_STACK_ENV: t.Final[str] = "CALLMOX_FATAL_STACK"

_FALSY: t.Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class TestReporter(t.Protocol):
    """Collaborator able to fail the running test."""

    def fatal(
        self, message: str, *, error_type: type[CallMoxError] = SetupError
    ) -> t.NoReturn:
        """Fail the current test immediately with *message*."""
        ...


# Keep pytest from collecting the protocol when it is imported into test modules.
TestReporter.__test__ = False  # type: ignore[attr-defined]


def stack_enabled() -> bool:
    """Return ``True`` unless :data:`FATAL_STACK_ENV` disables stack traces."""
    value = os.getenv(FATAL_STACK_ENV)
    if value is None:
        return True
    return value.strip().lower() not in _FALSY


def with_stack(message: str, *, skip: int = 1) -> str:
    """Append the caller's formatted stack to *message* when enabled."""
    if not stack_enabled():
        return message
    frames = traceback.format_stack()[: -(skip + 1)]
    return f"{message}\n{''.join(frames).rstrip()}"


class RaisingReporter:
    """Report failures by raising the requested :class:`CallMoxError`."""

    def fatal(
        self, message: str, *, error_type: type[CallMoxError] = SetupError
    ) -> t.NoReturn:
        """Raise ``error_type(message)``."""
        raise error_type(message)


class PytestReporter:
    """Report failures through :func:`pytest.fail`."""

    def fatal(
        self, message: str, *, error_type: type[CallMoxError] = SetupError
    ) -> t.NoReturn:
        """Fail the running pytest test with *message*."""
        import pytest

        pytest.fail(f"{error_type.__name__}: {message}", pytrace=True)


__all__ = [
    "FATAL_STACK_ENV",
    "PytestReporter",
    "RaisingReporter",
    "TestReporter",
    "stack_enabled",
    "with_stack",
]
