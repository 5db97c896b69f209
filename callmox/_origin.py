"""Locate the user code that declared an expectation."""

from __future__ import annotations

import sys
import typing as t

_INTERNAL_MODULES: t.Final[frozenset[str]] = frozenset(
    {
        "callmox._origin",
        "callmox.callset",
        "callmox.controller",
        "callmox.expectations",
        "callmox.graph",
    }
)


def call_site(skip: int = 0) -> str:
    """Return ``file:line`` of the nearest frame outside callmox internals.

    *skip* drops that many further frames, so mock code forwarding to the
    controller can report its own caller instead of itself.
    """
    frame = sys._getframe(1)
    while frame is not None and frame.f_globals.get("__name__") in _INTERNAL_MODULES:
        frame = frame.f_back
    for _ in range(skip):
        if frame is None:
            break
        frame = frame.f_back
    if frame is None:  # pragma: no cover - only internal frames on the stack
        return "<unknown>"
    return f"{frame.f_code.co_filename}:{frame.f_lineno}"
