"""Diagnostic messages for :class:`~callmox.controller.Controller` failures."""

from __future__ import annotations

import typing as t
from textwrap import indent

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .errors import MismatchError
    from .expectations import Expectation


def _format_args(args: t.Sequence[object]) -> str:
    return ", ".join(repr(arg) for arg in args)


def _format_call(receiver: object, method: str, args: t.Sequence[object]) -> str:
    return f"{type(receiver).__name__}.{method}({_format_args(args)})"


def _describe_expectation(exp: Expectation) -> str:
    """Return *exp* with its observed and expected call counts."""
    return "\n".join(
        [
            str(exp),
            f"calls={exp.num_calls} (expected min={exp.min_calls}, "
            f"max={exp.max_calls!r})",
        ]
    )


def _numbered(entries: t.Sequence[str]) -> str:
    """Number *entries*, hanging continuation lines under the first."""
    if not entries:
        return "(none)"
    blocks: list[str] = []
    for number, entry in enumerate(entries, start=1):
        prefix = f"{number}. "
        blocks.append(prefix + indent(entry, " " * len(prefix))[len(prefix) :])
    return "\n".join(blocks)


def _report(title: str, *sections: tuple[str, str]) -> str:
    """Join *title* and the non-empty ``(label, body)`` sections."""
    blocks = [title]
    blocks.extend(f"{label}:\n{indent(body, '  ')}" for label, body in sections if body)
    return "\n\n".join(blocks)


def describe_unexpected_call(
    receiver: object,
    method: str,
    args: t.Sequence[object],
    origin: str,
    reason: MismatchError,
) -> str:
    """Explain why an invocation matched no pending expectation."""
    actual = f"{_format_call(receiver, method, args)} at {origin}"
    return _report(
        "Unexpected call.", ("Actual call", actual), ("Reason", str(reason))
    )


def describe_missing_calls(failures: t.Sequence[Expectation]) -> str:
    """List the expectations left unsatisfied when the controller finished."""
    listing = _numbered([_describe_expectation(exp) for exp in failures])
    return _report("Missing call(s).", ("Unsatisfied expectations", listing))


__all__ = ["describe_missing_calls", "describe_unexpected_call"]
