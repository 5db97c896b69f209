"""Formatting of controller failure messages."""

from __future__ import annotations

from callmox import UNBOUNDED, Expectation, RaisingReporter
from callmox.errors import MismatchError
from callmox.signature import INT, STR, MethodSignature
from callmox.verifiers import describe_missing_calls, describe_unexpected_call

SET = MethodSignature.of([STR, INT], [])


class Cache:
    """Receiver whose class name appears in messages."""


def test_unexpected_call_sections() -> None:
    """The actual call and the reason are shown in separate sections."""
    reason = MismatchError("first line\nsecond line")
    message = describe_unexpected_call(
        Cache(), "set", ("k", 1), "cache_test.py:7", reason
    )
    assert message.splitlines() == [
        "Unexpected call.",
        "",
        "Actual call:",
        "  Cache.set('k', 1) at cache_test.py:7",
        "",
        "Reason:",
        "  first line",
        "  second line",
    ]


def test_missing_calls_numbers_each_expectation() -> None:
    """Each unsatisfied expectation is numbered with its counts."""
    reporter = RaisingReporter()
    receiver = Cache()
    once = Expectation(reporter, receiver, "set", SET, ("k", 1), origin="a.py:1")
    many = Expectation(
        reporter, receiver, "set", SET, ("j", 2), origin="b.py:2"
    ).min_times(3)
    message = describe_missing_calls([once, many])
    assert message.splitlines() == [
        "Missing call(s).",
        "",
        "Unsatisfied expectations:",
        "  1. Cache.set(Eq('k'), Eq(1)) a.py:1",
        "     calls=0 (expected min=1, max=1)",
        "  2. Cache.set(Eq('j'), Eq(2)) b.py:2",
        f"     calls=0 (expected min=3, max={UNBOUNDED!r})",
    ]


def test_missing_calls_without_failures() -> None:
    """An empty failure list is rendered explicitly."""
    assert describe_missing_calls([]).endswith("(none)")


def test_empty_sections_are_omitted() -> None:
    """Sections without a body are left out of the message."""
    message = describe_unexpected_call(
        Cache(), "set", (), "cache_test.py:9", MismatchError("")
    )
    assert message.splitlines() == [
        "Unexpected call.",
        "",
        "Actual call:",
        "  Cache.set() at cache_test.py:9",
    ]


def test_numbered_entries_hang_under_wide_numbers() -> None:
    """Continuation lines align with the text after two-digit numbers."""
    reporter = RaisingReporter()
    receiver = Cache()
    failures = [
        Expectation(reporter, receiver, "set", SET, ("k", n), origin=f"c.py:{n}")
        for n in range(10)
    ]
    lines = describe_missing_calls(failures).splitlines()
    assert lines[-2] == "  10. Cache.set(Eq('k'), Eq(9)) c.py:9"
    assert lines[-1] == "      calls=0 (expected min=1, max=1)"
