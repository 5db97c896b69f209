"""Unit tests for :class:`callmox.controller.Controller`."""

from __future__ import annotations

import logging
import threading
import typing as t

import pytest

from callmox import (
    Any,
    Controller,
    LifecycleError,
    Phase,
    Ref,
    SetupError,
    UnexpectedCallError,
    UnfulfilledExpectationError,
    in_order,
)
from callmox.unittests._mocks import KEYS, LOAD, MockStore

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from callmox.errors import CallMoxError


def test_times_two_then_exhausted(ctrl: Controller, store: MockStore) -> None:
    """A third identical call is rejected once times(2) is used up."""
    exp = store.expect.get("a").returns(1, None).times(2)

    assert store.get("a") == (1, None)
    assert exp.num_calls == 1
    assert store.get("a") == (1, None)
    assert exp.num_calls == 2
    assert exp.exhausted()

    with pytest.raises(UnexpectedCallError, match="have been exhausted"):
        store.get("a")
    assert exp.num_calls == 2
    ctrl.finish()


def test_after_scenario(ctrl: Controller, store: MockStore) -> None:
    """B.after(A) is rejected until A has been called once."""
    first = store.expect.put("a", 1).returns(None)
    store.expect.get("a").returns(1, None).after(first)

    with pytest.raises(UnexpectedCallError) as excinfo:
        store.get("a")
    assert "prerequisite call that was not satisfied" in str(excinfo.value)

    assert store.put("a", 1) is None
    assert store.get("a") == (1, None)
    ctrl.finish()


def test_in_order_retires_prerequisites(ctrl: Controller, store: MockStore) -> None:
    """Once a dependent matches, its prerequisites stop matching."""
    first = store.expect.put("a", Any()).any_times()
    second = store.expect.get("a").returns(1, None)
    in_order(first, second)

    store.put("a", 1)
    store.put("a", 2)
    store.get("a")
    with pytest.raises(UnexpectedCallError, match="have been exhausted"):
        store.put("a", 3)


def test_first_declared_match_wins(ctrl: Controller, store: MockStore) -> None:
    """Overlapping expectations are consumed in declaration order."""
    store.expect.get(Any()).returns(1, None)
    store.expect.get("a").returns(2, None)
    assert store.get("a") == (1, None)
    assert store.get("a") == (2, None)
    ctrl.finish()


def test_unexpected_call_lists_every_reason(
    ctrl: Controller, store: MockStore
) -> None:
    """The failure explains why each pending expectation was rejected."""
    store.expect.get("a")
    store.expect.get("b")
    with pytest.raises(UnexpectedCallError) as excinfo:
        store.get("c")
    message = str(excinfo.value)
    assert message.startswith("Unexpected call.")
    assert "MockStore.get('c')" in message
    assert message.count("doesn't match the argument at index 0") == 2


def test_call_without_expectations(ctrl: Controller, store: MockStore) -> None:
    """Calls on methods that were never recorded fail clearly."""
    with pytest.raises(UnexpectedCallError, match="no expected calls of the method"):
        store.keys()


def test_expectations_are_scoped_to_receiver(ctrl: Controller) -> None:
    """Each mock instance has its own expectations."""
    first, second = MockStore(ctrl), MockStore(ctrl)
    first.expect.keys().returns(["x"])
    with pytest.raises(UnexpectedCallError):
        second.keys()
    assert first.keys() == ["x"]


def test_finish_reports_missing_calls(ctrl: Controller, store: MockStore) -> None:
    """finish() lists unsatisfied expectations with their counts."""
    store.expect.get("a").times(2)
    store.expect.put("b", 1).any_times()
    store.get("a")
    with pytest.raises(UnfulfilledExpectationError) as excinfo:
        ctrl.finish()
    message = str(excinfo.value)
    assert "Missing call(s)." in message
    assert "1. MockStore.get(Eq('a'))" in message
    assert "calls=1 (expected min=2, max=2)" in message
    assert "MockStore.put" not in message
    assert ctrl.phase is Phase.FINISHED


def test_finish_twice_is_a_lifecycle_error(ctrl: Controller) -> None:
    """The controller can only be finished once."""
    ctrl.finish()
    with pytest.raises(LifecycleError, match="already finished"):
        ctrl.finish()


def test_call_after_finish_is_a_lifecycle_error(
    ctrl: Controller, store: MockStore
) -> None:
    """Mocks cannot be used once the controller finished."""
    store.expect.keys().any_times()
    ctrl.finish()
    with pytest.raises(LifecycleError):
        store.keys()


def test_context_manager_finishes(store: MockStore) -> None:
    """Leaving the block verifies the expectations."""
    ctrl = store.ctrl
    with pytest.raises(UnfulfilledExpectationError):
        with ctrl:
            store.expect.keys()
    assert ctrl.phase is Phase.FINISHED


def test_context_manager_skips_finish_on_error(store: MockStore) -> None:
    """Errors inside the block are not masked by verification."""
    ctrl = store.ctrl
    with pytest.raises(RuntimeError, match="boom"):
        with ctrl:
            store.expect.keys()
            raise RuntimeError("boom")
    assert ctrl.phase is Phase.ACTIVE


def test_set_arg_through_controller(ctrl: Controller, store: MockStore) -> None:
    """Output bindings reach the caller's reference."""
    store.expect.fill("a", Any()).set_arg(1, 99)
    out = Ref(0)
    store.fill("a", out)
    assert out.value == 99
    ctrl.finish()


def test_action_runs_after_lock_release(ctrl: Controller, store: MockStore) -> None:
    """Actions may call back into the controller without deadlocking."""
    nested: list[list[str]] = []
    store.expect.keys().returns(["inner"])
    store.expect.watch("a", Any()).do(lambda key, cb: nested.append(store.keys()))

    store.watch("a", None)
    assert nested == [["inner"]]
    ctrl.finish()


def test_action_receives_actual_arguments(ctrl: Controller, store: MockStore) -> None:
    """The action sees the invocation's arguments."""
    seen: list[tuple[str, int]] = []
    store.expect.put(Any(), Any()).do(lambda k, v: seen.append((k, v)))
    store.put("a", None)
    assert seen == [("a", 0)]


def test_concurrent_calls_respect_bounds(ctrl: Controller, store: MockStore) -> None:
    """The controller lock keeps counters exact across threads."""
    exp = store.expect.get("a").returns(1, None).times(40)
    failures: list[CallMoxError] = []

    def worker() -> None:
        for _ in range(10):
            try:
                store.get("a")
            except UnexpectedCallError as err:
                failures.append(err)

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert exp.num_calls == 40
    assert len(failures) == 10


def test_record_call_origin_points_at_declaration(
    ctrl: Controller, store: MockStore
) -> None:
    """Direct recordings point at the declaring line."""
    exp = ctrl.record_call(store, "keys", KEYS)
    assert exp.origin.startswith(__file__)
    store.keys()


def test_debug_logging(
    ctrl: Controller, store: MockStore, caplog: pytest.LogCaptureFixture
) -> None:
    """Registration, consumption and retirement are logged at debug level."""
    caplog.set_level(logging.DEBUG, logger="callmox")
    store.expect.keys().returns([])
    store.keys()
    messages = [record.getMessage() for record in caplog.records]
    assert any(m.startswith("Recorded expectation MockStore.keys()") for m in messages)
    assert any(m.startswith("Consumed call 1 of") for m in messages)
    assert any(m.startswith("Retired expectation") for m in messages)


def test_recorded_origin_skips_mock_frames(store: MockStore) -> None:
    """Expectations declared through a mock point at the test line."""
    exp = store.expect.get("a")
    assert exp.origin.startswith(f"{__file__}:")
    assert "_mocks.py" not in str(exp)


def test_unexpected_call_site_skips_mock_frames(store: MockStore) -> None:
    """The reported actual call names the line that invoked the mock."""
    store.expect.get("a")
    with pytest.raises(UnexpectedCallError) as excinfo:
        store.get("zzz")
    message = str(excinfo.value)
    assert f"MockStore.get('zzz') at {__file__}:" in message
    assert "_mocks.py" not in message


class Token:
    """Value object that defines an unrelated ``matches`` method."""

    def __init__(self, text: str) -> None:
        self.text = text

    def matches(self, pattern: str) -> bool:
        return pattern in self.text

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Token) and other.text == self.text

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Token({self.text!r})"


def test_values_with_matches_method_compare_by_equality(
    ctrl: Controller, store: MockStore
) -> None:
    """Recorded domain objects are wrapped in Eq rather than used as matchers."""
    exp = ctrl.record_call(store, "load", LOAD, "k", Token("x"))
    assert repr(exp.matchers[1]) == "Eq(Token('x'))"
    store.load("k", Token("x"))
    assert exp.num_calls == 1

    ctrl.record_call(store, "load", LOAD, "k", Token("x"))
    with pytest.raises(UnexpectedCallError, match="doesn't match the argument"):
        store.load("k", Token("y"))


def test_failed_binding_leaves_call_uncounted(
    ctrl: Controller, store: MockStore
) -> None:
    """A set_arg that cannot be written neither counts nor retires prerequisites."""
    first = store.expect.put("a", 1).returns(None)
    second = store.expect.load("a", Any()).set_arg(1, 5).after(first)
    store.put("a", 1)

    with pytest.raises(SetupError, match="could not be applied"):
        store.load("a", object())
    assert second.num_calls == 0
    assert second.prerequisites == [first]

    out = Ref(0)
    store.load("a", out)
    assert out.value == 5
    assert second.num_calls == 1
    assert second.prerequisites == []
