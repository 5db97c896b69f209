"""Hand-written mock of a small key/value store used across tests."""

from __future__ import annotations

import typing as t

from callmox.signature import (
    ANY,
    FUNCTION,
    INT,
    STR,
    MethodSignature,
    interface,
    pointer,
    sequence,
)

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from callmox.controller import Controller
    from callmox.expectations import Expectation
    from callmox.signature import Ref

GET = MethodSignature.of([STR], [INT, interface(Exception)])
PUT = MethodSignature.of([STR, INT], [interface(Exception)])
FILL = MethodSignature.of([STR, pointer(INT)], [])
LOAD = MethodSignature.of([STR, ANY], [])
KEYS = MethodSignature.of([], [sequence(STR)])
WATCH = MethodSignature.of([STR, FUNCTION], [])


class MockStore:
    """Forward every method to the controller, as generated mocks do.

    Each method passes ``skip=1`` so diagnostics name the caller's line.
    """

    def __init__(self, ctrl: Controller) -> None:
        self.ctrl = ctrl
        self.expect = _StoreRecorder(self)

    def get(self, key: str) -> tuple[int, Exception | None]:
        value, err = self.ctrl.call(self, "get", key, skip=1)
        return t.cast("int", value), t.cast("Exception | None", err)

    def put(self, key: str, value: int | None) -> Exception | None:
        (err,) = self.ctrl.call(self, "put", key, value, skip=1)
        return t.cast("Exception | None", err)

    def fill(self, key: str, out: Ref[int]) -> None:
        self.ctrl.call(self, "fill", key, out, skip=1)

    def load(self, key: str, into: object) -> None:
        self.ctrl.call(self, "load", key, into, skip=1)

    def keys(self) -> list[str]:
        (keys,) = self.ctrl.call(self, "keys", skip=1)
        return t.cast("list[str]", keys)

    def watch(self, key: str, callback: t.Callable[[str], None] | None) -> None:
        self.ctrl.call(self, "watch", key, callback, skip=1)


class _StoreRecorder:
    """Record expected calls on a :class:`MockStore`."""

    def __init__(self, mock: MockStore) -> None:
        self._mock = mock

    def _record(
        self, method: str, signature: MethodSignature, *args: object
    ) -> Expectation:
        # Skip this helper and the public recorder method that called it.
        return self._mock.ctrl.record_call(
            self._mock, method, signature, *args, skip=2
        )

    def get(self, key: object) -> Expectation:
        return self._record("get", GET, key)

    def put(self, key: object, value: object) -> Expectation:
        return self._record("put", PUT, key, value)

    def fill(self, key: object, out: object) -> Expectation:
        return self._record("fill", FILL, key, out)

    def load(self, key: object, into: object) -> Expectation:
        return self._record("load", LOAD, key, into)

    def keys(self) -> Expectation:
        return self._record("keys", KEYS)

    def watch(self, key: object, callback: object) -> Expectation:
        return self._record("watch", WATCH, key, callback)
