"""Controller coordinating expectations for a single test."""

from __future__ import annotations

import enum
import logging
import threading
import types  # noqa: TC003
import typing as t

from ._origin import call_site
from .callset import CallSet
from .errors import LifecycleError, UnexpectedCallError, UnfulfilledExpectationError
from .expectations import Expectation
from .graph import PrerequisiteGraph
from .reporter import RaisingReporter, with_stack
from .verifiers import describe_missing_calls, describe_unexpected_call

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .reporter import TestReporter
    from .signature import MethodSignature

logger = logging.getLogger(__name__)


class Phase(enum.StrEnum):
    """Lifecycle phases for :class:`Controller`."""

    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"


class Controller:
    """Own the expectations of one test and dispatch invocations to them.

    Generated mocks record expectations with :meth:`record_call` and forward
    every real invocation to :meth:`call`. All registry access happens under
    a single lock; actions declared with :meth:`Expectation.do` run after the
    lock is released so they may call back into the controller.
    """

    def __init__(self, reporter: TestReporter | None = None) -> None:
        """Create a new controller.

        Parameters
        ----------
        reporter:
            Receives fatal failures. Defaults to :class:`RaisingReporter`,
            which raises the matching :class:`~callmox.errors.CallMoxError`.
        """
        self.reporter: TestReporter = (
            reporter if reporter is not None else RaisingReporter()
        )
        self._lock = threading.Lock()
        self._calls = CallSet()
        self._graph = PrerequisiteGraph()
        self._phase = Phase.ACTIVE

    @property
    def phase(self) -> Phase:
        """Return the current lifecycle phase."""
        return self._phase

    # ------------------------------------------------------------------
    # Context manager protocol
    # ------------------------------------------------------------------
    def __enter__(self) -> Controller:
        """Return the controller."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Finish the controller unless the block raised."""
        if exc_type is None and self._phase is Phase.ACTIVE:
            self.finish()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def record_call(
        self,
        receiver: object,
        method: str,
        signature: MethodSignature,
        *args: object,
        skip: int = 0,
    ) -> Expectation:
        """Expect *method* to be called on *receiver* with *args*.

        Plain values in *args* are compared for equality; matcher objects are
        used as given. Mock code that wraps this call passes *skip* as the
        number of its own frames, so the origin names the declaring line.
        """
        expectation = Expectation(
            self.reporter,
            receiver,
            method,
            signature,
            args,
            origin=call_site(skip),
            graph=self._graph,
        )
        with self._lock:
            self._require_active("record_call")
            self._calls.add(expectation)
        return expectation

    def call(
        self, receiver: object, method: str, *args: object, skip: int = 0
    ) -> list[object]:
        """Dispatch a real invocation and return the values to hand back.

        *skip* has the same meaning as for :meth:`record_call` and locates
        the caller reported for unexpected calls.
        """
        with self._lock:
            self._require_active("call")
            expected, err = self._calls.find_match(receiver, method, args)
            if expected is None:
                origin = call_site(skip)
                message = describe_unexpected_call(receiver, method, args, origin, err)
                self.reporter.fatal(
                    with_stack(message), error_type=UnexpectedCallError
                )
                return []

            rets, action = expected.call(args)

            # Prerequisites are consumed once a dependent call completes.
            for pre_req in expected.drop_prereqs():
                self._calls.remove(pre_req)
            if expected.exhausted():
                self._calls.remove(expected)

        if action is not None:
            logger.debug("Running deferred action for %s", expected)
            action()
        return rets

    def finish(self) -> None:
        """Fail if any recorded expectation is still unsatisfied."""
        with self._lock:
            self._require_active("finish")
            self._phase = Phase.FINISHED
            failures = self._calls.failures()
        if failures:
            logger.debug("Controller finished with %d missing call(s)", len(failures))
            self.reporter.fatal(
                describe_missing_calls(failures),
                error_type=UnfulfilledExpectationError,
            )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _require_active(self, action: str) -> None:
        if self._phase is not Phase.ACTIVE:
            msg = (
                f"Cannot call {action}(): controller already finished "
                f"(current phase: {self._phase.name.lower()})"
            )
            raise LifecycleError(msg)


__all__ = ["Controller", "Phase"]
