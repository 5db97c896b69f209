"""Expected calls: bounds, actions, ordering and matching.

An :class:`Expectation` records one expected invocation of a mocked method.
Declaration methods (``times``, ``returns``, ``set_arg``, ``do``, ``after``)
return the expectation so they can be chained. Misuse at declaration time is
reported through the expectation's :class:`~callmox.reporter.TestReporter`.
The controller drives the runtime side through :meth:`Expectation.matches`
and :meth:`Expectation.call`.
"""

from __future__ import annotations

import enum
import functools
import inspect
import logging
import typing as t

from ._origin import call_site
from .errors import MismatchError
from .graph import CycleError, PrerequisiteGraph, next_ident
from .matchers import as_matcher
from .reporter import with_stack
from .signature import Kind, write_through

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .matchers import Matcher
    from .reporter import TestReporter
    from .signature import MethodSignature, TypeTag

logger = logging.getLogger(__name__)


class Bound(enum.Enum):
    """Marker for an upper call bound that is never reached."""

    UNBOUNDED = "unbounded"

    def __repr__(self) -> str:
        """Return ``UNBOUNDED``."""
        return self.name


UNBOUNDED: t.Final = Bound.UNBOUNDED

MaxCalls: t.TypeAlias = int | t.Literal[Bound.UNBOUNDED]

_DEFAULT_CALLS: t.Final[int] = 1


class _Misuse(Exception):
    """Internal signal carrying a declaration error message."""


def _at_most(low: int, high: MaxCalls) -> bool:
    return high is UNBOUNDED or low <= high


def _is_index(n: object, size: int) -> bool:
    return isinstance(n, int) and not isinstance(n, bool) and 0 <= n < size


def _check_count(label: str, n: int) -> None:
    if isinstance(n, bool) or not isinstance(n, int):
        msg = f"{label}({n!r}) requires an int"
        raise _Misuse(msg)
    if n < 0:
        msg = f"{label}({n}) requires a non-negative count"
        raise _Misuse(msg)


class Expectation:
    """One expected call to a mocked method."""

    def __init__(
        self,
        reporter: TestReporter,
        receiver: object,
        method: str,
        signature: MethodSignature,
        matchers: t.Iterable[object] = (),
        *,
        origin: str | None = None,
        graph: PrerequisiteGraph | None = None,
    ) -> None:
        self.reporter = reporter
        self.receiver = receiver
        self.method = method
        self.signature = signature
        self.matchers: list[Matcher] = [as_matcher(m) for m in matchers]
        self.origin = origin if origin is not None else call_site()

        self.min_calls: int = _DEFAULT_CALLS
        self.max_calls: MaxCalls = _DEFAULT_CALLS
        self.num_calls = 0

        self._returns: list[object] | None = None
        self._action: t.Callable[..., object] | None = None
        self._set_args: dict[int, object] = {}

        self.ident = next_ident()
        self.graph = graph if graph is not None else PrerequisiteGraph()
        self.graph.add_node(self)

    # ------------------------------------------------------------------
    # Call-count bounds
    # ------------------------------------------------------------------
    def any_times(self) -> Expectation:
        """Allow the call zero or more times."""
        self.min_calls, self.max_calls = 0, UNBOUNDED
        return self

    def min_times(self, n: int) -> Expectation:
        """Require at least *n* calls.

        When neither :meth:`any_times` nor :meth:`max_times` has changed the
        default upper bound, the upper bound becomes unbounded.
        """
        try:
            _check_count("min_times", n)
            high = UNBOUNDED if self.max_calls == _DEFAULT_CALLS else self.max_calls
            if not _at_most(n, high):
                msg = f"min_times({n}) exceeds the maximum of {high} calls"
                raise _Misuse(msg)
        except _Misuse as exc:
            self._fatal(str(exc))
            return self
        self.min_calls, self.max_calls = n, high
        return self

    def max_times(self, n: int) -> Expectation:
        """Allow at most *n* calls.

        When neither :meth:`any_times` nor :meth:`min_times` has changed the
        default lower bound, the lower bound drops to zero.
        """
        try:
            _check_count("max_times", n)
            low = 0 if self.min_calls == _DEFAULT_CALLS else self.min_calls
            if not _at_most(low, n):
                msg = f"max_times({n}) is below the minimum of {low} calls"
                raise _Misuse(msg)
        except _Misuse as exc:
            self._fatal(str(exc))
            return self
        self.min_calls, self.max_calls = low, n
        return self

    def times(self, n: int) -> Expectation:
        """Require exactly *n* calls."""
        try:
            _check_count("times", n)
        except _Misuse as exc:
            self._fatal(str(exc))
            return self
        self.min_calls, self.max_calls = n, n
        return self

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def returns(self, *values: object) -> Expectation:
        """Declare the values returned when the call matches."""
        slots = self.signature.returns
        try:
            if len(values) != len(slots):
                msg = (
                    f"wrong number of arguments to returns for {self._name}: "
                    f"got {len(values)}, want {len(slots)}"
                )
                raise _Misuse(msg)
            normalised = [
                self._return_value(index, value, tag)
                for index, (value, tag) in enumerate(zip(values, slots, strict=True))
            ]
        except _Misuse as exc:
            self._fatal(str(exc))
            return self
        self._returns = normalised
        return self

    def _return_value(self, index: int, value: object, tag: TypeTag) -> object:
        if tag.is_identical(value):
            return value
        if value is None:
            if tag.nillable:
                return None
            msg = (
                f"argument {index} to returns for {self._name} is None, "
                f"but {tag} is not nillable"
            )
            raise _Misuse(msg)
        try:
            return tag.assign(value)
        except TypeError as exc:
            msg = (
                f"wrong type of argument {index} to returns for {self._name}: "
                f"{type(value).__name__} is not assignable to {tag}"
            )
            raise _Misuse(msg) from exc

    def set_arg(self, n: int, value: object) -> Expectation:
        """Write *value* through the *n*-th argument whenever the call matches."""
        params = self.signature.params
        try:
            if not _is_index(n, len(params)):
                msg = f"set_arg({n}, ...) called for a method with {len(params)} args"
                raise _Misuse(msg)
            value = self._binding_value(n, value, params[n])
        except _Misuse as exc:
            self._fatal(str(exc))
            return self
        self._set_args[n] = value
        return self

    def _binding_value(self, n: int, value: object, tag: TypeTag) -> object:
        if tag.kind is Kind.INTERFACE:
            # The referent behind an open capability cannot be checked here.
            return value
        if tag.kind is not Kind.POINTER:
            msg = (
                f"set_arg({n}, ...) referring to argument of non-pointer "
                f"non-interface type {tag}"
            )
            raise _Misuse(msg)
        if tag.elem is None:
            return value
        try:
            return tag.elem.assign(value)
        except TypeError as exc:
            msg = (
                f"set_arg({n}, ...) argument is a {type(value).__name__}, "
                f"not assignable to {tag.elem}"
            )
            raise _Misuse(msg) from exc

    def do(self, action: t.Callable[..., object]) -> Expectation:
        """Run *action* with the actual arguments whenever the call matches.

        The action must accept one positional argument per method parameter.
        ``None`` arguments reach it as the zero value of the parameter's
        :class:`~callmox.signature.TypeTag` in the method signature; the
        action's own annotations are not consulted.
        """
        try:
            self._check_action(action)
        except _Misuse as exc:
            self._fatal(str(exc))
            return self
        self._action = action
        return self

    def _check_action(self, action: object) -> None:
        if not callable(action):
            msg = (
                f"do() for {self._name} requires a callable, "
                f"got {type(action).__name__}"
            )
            raise _Misuse(msg)
        try:
            sig = inspect.signature(action)
        except (TypeError, ValueError):
            # Some builtins expose no signature; accept them unchecked.
            return
        arity = len(self.signature.params)
        try:
            sig.bind(*([None] * arity))
        except TypeError as exc:
            msg = f"action for {self._name} cannot take {arity} arguments: {exc}"
            raise _Misuse(msg) from exc

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------
    @property
    def prerequisites(self) -> list[Expectation]:
        """Return the expectations that must be satisfied before this one."""
        return self.graph.prerequisites(self.ident)

    def is_prereq(self, other: Expectation) -> bool:
        """Return ``True`` if *other* is a direct or indirect prerequisite."""
        return other.graph is self.graph and self.graph.depends_on(
            self.ident, other.ident
        )

    def after(self, pre_req: Expectation) -> Expectation:
        """Only match once *pre_req* has been satisfied."""
        if pre_req is self:
            self._fatal("a call isn't allowed to be its own prerequisite")
            return self
        if pre_req.is_prereq(self):
            self._fatal(
                f"loop in call order: {self} is a prerequisite to {pre_req} "
                "(possibly indirectly)"
            )
            return self
        self._merge_graph(pre_req)
        try:
            self.graph.add_edge(self.ident, pre_req.ident)
        except CycleError as exc:  # pragma: no cover - guarded above
            self._fatal(f"{exc}: {self} after {pre_req}")
        return self

    def _merge_graph(self, other: Expectation) -> None:
        if other.graph is self.graph:
            return
        if len(other.graph) > len(self.graph):
            other.graph.absorb(self.graph)
        else:
            self.graph.absorb(other.graph)

    def drop_prereqs(self) -> list[Expectation]:
        """Stop checking prerequisites and return the ones that were dropped."""
        return self.graph.drop_edges(self.ident)

    # ------------------------------------------------------------------
    # Invocation protocol
    # ------------------------------------------------------------------
    def satisfied(self) -> bool:
        """Return ``True`` once the minimum number of calls has been made."""
        return self.num_calls >= self.min_calls

    def exhausted(self) -> bool:
        """Return ``True`` once the maximum number of calls has been made."""
        if self.max_calls is UNBOUNDED:
            return False
        return self.num_calls >= self.max_calls

    def matches(self, args: t.Sequence[object]) -> MismatchError | None:
        """Return ``None`` if *args* satisfy this expectation, else the reason."""
        if len(args) != len(self.matchers):
            return MismatchError(
                f"expected call at {self.origin} has the wrong number of "
                f"arguments. Got: {len(args)}, want: {len(self.matchers)}"
            )
        for index, (matcher, arg) in enumerate(zip(self.matchers, args, strict=True)):
            if not matcher.matches(arg):
                return MismatchError(
                    f"expected call at {self.origin} doesn't match the argument "
                    f"at index {index}.\nGot: {arg!r}\nWant: {matcher!r}"
                )
        for pre_req in self.prerequisites:
            if not pre_req.satisfied():
                return MismatchError(
                    f"expected call at {self.origin} has a prerequisite call "
                    f"that was not satisfied:\n{pre_req}\nshould be called "
                    f"before:\n{self}"
                )
        return None

    def call(
        self, args: t.Sequence[object]
    ) -> tuple[list[object], t.Callable[[], object] | None]:
        """Consume one call and return ``(returns, deferred_action)``.

        The caller must have checked :meth:`matches` first. Output bindings
        are written immediately; the action, if any, is returned unexecuted so
        the caller can run it after releasing its lock. A binding that cannot
        be written is fatal and the call is not counted.
        """
        for n, value in self._set_args.items():
            try:
                write_through(args[n], value)
            except (IndexError, TypeError) as exc:
                self._fatal(f"set_arg({n}, ...) could not be applied: {exc}")

        self.num_calls += 1

        action: t.Callable[[], object] | None = None
        if self._action is not None:
            action_args = [
                self._action_arg(index, arg) for index, arg in enumerate(args)
            ]
            action = functools.partial(self._action, *action_args)

        if self._returns is not None:
            rets = list(self._returns)
        else:
            rets = self.signature.zero_returns()
        logger.debug("Consumed call %d of %s", self.num_calls, self)
        return rets, action

    def _action_arg(self, index: int, arg: object) -> object:
        if arg is None and index < len(self.signature.params):
            return self.signature.params[index].zero()
        return arg

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    @property
    def _name(self) -> str:
        return f"{type(self.receiver).__name__}.{self.method}"

    def _fatal(self, message: str) -> None:
        self.reporter.fatal(with_stack(f"{message} [{self.origin}]", skip=2))

    def __str__(self) -> str:
        """Render the receiver type, method, matchers and origin."""
        arguments = ", ".join(repr(matcher) for matcher in self.matchers)
        return f"{self._name}({arguments}) {self.origin}"

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"<Expectation {self} calls={self.num_calls}>"


def in_order(*calls: Expectation) -> None:
    """Require *calls* to be satisfied in the given order."""
    for previous, current in zip(calls, calls[1:], strict=False):
        current.after(previous)


__all__ = ["UNBOUNDED", "Bound", "Expectation", "MaxCalls", "in_order"]
