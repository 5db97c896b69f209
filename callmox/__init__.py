"""Expectation matching for mock objects.

Mocks describe each method with a :class:`MethodSignature`, record expected
calls through a :class:`Controller`, and forward real invocations to it. The
controller matches them against pending :class:`Expectation` objects, runs
their actions and reports unexpected or missing calls.
"""

from __future__ import annotations

from .controller import Controller, Phase
from .errors import (
    CallMoxError,
    LifecycleError,
    MismatchError,
    SetupError,
    UnexpectedCallError,
    UnfulfilledExpectationError,
    VerificationError,
)
from .expectations import UNBOUNDED, Expectation, in_order
from .graph import PrerequisiteGraph
from .matchers import (
    Any,
    Contains,
    Eq,
    IsA,
    Matcher,
    Nil,
    Not,
    Predicate,
    Regex,
    StartsWith,
    as_matcher,
)
from .reporter import FATAL_STACK_ENV, PytestReporter, RaisingReporter, TestReporter
from .signature import Kind, MethodSignature, Ref, TypeTag

__all__ = [
    "FATAL_STACK_ENV",
    "UNBOUNDED",
    "Any",
    "CallMoxError",
    "Contains",
    "Controller",
    "Eq",
    "Expectation",
    "IsA",
    "Kind",
    "LifecycleError",
    "Matcher",
    "MethodSignature",
    "MismatchError",
    "Nil",
    "Not",
    "Phase",
    "Predicate",
    "PrerequisiteGraph",
    "PytestReporter",
    "RaisingReporter",
    "Ref",
    "Regex",
    "SetupError",
    "StartsWith",
    "TestReporter",
    "TypeTag",
    "UnexpectedCallError",
    "UnfulfilledExpectationError",
    "VerificationError",
    "as_matcher",
    "in_order",
]
