"""Exception hierarchy for callmox."""

from __future__ import annotations


class CallMoxError(Exception):
    """Base class for all callmox errors."""


class SetupError(CallMoxError, AssertionError):
    """Raised when an expectation is declared incorrectly."""


class MismatchError(CallMoxError):
    """Describe why an invocation does not satisfy an expectation.

    Instances are returned by :meth:`Expectation.matches` rather than raised;
    the controller decides whether a mismatch fails the test.
    """


class LifecycleError(CallMoxError):
    """Raised when the controller is used after :meth:`Controller.finish`."""


class VerificationError(CallMoxError, AssertionError):
    """Base class for failures detected while replaying or finishing."""


class UnexpectedCallError(VerificationError):
    """Raised when an invocation matches no pending expectation."""


class UnfulfilledExpectationError(VerificationError):
    """Raised when expectations remain unsatisfied at :meth:`Controller.finish`."""


__all__ = [
    "CallMoxError",
    "LifecycleError",
    "MismatchError",
    "SetupError",
    "UnexpectedCallError",
    "UnfulfilledExpectationError",
    "VerificationError",
]
