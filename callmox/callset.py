"""Registry of pending and exhausted expectations for a controller."""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as t
from collections import defaultdict

from .errors import MismatchError

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .expectations import Expectation

logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True, slots=True)
class CallSetKey:
    """Identify the calls of one method on one receiver."""

    receiver_id: int
    method: str

    @classmethod
    def of(cls, receiver: object, method: str) -> CallSetKey:
        """Build the key for *method* on *receiver*."""
        return cls(id(receiver), method)


class CallSet:
    """Expected and exhausted expectations grouped by receiver and method.

    Expectations are kept in declaration order. The set is not synchronised;
    :class:`~callmox.controller.Controller` guards it with its lock.
    """

    def __init__(self) -> None:
        self._expected: dict[CallSetKey, list[Expectation]] = defaultdict(list)
        self._exhausted: dict[CallSetKey, list[Expectation]] = defaultdict(list)

    def add(self, expectation: Expectation) -> None:
        """Register *expectation* as pending."""
        key = CallSetKey.of(expectation.receiver, expectation.method)
        self._expected[key].append(expectation)
        logger.debug("Recorded expectation %s", expectation)

    def remove(self, expectation: Expectation) -> None:
        """Move *expectation* from the pending to the exhausted list."""
        key = CallSetKey.of(expectation.receiver, expectation.method)
        pending = self._expected.get(key, [])
        for index, candidate in enumerate(pending):
            if candidate is expectation:
                del pending[index]
                self._exhausted[key].append(expectation)
                logger.debug("Retired expectation %s", expectation)
                return

    def find_match(
        self, receiver: object, method: str, args: t.Sequence[object]
    ) -> tuple[Expectation | None, MismatchError | None]:
        """Return the first pending expectation matching *args*.

        When nothing matches, the second item explains every rejection,
        including matching expectations that are already exhausted.
        """
        key = CallSetKey.of(receiver, method)
        reasons: list[str] = []
        for expectation in self._expected.get(key, []):
            err = expectation.matches(args)
            if err is None:
                return expectation, None
            reasons.append(str(err))

        for expectation in self._exhausted.get(key, []):
            if expectation.matches(args) is None:
                reasons.append(
                    f"all expected calls for method {method!r} have been "
                    f"exhausted: {expectation}"
                )

        if not reasons:
            reasons.append(
                f"there are no expected calls of the method {method!r} for "
                "that receiver"
            )
        return None, MismatchError("\n".join(reasons))

    def pending(self) -> list[Expectation]:
        """Return every pending expectation in declaration order."""
        return sorted(
            (exp for calls in self._expected.values() for exp in calls),
            key=lambda exp: exp.ident,
        )

    def failures(self) -> list[Expectation]:
        """Return pending expectations whose minimum call count is unmet."""
        return [exp for exp in self.pending() if not exp.satisfied()]


__all__ = ["CallSet", "CallSetKey"]
