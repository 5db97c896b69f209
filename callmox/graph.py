"""Prerequisite ordering between expectations.

Edges point from a dependent expectation to the expectation that must be
satisfied first. Nodes are addressed by the integer ``ident`` each
:class:`~callmox.expectations.Expectation` receives at construction, so the
graph never needs to follow live references to find a cycle.
"""

from __future__ import annotations

import itertools
import logging
import typing as t

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .expectations import Expectation

logger = logging.getLogger(__name__)

_IDENTS: t.Final = itertools.count(1)


def next_ident() -> int:
    """Return a fresh node identifier."""
    return next(_IDENTS)


class CycleError(ValueError):
    """Raised when an edge would make the graph cyclic."""


class PrerequisiteGraph:
    """Directed acyclic graph of "must be satisfied before" edges."""

    def __init__(self) -> None:
        self._nodes: dict[int, Expectation] = {}
        self._edges: dict[int, list[int]] = {}

    def __len__(self) -> int:
        """Return the number of registered nodes."""
        return len(self._nodes)

    def __contains__(self, ident: object) -> bool:
        """Return ``True`` if *ident* is a registered node."""
        return ident in self._nodes

    def add_node(self, expectation: Expectation) -> None:
        """Register *expectation* under its ``ident``."""
        self._nodes[expectation.ident] = expectation
        self._edges.setdefault(expectation.ident, [])

    def node(self, ident: int) -> Expectation:
        """Return the expectation registered as *ident*."""
        return self._nodes[ident]

    def prerequisites(self, ident: int) -> list[Expectation]:
        """Return the direct prerequisites of *ident* in insertion order."""
        return [self._nodes[pre] for pre in self._edges.get(ident, [])]

    def depends_on(self, ident: int, other: int) -> bool:
        """Return ``True`` if *other* is a direct or indirect prerequisite of *ident*.

        The walk is iterative and visits each node at most once, so it is
        bounded by the size of the graph.
        """
        stack = list(self._edges.get(ident, []))
        seen: set[int] = set()
        while stack:
            current = stack.pop()
            if current == other:
                return True
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._edges.get(current, []))
        return False

    def add_edge(self, dependent: int, prerequisite: int) -> None:
        """Require *prerequisite* to be satisfied before *dependent* matches.

        Raises
        ------
        CycleError
            When the edge is a self-loop or would close a cycle. The graph is
            left unchanged.
        """
        if dependent == prerequisite:
            msg = "a call isn't allowed to be its own prerequisite"
            raise CycleError(msg)
        if self.depends_on(prerequisite, dependent):
            msg = "loop in call order"
            raise CycleError(msg)
        self._edges.setdefault(dependent, []).append(prerequisite)
        logger.debug("Added prerequisite edge %d -> %d", dependent, prerequisite)

    def drop_edges(self, ident: int) -> list[Expectation]:
        """Remove and return the direct prerequisites of *ident*."""
        dropped = self.prerequisites(ident)
        self._edges[ident] = []
        return dropped

    def absorb(self, other: PrerequisiteGraph) -> None:
        """Move every node and edge of *other* into this graph."""
        if other is self:
            return
        for ident, expectation in other._nodes.items():
            self._nodes[ident] = expectation
            self._edges[ident] = list(other._edges.get(ident, []))
            expectation.graph = self
        other._nodes.clear()
        other._edges.clear()


__all__ = ["CycleError", "PrerequisiteGraph", "next_ident"]
