"""Argument matchers used when recording expected calls."""

from __future__ import annotations

import abc
import re
import typing as t


class Matcher(abc.ABC):
    """Predicate testing a single actual argument.

    Only subclasses, and classes registered with :meth:`Matcher.register`,
    are treated as matchers when recording calls. Any other value is
    compared for equality, even if it happens to define ``matches``.
    """

    @abc.abstractmethod
    def matches(self, value: object) -> bool:
        """Return ``True`` if *value* satisfies the matcher."""

    def __call__(self, value: object) -> bool:
        """Alias for :meth:`matches`."""
        return self.matches(value)


class Any(Matcher):
    """Match any value."""

    def matches(self, value: object) -> bool:
        """Return ``True`` for any input."""
        return True

    def __repr__(self) -> str:
        """Return a debug representation."""
        return "Any()"


class Eq(Matcher):
    """Match values equal to ``expected``."""

    def __init__(self, expected: object) -> None:
        self.expected = expected

    def matches(self, value: object) -> bool:
        """Return ``True`` when *value* equals ``expected``."""
        return bool(value == self.expected)

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"Eq({self.expected!r})"


class Nil(Matcher):
    """Match ``None``."""

    def matches(self, value: object) -> bool:
        """Return ``True`` when *value* is ``None``."""
        return value is None

    def __repr__(self) -> str:
        """Return a debug representation."""
        return "Nil()"


class Not(Matcher):
    """Invert another matcher; plain values are compared for equality."""

    def __init__(self, matcher: object) -> None:
        self.matcher = as_matcher(matcher)

    def matches(self, value: object) -> bool:
        """Return ``True`` when the wrapped matcher rejects *value*."""
        return not self.matcher.matches(value)

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"Not({self.matcher!r})"


class IsA(Matcher):
    """Match instances of ``typ``."""

    def __init__(self, typ: type | tuple[type, ...]) -> None:
        self.typ = typ

    def matches(self, value: object) -> bool:
        """Return ``True`` when *value* is an instance of ``typ``."""
        return isinstance(value, self.typ)

    def __repr__(self) -> str:
        """Return a debug representation."""
        if isinstance(self.typ, tuple):
            names = ", ".join(typ.__name__ for typ in self.typ)
            return f"IsA(({names}))"
        return f"IsA({self.typ.__name__})"


class Regex(Matcher):
    """Match strings containing ``pattern``."""

    def __init__(self, pattern: str) -> None:
        self._pattern = re.compile(pattern)

    def matches(self, value: object) -> bool:
        """Return ``True`` if the regex is found in *value*."""
        if not isinstance(value, str):
            return False
        return self._pattern.search(value) is not None

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"Regex({self._pattern.pattern!r})"


class Contains(Matcher):
    """Match containers holding ``item``."""

    def __init__(self, item: object) -> None:
        self.item = item

    def matches(self, value: object) -> bool:
        """Return ``True`` if ``item`` is in *value*."""
        try:
            return self.item in value  # type: ignore[operator]
        except TypeError:
            return False

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"Contains({self.item!r})"


class StartsWith(Matcher):
    """Match strings beginning with ``prefix``."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def matches(self, value: object) -> bool:
        """Return ``True`` if *value* starts with ``prefix``."""
        return isinstance(value, str) and value.startswith(self.prefix)

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"StartsWith({self.prefix!r})"


class Predicate(Matcher):
    """Use a custom ``func`` to determine a match."""

    def __init__(self, func: t.Callable[[t.Any], object]) -> None:
        self.func = func

    def matches(self, value: object) -> bool:
        """Return ``True`` if ``func(value)`` is truthy."""
        return bool(self.func(value))

    def __repr__(self) -> str:
        """Return a debug representation."""
        name = getattr(self.func, "__qualname__", None) or repr(self.func)
        return f"Predicate({name})"


def as_matcher(value: object) -> Matcher:
    """Return *value* if it is a :class:`Matcher`, otherwise wrap it in :class:`Eq`."""
    if isinstance(value, Matcher):
        return value
    return Eq(value)


__all__ = [
    "Any",
    "Contains",
    "Eq",
    "IsA",
    "Matcher",
    "Nil",
    "Not",
    "Predicate",
    "Regex",
    "StartsWith",
    "as_matcher",
]
