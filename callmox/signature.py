"""Static method signature descriptors.

Mock generators describe every mocked method with a :class:`MethodSignature`:
an ordered tuple of parameter :class:`TypeTag` entries and an ordered tuple of
return :class:`TypeTag` entries. Expectations consult the descriptor to
validate declared return values and output bindings, and to synthesise zero
values, without inspecting the mocked interface at runtime.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import numbers
import queue
import typing as t

T = t.TypeVar("T")


class Kind(enum.StrEnum):
    """Broad category of a parameter or return slot."""

    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    COMPLEX = "complex"
    STR = "str"
    BYTES = "bytes"
    STRUCT = "struct"
    POINTER = "pointer"
    INTERFACE = "interface"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    CHANNEL = "channel"
    FUNCTION = "function"


NILLABLE_KINDS: t.Final[frozenset[Kind]] = frozenset(
    {
        Kind.CHANNEL,
        Kind.FUNCTION,
        Kind.INTERFACE,
        Kind.MAPPING,
        Kind.POINTER,
        Kind.SEQUENCE,
    }
)

_SCALAR_TYPES: t.Final[dict[Kind, type]] = {
    Kind.BOOL: bool,
    Kind.INT: int,
    Kind.FLOAT: float,
    Kind.COMPLEX: complex,
    Kind.STR: str,
    Kind.BYTES: bytes,
}


class Ref(t.Generic[T]):
    """Mutable reference cell standing in for a pointer argument."""

    __slots__ = ("value",)

    def __init__(self, value: T) -> None:
        self.value = value

    def set(self, value: T) -> None:
        """Replace the referenced value."""
        self.value = value

    def __eq__(self, other: object) -> bool:
        """Compare the referenced values."""
        if not isinstance(other, Ref):
            return NotImplemented
        return bool(self.value == other.value)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"Ref({self.value!r})"


@dc.dataclass(frozen=True, slots=True)
class TypeTag:
    """Describe one parameter or return slot of a mocked method.

    ``py_type`` names the concrete class for struct, interface and channel
    slots; ``elem`` is the referent of a pointer or the element of a sequence
    or channel; ``key`` is the key tag of a mapping (``elem`` is its value).
    """

    kind: Kind
    py_type: type | None = None
    elem: TypeTag | None = None
    key: TypeTag | None = None

    @property
    def nillable(self) -> bool:
        """Return ``True`` when ``None`` is a valid value for this slot."""
        return self.kind in NILLABLE_KINDS

    @property
    def name(self) -> str:
        """Return a readable type name for diagnostics."""
        if self.kind in _SCALAR_TYPES:
            return self.kind.value
        if self.kind is Kind.POINTER:
            return f"*{_tag_name(self.elem)}"
        if self.kind is Kind.SEQUENCE:
            return f"[]{_tag_name(self.elem)}"
        if self.kind is Kind.MAPPING:
            return f"map[{_tag_name(self.key)}]{_tag_name(self.elem)}"
        if self.kind is Kind.CHANNEL:
            return f"chan {_tag_name(self.elem)}"
        if self.py_type is not None:
            return self.py_type.__qualname__
        return self.kind.value

    def __str__(self) -> str:
        """Return :attr:`name`."""
        return self.name

    def zero(self) -> object:
        """Return a fresh zero value for this slot."""
        if self.kind in _SCALAR_TYPES:
            return _SCALAR_TYPES[self.kind]()
        if self.kind is Kind.STRUCT and self.py_type is not None:
            return self.py_type()
        return None

    def is_identical(self, value: object) -> bool:
        """Return ``True`` when *value* already has this slot's exact type."""
        if self.kind in _SCALAR_TYPES:
            return type(value) is _SCALAR_TYPES[self.kind]
        if self.kind is Kind.STRUCT:
            return self.py_type is not None and type(value) is self.py_type
        if self.kind is Kind.SEQUENCE:
            return type(value) is list and self._items_identical(value)
        if self.kind is Kind.MAPPING:
            return type(value) is dict and self._entries_identical(value)
        if self.kind is Kind.POINTER:
            return type(value) is Ref and (
                self.elem is None or self.elem.is_identical(value.value)
            )
        return False

    def assign(self, value: object) -> object:
        """Return *value* normalised into this slot's type.

        Raises
        ------
        TypeError
            When *value* cannot be stored in the slot without loss.
        """
        if self.is_identical(value):
            return value
        if value is None:
            if self.nillable:
                return None
            msg = f"None is not nillable as {self.name}"
            raise TypeError(msg)
        converter = _CONVERTERS.get(self.kind)
        if converter is None:  # pragma: no cover - every kind has a converter
            msg = f"no conversion for {self.kind}"
            raise TypeError(msg)
        return converter(self, value)

    def accepts(self, value: object) -> bool:
        """Return ``True`` when :meth:`assign` would succeed for *value*."""
        try:
            self.assign(value)
        except TypeError:
            return False
        return True

    def _items_identical(self, items: cabc.Iterable[object]) -> bool:
        if self.elem is None:
            return True
        return all(self.elem.is_identical(item) for item in items)

    def _entries_identical(self, mapping: cabc.Mapping[object, object]) -> bool:
        keys_ok = self.key is None or all(self.key.is_identical(k) for k in mapping)
        values_ok = self.elem is None or all(
            self.elem.is_identical(v) for v in mapping.values()
        )
        return keys_ok and values_ok


def _tag_name(tag: TypeTag | None) -> str:
    return "any" if tag is None else tag.name


def _mismatch(tag: TypeTag, value: object) -> TypeError:
    return TypeError(f"{type(value).__name__} is not assignable to {tag.name}")


def _to_int(tag: TypeTag, value: object) -> object:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise _mismatch(tag, value)
    return int(value)


def _to_float(tag: TypeTag, value: object) -> object:
    if isinstance(value, float):
        return float(value)
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise _mismatch(tag, value)
    try:
        converted = float(value)
    except OverflowError as exc:
        raise _mismatch(tag, value) from exc
    if converted != value:
        raise _mismatch(tag, value)
    return converted


def _to_complex(tag: TypeTag, value: object) -> object:
    if isinstance(value, bool) or not isinstance(value, numbers.Complex):
        raise _mismatch(tag, value)
    return complex(value)


def _to_bool(tag: TypeTag, value: object) -> object:
    if not isinstance(value, bool):
        raise _mismatch(tag, value)
    return bool(value)


def _to_str(tag: TypeTag, value: object) -> object:
    if not isinstance(value, str):
        raise _mismatch(tag, value)
    return str(value)


def _to_bytes(tag: TypeTag, value: object) -> object:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise _mismatch(tag, value)
    return bytes(value)


def _to_struct(tag: TypeTag, value: object) -> object:
    if tag.py_type is None or not isinstance(value, tag.py_type):
        raise _mismatch(tag, value)
    return value


def _to_interface(tag: TypeTag, value: object) -> object:
    if tag.py_type is not None and not isinstance(value, tag.py_type):
        raise _mismatch(tag, value)
    return value


def _to_pointer(tag: TypeTag, value: object) -> object:
    if not isinstance(value, Ref):
        raise _mismatch(tag, value)
    if tag.elem is not None and value.value is not None:
        try:
            tag.elem.assign(value.value)
        except TypeError as exc:
            raise _mismatch(tag, value) from exc
    return value


def _to_sequence(tag: TypeTag, value: object) -> object:
    if not isinstance(value, cabc.Sequence) or isinstance(
        value, (str, bytes, bytearray)
    ):
        raise _mismatch(tag, value)
    if tag.elem is None:
        return list(value)
    return [tag.elem.assign(item) for item in value]


def _to_mapping(tag: TypeTag, value: object) -> object:
    if not isinstance(value, cabc.Mapping):
        raise _mismatch(tag, value)
    result: dict[object, object] = {}
    for k, v in value.items():
        key = k if tag.key is None else tag.key.assign(k)
        result[key] = v if tag.elem is None else tag.elem.assign(v)
    return result


def _to_channel(tag: TypeTag, value: object) -> object:
    expected = tag.py_type or queue.Queue
    if not isinstance(value, expected):
        raise _mismatch(tag, value)
    return value


def _to_function(tag: TypeTag, value: object) -> object:
    if not callable(value):
        raise _mismatch(tag, value)
    return value


_CONVERTERS: t.Final[dict[Kind, t.Callable[[TypeTag, object], object]]] = {
    Kind.BOOL: _to_bool,
    Kind.INT: _to_int,
    Kind.FLOAT: _to_float,
    Kind.COMPLEX: _to_complex,
    Kind.STR: _to_str,
    Kind.BYTES: _to_bytes,
    Kind.STRUCT: _to_struct,
    Kind.INTERFACE: _to_interface,
    Kind.POINTER: _to_pointer,
    Kind.SEQUENCE: _to_sequence,
    Kind.MAPPING: _to_mapping,
    Kind.CHANNEL: _to_channel,
    Kind.FUNCTION: _to_function,
}


BOOL: t.Final = TypeTag(Kind.BOOL)
INT: t.Final = TypeTag(Kind.INT)
FLOAT: t.Final = TypeTag(Kind.FLOAT)
COMPLEX: t.Final = TypeTag(Kind.COMPLEX)
STR: t.Final = TypeTag(Kind.STR)
BYTES: t.Final = TypeTag(Kind.BYTES)
ANY: t.Final = TypeTag(Kind.INTERFACE)
FUNCTION: t.Final = TypeTag(Kind.FUNCTION)


def pointer(elem: TypeTag | None = None) -> TypeTag:
    """Return a tag for a :class:`Ref` parameter referring to *elem*."""
    return TypeTag(Kind.POINTER, elem=elem)


def sequence(elem: TypeTag | None = None) -> TypeTag:
    """Return a tag for a list of *elem*."""
    return TypeTag(Kind.SEQUENCE, elem=elem)


def mapping(key: TypeTag | None = None, value: TypeTag | None = None) -> TypeTag:
    """Return a tag for a dict from *key* to *value*."""
    return TypeTag(Kind.MAPPING, key=key, elem=value)


def channel(elem: TypeTag | None = None, py_type: type | None = None) -> TypeTag:
    """Return a tag for a queue carrying *elem* values."""
    return TypeTag(Kind.CHANNEL, py_type=py_type, elem=elem)


def struct(py_type: type) -> TypeTag:
    """Return a tag for a value type constructed by calling *py_type*."""
    return TypeTag(Kind.STRUCT, py_type=py_type)


def interface(py_type: type | None = None) -> TypeTag:
    """Return a tag for an open capability, optionally bound to *py_type*."""
    return TypeTag(Kind.INTERFACE, py_type=py_type)


@dc.dataclass(frozen=True, slots=True)
class MethodSignature:
    """Ordered parameter and return slots of a mocked method."""

    params: tuple[TypeTag, ...] = ()
    returns: tuple[TypeTag, ...] = ()

    @classmethod
    def of(
        cls,
        params: cabc.Iterable[TypeTag] = (),
        returns: cabc.Iterable[TypeTag] = (),
    ) -> MethodSignature:
        """Build a signature from any iterables of tags."""
        return cls(tuple(params), tuple(returns))

    def zero_returns(self) -> list[object]:
        """Return the zero value of every return slot."""
        return [tag.zero() for tag in self.returns]

    def __str__(self) -> str:
        """Render as ``func(params) (returns)``."""
        params = ", ".join(tag.name for tag in self.params)
        returns = ", ".join(tag.name for tag in self.returns)
        return f"func({params}) ({returns})"


def write_through(target: object, value: object) -> None:
    """Store *value* through the reference-like *target* argument.

    Raises
    ------
    TypeError
        When *target* offers no way to be written through.
    """
    if isinstance(target, Ref):
        target.set(value)
    elif isinstance(target, cabc.MutableSequence) and isinstance(
        value, cabc.Iterable
    ):
        target[:] = list(value)
    elif isinstance(target, cabc.MutableMapping) and isinstance(
        value, cabc.Mapping
    ):
        target.clear()
        target.update(value)
    else:
        msg = f"cannot write {type(value).__name__} through {type(target).__name__}"
        raise TypeError(msg)


__all__ = [
    "ANY",
    "BOOL",
    "BYTES",
    "COMPLEX",
    "FLOAT",
    "FUNCTION",
    "INT",
    "NILLABLE_KINDS",
    "STR",
    "Kind",
    "MethodSignature",
    "Ref",
    "TypeTag",
    "channel",
    "interface",
    "mapping",
    "pointer",
    "sequence",
    "struct",
    "write_through",
]
