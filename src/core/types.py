"""Shared typed models.

This module defines the immutable type descriptors and record aliases
used by the coercion engine, record codec, and store session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence, Union, runtime_checkable

Key = Union[int, str]
Scalar = Union[str, int, float, bool]
Row = list[str]
RawRow = Sequence[Union[str, None]]
Record = Union[Scalar, Mapping[Any, Any], Sequence[Any], Any]


@dataclass(frozen=True)
class SingleType:
    """Descriptor for a field declared with exactly one type.

    Attributes:
        py_type: Declared Python type, or ``typing.Any`` when untyped.
        nullable: Whether ``None`` is an accepted value.
    """

    py_type: Any
    nullable: bool = False


@dataclass(frozen=True)
class UnionType:
    """Descriptor for a field declared as a union of candidate types.

    Attributes:
        candidates: Declared member types, ``None`` excluded.
        nullable: Whether ``None`` was one of the declared members.
    """

    candidates: tuple[Any, ...]
    nullable: bool = False

    def contains(self, py_type: Any) -> bool:
        """Return whether the union declares exactly this member type."""
        return any(candidate is py_type for candidate in self.candidates)


TypeDescriptor = Union[SingleType, UnionType]


@runtime_checkable
class HasPrimaryKey(Protocol):
    """Capability for records that carry their own storage key."""

    def primary_key(self) -> Key:
        """Return the key this record is stored under."""
        ...


def has_primary_key(record: Any) -> bool:
    """Return whether a record's class defines a callable ``primary_key``.

    A plain attribute or dataclass field named ``primary_key`` does not count.
    """
    return callable(getattr(type(record), "primary_key", None))
