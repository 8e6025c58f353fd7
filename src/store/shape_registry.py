"""Registry of record shapes and their field type tables.

This module maps shape identifiers to constructor factories and to a
field name -> type descriptor table built once at registration. The
store session consults the table instead of inspecting records per row.
"""

from __future__ import annotations

import dataclasses
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from core.errors import (
    FieldLookupError,
    InvalidRecordShapeError,
    MalformedFileError,
    ShapeNotRegisteredError,
)
from core.logging_config import get_logger
from core.types import SingleType, TypeDescriptor, UnionType

_LOGGER = get_logger(__name__)

ShapeFactory = Callable[..., Any]


@dataclass(frozen=True)
class ShapeDefinition:
    """Declared layout of one object record shape.

    Attributes:
        shape_id: Registry identifier.
        factory: Constructor called with coerced field values as keywords.
        fields: Field name to type descriptor table, in declaration order.
    """

    shape_id: str
    factory: ShapeFactory
    fields: Mapping[str, TypeDescriptor]

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(self.fields)

    def field_type(self, name: str) -> TypeDescriptor:
        """Return the descriptor of a declared field.

        Raises:
            FieldLookupError: If the shape declares no such field.
        """
        try:
            return self.fields[name]
        except KeyError as error:
            raise FieldLookupError(
                f"Column '{name}' has no matching field on shape '{self.shape_id}'. "
                f"Declared fields: {list(self.fields)}"
            ) from error

    def build(self, values: Mapping[str, Any]) -> Any:
        """Construct one record from coerced field values."""
        try:
            return self.factory(**values)
        except TypeError as error:
            raise MalformedFileError(
                f"Cannot construct shape '{self.shape_id}' from columns {list(values)}: {error}"
            ) from error


class ShapeRegistry:
    """Shape identifier -> definition lookup."""

    def __init__(self) -> None:
        self._shapes: dict[str, ShapeDefinition] = {}
        self._ids_by_type: dict[type, str] = {}

    def register(
        self,
        shape_id: str,
        factory: ShapeFactory,
        fields: Mapping[str, TypeDescriptor],
    ) -> ShapeDefinition:
        """Register a factory and its field type table under an identifier."""
        definition = ShapeDefinition(shape_id=shape_id, factory=factory, fields=dict(fields))
        self._shapes[shape_id] = definition
        if isinstance(factory, type):
            self._ids_by_type[factory] = shape_id
        _LOGGER.debug("shape_registered", shape_id=shape_id, fields=list(fields))
        return definition

    def register_dataclass(self, cls: type, shape_id: str | None = None) -> ShapeDefinition:
        """Register a dataclass, deriving its field table from type hints.

        Args:
            cls: Dataclass type used as both shape and factory.
            shape_id: Optional identifier; defaults to the qualified class name.

        Returns:
            Registered shape definition.

        Raises:
            InvalidRecordShapeError: If ``cls`` is not a dataclass type or its
                annotations cannot be resolved.
        """
        if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
            raise InvalidRecordShapeError(
                f"Cannot register {cls!r} as a shape: expected a dataclass type."
            )
        try:
            hints = typing.get_type_hints(cls)
        except NameError as error:
            raise InvalidRecordShapeError(
                f"Cannot resolve field annotations of {cls.__qualname__}: {error}"
            ) from error
        fields = {
            field.name: describe_type(hints.get(field.name, Any))
            for field in dataclasses.fields(cls)
            if field.init
        }
        return self.register(shape_id or default_shape_id(cls), cls, fields)

    def get(self, shape_id: str) -> ShapeDefinition:
        """Return a registered definition.

        Raises:
            ShapeNotRegisteredError: If nothing is registered under the id.
        """
        try:
            return self._shapes[shape_id]
        except KeyError as error:
            raise ShapeNotRegisteredError(
                f"Shape '{shape_id}' is not registered. "
                "Register a factory before opening a store with this shape."
            ) from error

    def resolve(self, shape: str | type | ShapeDefinition) -> ShapeDefinition:
        """Resolve an identifier, class, or definition to a definition.

        Unregistered dataclass types are registered on first use.
        """
        if isinstance(shape, ShapeDefinition):
            return shape
        if isinstance(shape, str):
            return self.get(shape)
        shape_id = self._ids_by_type.get(shape)
        if shape_id is not None:
            return self._shapes[shape_id]
        return self.register_dataclass(shape)

    def items(self) -> dict[str, ShapeDefinition]:
        return dict(self._shapes)

    def __contains__(self, shape_id: object) -> bool:
        return shape_id in self._shapes


def describe_type(annotation: Any) -> TypeDescriptor:
    """Build a type descriptor from one field annotation.

    ``Optional[X]`` becomes a nullable single type and ``X | Y`` a union;
    ``None`` members only mark the descriptor nullable.
    """
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        members = typing.get_args(annotation)
        nullable = type(None) in members
        candidates = tuple(member for member in members if member is not type(None))
        if len(candidates) == 1:
            return SingleType(candidates[0], nullable=nullable)
        return UnionType(candidates, nullable=nullable)
    return SingleType(annotation)


def default_shape_id(cls: type) -> str:
    """Return the identifier a class registers under by default."""
    return f"{cls.__module__}.{cls.__qualname__}"


shape_registry = ShapeRegistry()
