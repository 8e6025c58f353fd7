"""Row <-> record conversion.

This module turns one parsed CSV row into a scalar, field map, or typed
object record, and turns records back into rows of string tokens. The
CSV dialect shared by readers and writers is declared here as well.
"""

from __future__ import annotations

import csv
import dataclasses
from datetime import date, datetime
from typing import Any, Mapping, Sequence

from core.constants import (
    BOOL_FALSE_TEXT,
    BOOL_TRUE_TEXT,
    CSV_DELIMITER,
    CSV_ESCAPE_CHAR,
    CSV_LINE_TERMINATOR,
    CSV_QUOTE_CHAR,
    DATETIME_TIMESPEC,
)
from core.errors import InvalidRecordShapeError, MalformedFileError
from core.types import RawRow, Record, Row
from store.coercion import coerce
from store.shape_registry import ShapeDefinition

_SCALAR_TYPES = (str, int, float, bool, date)


class StoreDialect(csv.Dialect):
    """Comma-delimited CSV with backslash escapes and ``\\n`` line ends."""

    delimiter = CSV_DELIMITER
    quotechar = CSV_QUOTE_CHAR
    escapechar = CSV_ESCAPE_CHAR
    doublequote = True
    skipinitialspace = False
    lineterminator = CSV_LINE_TERMINATOR
    quoting = csv.QUOTE_MINIMAL
    strict = False


def decode_row(
    headers: Sequence[str],
    row: RawRow,
    shape: ShapeDefinition | None = None,
) -> Record:
    """Decode one CSV row into a record.

    Args:
        headers: Column names from the header row.
        row: Raw cell values.
        shape: Declared object shape, if any.

    Returns:
        A scalar string for single-column rows without a shape, a typed
        object when a shape is declared, or a position-keyed field map.

    Raises:
        MalformedFileError: If an object row does not match the header width.
        FieldLookupError: If a header names no field of the shape.
        AmbiguousUnionTypeError: If a union field has no usable candidate.
    """
    if shape is None:
        if len(row) == 1:
            return row[0] or ""
        return {index: cell or "" for index, cell in enumerate(row)}
    if len(headers) != len(row):
        raise MalformedFileError(
            f"Row has {len(row)} columns but the header declares {len(headers)}: {list(row)}"
        )
    values = {
        name: coerce(cell, shape.field_type(name), field_name=name)
        for name, cell in zip(headers, row)
    }
    return shape.build(values)


def is_object_record(record: Any) -> bool:
    """Return whether a record is a dataclass instance.

    Args:
        record: Record to inspect.

    Returns:
        True for dataclass instances, False for dataclass types and
        everything else.
    """
    return dataclasses.is_dataclass(record) and not isinstance(record, type)


def is_shape_record(record: Any, shape: ShapeDefinition) -> bool:
    """Return whether a record is an instance of a declared shape.

    Class factories match by instance type; records built by other
    factories match when they expose every declared field as an attribute.

    Args:
        record: Record to inspect.
        shape: Declared object shape of the session.

    Returns:
        Whether the record encodes through the shape's field table.
    """
    if isinstance(record, _SCALAR_TYPES) or isinstance(record, Mapping):
        return False
    if isinstance(shape.factory, type):
        return isinstance(record, shape.factory)
    return bool(shape.field_names) and all(
        hasattr(record, name) for name in shape.field_names
    )


def header_for(record: Any, shape: ShapeDefinition | None = None) -> Row:
    """Return the column names of an object record in declaration order.

    Args:
        record: Object record.
        shape: Declared shape; its field table wins over dataclass fields.

    Returns:
        Column names for the header row.
    """
    if shape is not None:
        return list(shape.field_names)
    return [field.name for field in _object_fields(record)]


def encode_record(record: Record, shape: ShapeDefinition | None = None) -> Row:
    """Encode one record as a row of string tokens.

    Args:
        record: Scalar, field map, sequence, or object record.
        shape: Declared shape of the session, if any.

    Returns:
        Row of string tokens.

    Raises:
        InvalidRecordShapeError: If the record is not a scalar, field map,
            sequence, or typed object.
    """
    if isinstance(record, _SCALAR_TYPES):
        return [stringify(record)]
    if shape is not None and is_shape_record(record, shape):
        return [stringify(getattr(record, name)) for name in shape.field_names]
    if isinstance(record, Mapping):
        return [stringify(value) for value in record.values()]
    if isinstance(record, (list, tuple)):
        return [stringify(value) for value in record]
    if is_object_record(record):
        return [stringify(getattr(record, field.name)) for field in _object_fields(record)]
    raise InvalidRecordShapeError(
        f"Invalid value of type {type(record).__name__}. "
        "Only objects, scalars, and field maps are allowed."
    )


def stringify(value: Any) -> str:
    """Render one field value as a CSV token.

    Datetimes use ISO-8601 at second precision; non-scalar values render
    as an empty token.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return BOOL_TRUE_TEXT if value else BOOL_FALSE_TEXT
    if isinstance(value, datetime):
        return value.isoformat(timespec=DATETIME_TIMESPEC)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (str, int, float)):
        return str(value)
    return ""


class RowEncoder:
    """Encode a record stream, emitting the object header exactly once.

    With a declared shape, shape instances encode through its field table
    and any other object record is rejected. Without one, the first
    dataclass record fixes the shape of the file.
    """

    def __init__(self, shape: ShapeDefinition | None = None) -> None:
        self._shape = shape
        self._object_type: type | None = None
        self._header_written = False

    @property
    def object_type(self) -> type | None:
        """Type of the first object record encoded, if any."""
        return self._object_type

    def rows_for(self, record: Record) -> list[Row]:
        """Return the rows to write for one record, header included if due.

        Args:
            record: Record to encode.

        Returns:
            One data row, preceded by the header row for the first object.

        Raises:
            InvalidRecordShapeError: If the record cannot be encoded or its
                shape differs from the file's object shape.
        """
        if self._shape is not None and is_shape_record(record, self._shape):
            return self._with_header(record, encode_record(record, self._shape))
        row = encode_record(record)
        if not is_object_record(record):
            return [row]
        if self._shape is not None:
            raise InvalidRecordShapeError(
                f"Cannot store {type(record).__name__} in a file of shape "
                f"'{self._shape.shape_id}'."
            )
        if self._object_type is not None and type(record) is not self._object_type:
            raise InvalidRecordShapeError(
                f"Cannot mix shapes in one file: got {type(record).__name__} "
                f"after {self._object_type.__name__}."
            )
        return self._with_header(record, row)

    def _with_header(self, record: Any, row: Row) -> list[Row]:
        """Prefix the header row when no object has been written yet.

        Args:
            record: Object record the row was encoded from.
            row: Encoded data row.

        Returns:
            The rows to write for this record.
        """
        if self._header_written:
            return [row]
        self._header_written = True
        self._object_type = type(record)
        return [header_for(record, self._shape), row]


def _object_fields(record: Any) -> list[dataclasses.Field[Any]]:
    """Return the constructor fields of a dataclass record.

    Args:
        record: Dataclass instance.

    Returns:
        Fields accepted by ``__init__``, in declaration order.
    """
    return [field for field in dataclasses.fields(record) if field.init]
