"""csvstore exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each stage of the load/commit pipeline raises a specific error type.
"""

from __future__ import annotations


class CsvStoreError(Exception):
    """Base exception for all csvstore failures."""


class CsvStoreConfigError(CsvStoreError):
    """Raised for invalid runtime configuration."""


class FileNotExistsError(CsvStoreError):
    """Raised when the backing file cannot be opened for read/write."""

    def __init__(self, filename: str) -> None:
        super().__init__(
            f"File or stream does not exist. Attempted to open {filename}. "
            "Check that the parent directory exists and is writable."
        )
        self.filename = filename


class MalformedFileError(CsvStoreError):
    """Raised when file content cannot yield a valid record set."""


class CoercionError(MalformedFileError):
    """Raised when a raw token cannot be converted to its declared type."""


class AmbiguousUnionTypeError(CsvStoreError):
    """Raised when no type can be confidently selected from a union."""


class InvalidRecordShapeError(CsvStoreError):
    """Raised when a record is not a scalar, field map, or typed object."""


class FieldLookupError(CsvStoreError, KeyError):
    """Raised when a header column has no matching field on the shape."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ShapeNotRegisteredError(CsvStoreError, KeyError):
    """Raised when a shape identifier has no registered constructor."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class RecordNotFoundError(CsvStoreError, KeyError):
    """Raised when unwrapping a lookup that found nothing."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class StoreClosedError(CsvStoreError):
    """Raised when a closed store session is used for I/O."""
