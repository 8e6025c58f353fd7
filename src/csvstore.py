"""Public SDK surface for csvstore.

This module provides a stable import path for store users.
It re-exports the store session, shape registry, and error types.
"""

from __future__ import annotations

from core.config import CsvStoreConfig
from core.constants import MEMORY_PATH
from core.errors import (
    AmbiguousUnionTypeError,
    CoercionError,
    CsvStoreConfigError,
    CsvStoreError,
    FieldLookupError,
    FileNotExistsError,
    InvalidRecordShapeError,
    MalformedFileError,
    RecordNotFoundError,
    ShapeNotRegisteredError,
    StoreClosedError,
)
from core.types import HasPrimaryKey, SingleType, UnionType
from store.coercion import coerce
from store.csv_store import CsvFileStore
from store.lifecycle_hooks import CsvStoreLifecycleHooks
from store.record_container import FindResult, RecordContainer
from store.shape_registry import ShapeDefinition, ShapeRegistry, shape_registry

__all__ = [
    "AmbiguousUnionTypeError",
    "CoercionError",
    "CsvFileStore",
    "CsvStoreConfig",
    "CsvStoreConfigError",
    "CsvStoreError",
    "CsvStoreLifecycleHooks",
    "FieldLookupError",
    "FileNotExistsError",
    "FindResult",
    "HasPrimaryKey",
    "InvalidRecordShapeError",
    "MEMORY_PATH",
    "MalformedFileError",
    "RecordContainer",
    "RecordNotFoundError",
    "ShapeDefinition",
    "ShapeNotRegisteredError",
    "ShapeRegistry",
    "SingleType",
    "StoreClosedError",
    "UnionType",
    "coerce",
    "shape_registry",
]
