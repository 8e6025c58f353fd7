"""Runtime configuration model for csvstore.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import DEFAULT_DATA_ROOT, DEFAULT_ENCODING
from core.errors import CsvStoreConfigError


@dataclass(frozen=True)
class CsvStoreConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Base directory that relative store paths resolve against.
        encoding: Text encoding used for CSV file handles.
    """

    data_root: Path
    encoding: str

    @classmethod
    def from_env(cls) -> "CsvStoreConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            CsvStoreConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("CSVSTORE_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        encoding_value = os.getenv("CSVSTORE_ENCODING", DEFAULT_ENCODING)
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            encoding=_parse_encoding(encoding_value),
        )

    def resolve_path(self, path: str | Path) -> Path:
        """Resolve a store path against the configured data root."""
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return self.data_root / candidate


def _parse_encoding(raw_value: str) -> str:
    """Validate the encoding environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Canonical codec name.

    Raises:
        CsvStoreConfigError: If the codec is unknown.
    """
    try:
        return codecs.lookup(raw_value).name
    except LookupError as error:
        raise CsvStoreConfigError(
            "Invalid CSVSTORE_ENCODING value: "
            f"unknown codec '{raw_value}'. "
            "Set CSVSTORE_ENCODING to a codec name such as 'utf-8'."
        ) from error
