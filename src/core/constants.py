"""Core constants used across csvstore modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".")
DEFAULT_ENCODING = "utf-8"
MEMORY_PATH = ":memory:"
CSV_DELIMITER = ","
CSV_QUOTE_CHAR = '"'
CSV_ESCAPE_CHAR = "\\"
CSV_LINE_TERMINATOR = "\n"
DATETIME_TIMESPEC = "seconds"
UNIX_EPOCH = "1970-01-01 00:00:00+00:00"
BOOL_TRUE_TOKENS = frozenset({"1", "true", "yes", "on"})
BOOL_FALSE_TOKENS = frozenset({"", "0", "false", "no", "off"})
BOOL_TRUE_TEXT = "true"
BOOL_FALSE_TEXT = "false"
FIRST_SEQUENCE_KEY = 0
