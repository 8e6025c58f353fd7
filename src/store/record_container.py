"""In-memory key/value container for store sessions.

The container keeps records in insertion order so a commit writes rows
in the order they were loaded or saved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator

from core.errors import RecordNotFoundError
from core.types import Key, Record

_MISSING = object()


@dataclass(frozen=True)
class FindResult:
    """Outcome of a point lookup by key."""

    key: Key
    value: Any = _MISSING

    @property
    def found(self) -> bool:
        return self.value is not _MISSING

    def unwrap(self) -> Record:
        """Return the found record.

        Raises:
            RecordNotFoundError: If the lookup found nothing.
        """
        if not self.found:
            raise RecordNotFoundError(f"No record stored under key {self.key!r}")
        return self.value

    def or_else(self, fallback: Callable[[], Any]) -> Any:
        """Return the found record or the fallback's result."""
        return self.value if self.found else fallback()


class RecordContainer:
    """Insertion-ordered key -> record map."""

    def __init__(self) -> None:
        self._records: dict[Key, Record] = {}

    def save(self, key: Key, record: Record) -> None:
        """Insert a record, overwriting any record under the same key."""
        self._records[key] = record

    def replace(self, key: Key, record: Record) -> bool:
        """Replace an existing record; returns whether the key existed."""
        if key not in self._records:
            return False
        self._records[key] = record
        return True

    def remove(self, key: Key) -> bool:
        """Remove a record; returns whether the key existed."""
        return self._records.pop(key, _MISSING) is not _MISSING

    def find(self, key: Key) -> FindResult:
        if key in self._records:
            return FindResult(key=key, value=self._records[key])
        return FindResult(key=key)

    def find_all(self) -> list[Record]:
        return list(self._records.values())

    def keys(self) -> list[Key]:
        return list(self._records)

    def count(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[tuple[Key, Record]]:
        return iter(list(self._records.items()))
