"""Lifecycle hooks that bind a store to init/destroy moments.

``on_init`` loads the store; ``on_destroy`` persists it and then releases
its resources, closing even when persisting fails.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Loadable(Protocol):
    """Supports loading data from the storage context."""

    def load(self) -> None:
        ...


@runtime_checkable
class Persistable(Protocol):
    """Supports persisting data into the storage context."""

    def persist(self) -> None:
        ...


@runtime_checkable
class Closable(Protocol):
    """Provides resource closing."""

    def close(self) -> None:
        ...


class ManagedStorage(Loadable, Persistable, Closable, Protocol):
    """Storage that can be loaded, persisted, and closed."""


class CsvStoreLifecycleHooks:
    """Init/destroy hook pair for a managed storage."""

    def __init__(self, storage: ManagedStorage) -> None:
        self._storage = storage

    def on_init(self) -> None:
        self._storage.load()

    def on_destroy(self) -> None:
        try:
            self._storage.persist()
        finally:
            self._storage.close()
