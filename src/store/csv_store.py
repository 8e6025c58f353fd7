"""CSV-backed store session.

This module owns the file handles of one store session. It drives the
load pass that rehydrates records from the file into the container and
the commit pass that rewrites the file from the container.
"""

from __future__ import annotations

import csv
import io
import os
from pathlib import Path
from types import TracebackType
from typing import IO, Any, Callable

from core.config import CsvStoreConfig
from core.constants import FIRST_SEQUENCE_KEY, MEMORY_PATH
from core.errors import (
    FileNotExistsError,
    InvalidRecordShapeError,
    MalformedFileError,
    StoreClosedError,
)
from core.logging_config import get_logger
from core.types import Key, RawRow, Record, has_primary_key
from store.record_codec import RowEncoder, StoreDialect, decode_row
from store.record_container import FindResult, RecordContainer
from store.shape_registry import ShapeDefinition, ShapeRegistry, shape_registry

_LOGGER = get_logger(__name__)


class CsvFileStore:
    """Key-addressable record store persisted as one CSV file.

    The session opens its write handle first (creating a missing file),
    records the file size, then opens its read handle. A file that was
    empty at open is never parsed; otherwise ``load`` rebuilds records
    from the header and rows. ``commit`` rewrites the whole file from the
    container and may run any number of times before ``close``.
    """

    def __init__(
        self,
        path: str | Path,
        shape: str | type | ShapeDefinition | None = None,
        *,
        container: RecordContainer | None = None,
        registry: ShapeRegistry | None = None,
        config: CsvStoreConfig | None = None,
        auto_load: bool = True,
    ) -> None:
        """Open a store session.

        Args:
            path: Backing file path, or ``":memory:"`` for an unpersisted buffer.
            shape: Optional object shape as an id, class, or definition.
            container: Optional pre-built container; a new one when omitted.
            registry: Shape registry used to resolve ``shape``.
            config: Runtime configuration; read from env when omitted.
            auto_load: Whether to run the load pass during construction.

        Raises:
            FileNotExistsError: If the path cannot be opened for read/write.
            MalformedFileError: If the file content is malformed.
            AmbiguousUnionTypeError: If a union field cannot be resolved.
        """
        self._config = config or CsvStoreConfig.from_env()
        self._registry = registry or shape_registry
        self._shape = self._registry.resolve(shape) if shape is not None else None
        self._container = container if container is not None else RecordContainer()
        self._next_key: int = FIRST_SEQUENCE_KEY
        self._loaded = False
        self._closed = False
        self._in_memory = str(path) == MEMORY_PATH
        self._path = None if self._in_memory else self._config.resolve_path(path)
        self._write_stream, self._read_stream, self._file_size = self._open_streams()
        _LOGGER.info(
            "store_opened",
            path=self.location,
            file_size=self._file_size,
            shape_id=self._shape.shape_id if self._shape else None,
        )
        if auto_load:
            try:
                self.load()
            except Exception:
                self.close()
                raise

    @property
    def location(self) -> str:
        return MEMORY_PATH if self._path is None else str(self._path)

    @property
    def shape(self) -> ShapeDefinition | None:
        return self._shape

    @property
    def container(self) -> RecordContainer:
        return self._container

    @property
    def file_size(self) -> int:
        """Size of the backing file when the session was opened."""
        return self._file_size

    @property
    def closed(self) -> bool:
        return self._closed

    def load(self) -> None:
        """Rehydrate records from the backing file into the container.

        Runs at most once per session and is a no-op for a file that was
        empty at open.

        Raises:
            MalformedFileError: If the header is empty while data rows
                follow, or if parsing yields no records.
            FieldLookupError: If a header column names no shape field.
            AmbiguousUnionTypeError: If a union field cannot be resolved.
        """
        self._ensure_open()
        if self._loaded:
            return
        self._loaded = True
        if self._file_size == 0:
            return
        rows = self._read_rows()
        header, data_rows = rows[0], rows[1:]
        if not any(header) and data_rows:
            raise MalformedFileError(
                f"Malformed CSV file {self.location}: header line has no column names."
            )
        if self._shape is None:
            self._store_row(header, header)
        for row in data_rows:
            self._store_row(header, row)
        if self._container.count() == 0:
            raise MalformedFileError(
                f"Malformed CSV file {self.location}: no records could be loaded."
            )
        _LOGGER.info("store_loaded", path=self.location, record_count=self._container.count())

    def commit(self) -> None:
        """Rewrite the backing file from the container.

        Prior file content is replaced, not appended to. Rows written
        before an invalid record stay written.

        Raises:
            InvalidRecordShapeError: If a record is not a scalar, field map,
                or typed object, mixes object shapes, or is an object that
                does not match the session shape.
        """
        self._ensure_open()
        stream = self._write_stream
        stream.seek(0)
        stream.truncate(0)
        writer = csv.writer(stream, dialect=StoreDialect)
        encoder = RowEncoder(self._shape)
        record_count = 0
        try:
            for key, record in self._container:
                try:
                    writer.writerows(encoder.rows_for(record))
                except InvalidRecordShapeError:
                    _LOGGER.warning(
                        "invalid_record_shape",
                        path=self.location,
                        key=key,
                        record_type=type(record).__name__,
                    )
                    raise
                record_count += 1
        finally:
            stream.flush()
        stream.seek(0)
        _LOGGER.info("store_committed", path=self.location, record_count=record_count)

    def persist(self) -> None:
        """Alias of ``commit`` for persistable lifecycle contracts."""
        self.commit()

    def close(self) -> None:
        """Release both handles; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        try:
            self._write_stream.flush()
            if not self._in_memory:
                os.fsync(self._write_stream.fileno())
        finally:
            try:
                self._write_stream.close()
            finally:
                if self._read_stream is not self._write_stream:
                    self._read_stream.close()
        _LOGGER.info("store_closed", path=self.location)

    def save(self, key: Key, record: Record) -> None:
        """Store a record under a key, overwriting any existing value.

        Args:
            key: Storage key.
            record: Record to store.
        """
        self._container.save(key, record)

    def replace(self, key: Key, record: Record) -> bool:
        """Overwrite the record stored under an existing key.

        Args:
            key: Storage key.
            record: Replacement record.

        Returns:
            Whether the key existed.
        """
        return self._container.replace(key, record)

    def remove(self, key: Key) -> bool:
        """Delete the record stored under a key.

        Returns:
            Whether the key existed.
        """
        return self._container.remove(key)

    def find(self, key: Key) -> FindResult:
        """Look up one record; the result may be empty."""
        return self._container.find(key)

    def find_all(self) -> list[Record]:
        return self._container.find_all()

    def keys(self) -> list[Key]:
        return self._container.keys()

    def count(self) -> int:
        """Return the number of records held by the session."""
        return self._container.count()

    def __len__(self) -> int:
        return self._container.count()

    def __enter__(self) -> "CsvFileStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Commit when the block succeeded, then close in every case."""
        try:
            if exc_type is None:
                self.commit()
        finally:
            self.close()

    def _open_streams(self) -> tuple[IO[str], IO[str], int]:
        """Open write then read handles and measure the file in between.

        Returns:
            Write stream, read stream, and file size at open. Both streams
            are one shared buffer for ``":memory:"``.

        Raises:
            FileNotExistsError: If either handle cannot be opened.
        """
        if self._in_memory:
            buffer = io.StringIO()
            return buffer, buffer, 0
        write_stream = _open_or_raise(
            self.location,
            lambda: open(self._path, "a", newline="", encoding=self._config.encoding),
        )
        try:
            file_size = os.fstat(write_stream.fileno()).st_size
            read_stream = _open_or_raise(
                self.location,
                lambda: open(self._path, "r", newline="", encoding=self._config.encoding),
            )
        except Exception:
            write_stream.close()
            raise
        return write_stream, read_stream, file_size

    def _read_rows(self) -> list[list[str]]:
        """Parse every row of the backing file.

        Raises:
            MalformedFileError: If the CSV or its encoding cannot be parsed.
        """
        self._read_stream.seek(0)
        try:
            return list(csv.reader(self._read_stream, dialect=StoreDialect))
        except (csv.Error, UnicodeDecodeError) as error:
            raise MalformedFileError(
                f"Failed to parse CSV file {self.location}: {error}"
            ) from error

    def _store_row(self, header: list[str], row: RawRow) -> None:
        # Blank lines parse as empty rows.
        if not row:
            return
        record = decode_row(header, row, self._shape)
        self._container.save(self._derive_key(record), record)

    def _derive_key(self, record: Record) -> Key:
        """Return the record's own key, or the next sequence key.

        Args:
            record: Decoded record.

        Returns:
            ``record.primary_key()`` when the record's class defines that
            method, otherwise the next integer in file order.
        """
        if has_primary_key(record):
            return record.primary_key()
        key = self._next_key
        self._next_key += 1
        return key

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError(f"Store session for {self.location} is closed.")


def _open_or_raise(location: str, opener: Callable[[], IO[Any]]) -> IO[Any]:
    """Run a file opener, mapping ``OSError`` to ``FileNotExistsError``.

    Args:
        location: Path reported in the error.
        opener: Zero-argument callable returning an open stream.

    Returns:
        The opened stream.

    Raises:
        FileNotExistsError: If the opener raised ``OSError``.
    """
    try:
        return opener()
    except OSError as error:
        raise FileNotExistsError(location) from error
