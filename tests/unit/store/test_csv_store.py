"""Unit tests for the CSV store session."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from core.constants import MEMORY_PATH
from core.errors import (
    AmbiguousUnionTypeError,
    FieldLookupError,
    FileNotExistsError,
    InvalidRecordShapeError,
    MalformedFileError,
    StoreClosedError,
)
from core.types import SingleType
from store.csv_store import CsvFileStore
from store.record_container import RecordContainer
from store.shape_registry import ShapeRegistry
from tests.fakes import (
    FakePair,
    FakePoint,
    FakeRowWithPrimaryKeyColumn,
    FakeTimestampedObject,
    FakeValueObject,
    FakeValueObjectWithPrimaryKey,
    FakeValueObjectWithUnions,
    FakeValueObjectWithUnionsError,
)
from tests.fixture_paths import fixture_path


def test_save_objects_in_memory() -> None:
    """Objects saved to a memory store should be found by key."""
    store = CsvFileStore(MEMORY_PATH, FakeValueObject)
    given = FakeValueObject()
    store.save(0, given)

    stored = store.find(0).unwrap()

    assert stored == given


def test_save_objects_with_primary_key_in_memory() -> None:
    """Objects saved under their primary key should be found by it."""
    store = CsvFileStore(MEMORY_PATH, FakeValueObjectWithPrimaryKey)
    given = FakeValueObjectWithPrimaryKey(id="abc123")
    store.save(given.primary_key(), given)

    stored = store.find("abc123").unwrap()

    assert stored == given


def test_save_maps_in_memory() -> None:
    """Field maps saved to a memory store should be found by key."""
    store = CsvFileStore(MEMORY_PATH)
    store.save(0, {"name": "eric"})

    stored = store.find(0).unwrap()

    assert stored == {"name": "eric"}


def test_scalar_values_persist_to_file(tmp_path: Path) -> None:
    """Scalars should reload as strings from a reopened store."""
    path = tmp_path / "scalars.csv"
    given = 2**44
    with CsvFileStore(path) as store:
        store.save(0, given)

    reopened = CsvFileStore(path)

    assert reopened.find(0).unwrap() == str(given)


def test_memory_store_starts_empty() -> None:
    """A memory store should hold no records."""
    store = CsvFileStore(MEMORY_PATH)

    assert store.find_all() == [] and len(store) == 0


def test_file_without_headers_loads_first_line_as_data() -> None:
    """Without a shape, the first line should be stored as a record."""
    store = CsvFileStore(fixture_path("without_headers.csv"))

    records = store.find_all()

    assert records == [{0: "alpha", 1: "beta"}, {0: "gamma", 1: "delta"}]


def test_scalar_single_line_file_loads_one_scalar() -> None:
    """A one-line single-column file should load as one scalar."""
    store = CsvFileStore(fixture_path("scalar_single_line.csv"))

    assert store.find(0).unwrap() == "42" and store.count() == 1


def test_empty_header_with_data_raises_malformed_error() -> None:
    """An all-empty header followed by rows should be malformed."""
    with pytest.raises(MalformedFileError):
        CsvFileStore(fixture_path("empty_headers.csv"))

    assert fixture_path("empty_headers.csv").exists()


def test_empty_header_with_object_shape_raises_malformed_error() -> None:
    """Object stores should also reject an all-empty header."""
    with pytest.raises(MalformedFileError):
        CsvFileStore(fixture_path("empty_headers.csv"), FakeValueObject)

    assert fixture_path("empty_headers.csv").exists()


def test_unopenable_path_raises_file_not_exists(tmp_path: Path) -> None:
    """A path in a missing directory should fail at construction."""
    missing = tmp_path / "no-such-dir" / "store.csv"

    with pytest.raises(FileNotExistsError):
        CsvFileStore(missing)

    assert not missing.exists()


def test_load_objects_from_file() -> None:
    """Object files should load typed instances."""
    store = CsvFileStore(fixture_path("object.csv"), FakeValueObject)

    record = store.find(0).unwrap()

    assert record == FakeValueObject()


def test_missing_object_key_is_not_found() -> None:
    """Looking up a key past the loaded rows should miss."""
    store = CsvFileStore(fixture_path("object.csv"), FakeValueObject)

    result = store.find(3).or_else(lambda: "not found")

    assert result == "not found"


def test_load_objects_with_primary_key_from_file() -> None:
    """Objects exposing a primary key should be keyed by it."""
    store = CsvFileStore(fixture_path("object_with_pkey.csv"), FakeValueObjectWithPrimaryKey)

    record = store.find("123").unwrap()

    assert record.id == "123" and store.keys() == ["123"]


def test_load_more_than_one_object_from_file() -> None:
    """Every data row should become one record."""
    store = CsvFileStore(fixture_path("object_2.csv"), FakeValueObject)

    assert len(store) == 2 and store.find(1).unwrap().my_null == "note"


def test_object_file_with_only_header_raises_malformed_error() -> None:
    """A header without data rows should be malformed for object stores."""
    with pytest.raises(MalformedFileError):
        CsvFileStore(fixture_path("object_malformed.csv"), FakeValueObject)

    assert fixture_path("object_malformed.csv").exists()


def test_unknown_column_raises_field_lookup_error() -> None:
    """A header column without a shape field should abort the load."""
    with pytest.raises(FieldLookupError):
        CsvFileStore(fixture_path("object_unknown_column.csv"), FakeValueObject)

    assert fixture_path("object_unknown_column.csv").exists()


def test_load_objects_with_union_fields() -> None:
    """Union fields should resolve through candidate precedence."""
    store = CsvFileStore(fixture_path("object_unions.csv"), FakeValueObjectWithUnions)

    first, second = store.find_all()

    assert first == FakeValueObjectWithUnions(
        str_un="hello",
        int_un=7,
        float_un=2.5,
        bool_un=True,
        date_time_un=datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
        date_un=date(2024, 1, 15),
        no_type="raw",
    )
    assert second == FakeValueObjectWithUnions(
        str_un="42",
        int_un=0,
        float_un=False,
        bool_un=False,
        date_time_un=datetime(1970, 1, 1, tzinfo=timezone.utc),
        date_un=date(1970, 1, 1),
        no_type="",
    )


def test_ambiguous_union_raises() -> None:
    """Unions without a recognized candidate should abort the load."""
    with pytest.raises(AmbiguousUnionTypeError):
        CsvFileStore(
            fixture_path("object_unions_malformed.csv"),
            FakeValueObjectWithUnionsError,
        )

    assert fixture_path("object_unions_malformed.csv").exists()


def test_commit_invalid_value_raises(tmp_path: Path) -> None:
    """Committing a closed file handle should be rejected."""
    store = CsvFileStore(MEMORY_PATH)
    handle = open(tmp_path / "resource.txt", "w", encoding="utf-8")
    handle.close()
    store.save(0, handle)

    with pytest.raises(InvalidRecordShapeError):
        store.commit()

    assert store.count() == 1


def test_commit_keeps_rows_written_before_invalid_value(tmp_path: Path) -> None:
    """Rows flushed before an invalid record should stay written."""
    path = tmp_path / "partial.csv"
    store = CsvFileStore(path)
    store.save(0, "kept")
    store.save(1, object())

    with pytest.raises(InvalidRecordShapeError):
        store.commit()
    store.close()

    assert path.read_text(encoding="utf-8") == "kept\n"


def test_store_creates_missing_file(tmp_path: Path) -> None:
    """Opening a store should create its backing file."""
    path = tmp_path / "created.csv"

    CsvFileStore(path).close()

    assert path.exists()


def test_commit_writes_header_once_before_objects(tmp_path: Path) -> None:
    """Object commits should write one header row then one row per object."""
    path = tmp_path / "objects.csv"
    store = CsvFileStore(path, FakeValueObject)
    store.save(0, FakeValueObject(title="one"))
    store.save(1, FakeValueObject(title="two", my_bool=True))

    store.commit()
    store.close()

    assert path.read_text(encoding="utf-8").splitlines() == [
        "title,my_input,my_int,my_bool,my_null,my_float",
        "one,what,0,false,,10.0",
        "two,what,0,true,,10.0",
    ]


def test_commit_is_idempotent(tmp_path: Path) -> None:
    """Repeated commits of unchanged state should write the same content."""
    path = tmp_path / "idempotent.csv"
    store = CsvFileStore(path)
    store.save(0, "a")
    store.save(1, {"x": "b", "y": "c"})
    store.commit()
    first = path.read_text(encoding="utf-8")

    store.commit()
    store.close()

    assert path.read_text(encoding="utf-8") == first == "a\nb,c\n"


def test_commit_replaces_prior_file_content(tmp_path: Path) -> None:
    """Commit should rewrite, not append to, an existing file."""
    path = tmp_path / "replace.csv"
    path.write_text("old\nrows\n", encoding="utf-8")
    store = CsvFileStore(path)
    store.remove(1)

    store.commit()
    store.close()

    assert path.read_text(encoding="utf-8") == "old\n"


def test_object_roundtrip_through_file(tmp_path: Path) -> None:
    """Objects should reload with their original field values."""
    path = tmp_path / "roundtrip.csv"
    given = FakeValueObjectWithPrimaryKey(title="a, quoted \"title\"", my_int=5, id="k-1")
    with CsvFileStore(path, FakeValueObjectWithPrimaryKey) as store:
        store.save(given.primary_key(), given)

    reopened = CsvFileStore(path, FakeValueObjectWithPrimaryKey)

    assert reopened.find("k-1").unwrap() == given


def test_load_runs_once_per_session() -> None:
    """Calling load again should not duplicate records."""
    store = CsvFileStore(fixture_path("object_2.csv"), FakeValueObject)

    store.load()

    assert store.count() == 2


def test_deferred_load_keeps_preseeded_records_for_empty_file(tmp_path: Path) -> None:
    """An empty file should leave a pre-seeded container untouched."""
    container = RecordContainer()
    container.save("seed", "value")
    store = CsvFileStore(tmp_path / "empty.csv", container=container, auto_load=False)

    store.load()

    assert store.find_all() == ["value"] and store.file_size == 0


def test_closed_store_rejects_commit() -> None:
    """A closed session should not accept further I/O."""
    store = CsvFileStore(MEMORY_PATH)
    store.close()

    with pytest.raises(StoreClosedError):
        store.commit()

    assert store.closed


def test_context_manager_skips_commit_on_error(tmp_path: Path) -> None:
    """A failing block should close without committing."""
    path = tmp_path / "aborted.csv"

    with pytest.raises(RuntimeError):
        with CsvFileStore(path) as store:
            store.save(0, "never written")
            raise RuntimeError("boom")

    assert path.read_text(encoding="utf-8") == "" and store.closed


def test_file_size_is_recorded_at_open() -> None:
    """A non-empty backing file should report its size from open."""
    path = fixture_path("object.csv")

    store = CsvFileStore(path, FakeValueObject)

    assert store.file_size == path.stat().st_size > 0


def test_primary_key_column_is_not_treated_as_key_method() -> None:
    """A field named primary_key should not replace sequence keys."""
    store = CsvFileStore(
        fixture_path("object_primary_key_column.csv"), FakeRowWithPrimaryKeyColumn
    )

    record = store.find(0).unwrap()

    assert record.primary_key == "k1" and store.keys() == [0]


def _point_registry() -> ShapeRegistry:
    registry = ShapeRegistry()
    registry.register("point", FakePoint, {"x": SingleType(int), "y": SingleType(int)})
    registry.register("pair", FakePair, {"left": SingleType(str), "right": SingleType(int)})
    return registry


def test_load_objects_from_factory_shape() -> None:
    """Shapes registered with a plain factory should load typed records."""
    store = CsvFileStore(
        fixture_path("object_factory_point.csv"), "point", registry=_point_registry()
    )

    record = store.find(0).unwrap()

    assert record == FakePoint(1, 2)


def test_factory_shape_roundtrip_through_file(tmp_path: Path) -> None:
    """Plain-class records should commit with a header and reload."""
    path = tmp_path / "points.csv"
    path.write_text("x,y\n1,2\n", encoding="utf-8")
    registry = _point_registry()
    with CsvFileStore(path, "point", registry=registry) as store:
        store.save(1, FakePoint(3, 4))

    reopened = CsvFileStore(path, "point", registry=registry)

    assert reopened.find_all() == [FakePoint(1, 2), FakePoint(3, 4)]
    assert path.read_text(encoding="utf-8") == "x,y\n1,2\n3,4\n"


def test_namedtuple_shape_roundtrip_through_file(tmp_path: Path) -> None:
    """Named tuple records should commit with a header and reload."""
    path = tmp_path / "pairs.csv"
    registry = _point_registry()
    with CsvFileStore(path, "pair", registry=registry) as store:
        store.save(0, FakePair("a", 1))
        store.save(1, FakePair("b", 2))

    reopened = CsvFileStore(path, "pair", registry=registry)

    assert reopened.find_all() == [FakePair("a", 1), FakePair("b", 2)]
    assert path.read_text(encoding="utf-8").splitlines()[0] == "left,right"


def test_commit_rejects_object_of_other_shape() -> None:
    """Objects that are not instances of the session shape should be rejected."""
    store = CsvFileStore(MEMORY_PATH, FakeValueObject)
    store.save(0, FakeValueObjectWithPrimaryKey(id="1"))

    with pytest.raises(InvalidRecordShapeError):
        store.commit()

    assert store.count() == 1


def test_date_fields_roundtrip_through_file(tmp_path: Path) -> None:
    """Datetime and date fields should reload with their original values."""
    path = tmp_path / "timestamps.csv"
    given = FakeTimestampedObject(
        label="launch",
        created_at=datetime(2024, 3, 1, 12, 0, 5, tzinfo=timezone.utc),
        due_on=date(2024, 3, 2),
    )
    with CsvFileStore(path, FakeTimestampedObject) as store:
        store.save(0, given)

    reopened = CsvFileStore(path, FakeTimestampedObject)

    assert reopened.find(0).unwrap() == given
    assert path.read_text(encoding="utf-8") == (
        "label,created_at,due_on\nlaunch,2024-03-01T12:00:05+00:00,2024-03-02\n"
    )
