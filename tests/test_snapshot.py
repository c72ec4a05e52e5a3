"""Tests for the memory and transient-file snapshot stores."""

import os
import re
import threading
import uuid

import pytest

from pipeshell import (
    BackendKind,
    MaterializationError,
    MemorySnapshotStore,
    MemorySource,
    Pipe,
    SeqEngine,
    SnapshotHandle,
    SourceRegistry,
    SubgraphPlanner,
    TransientFileSnapshotStore,
    TypedPickleFile,
)
from pipeshell.codec import read_records, write_records
from pipeshell.snapshot import store_for

UUID_PATTERN = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"


def _doubled():
    head = Pipe.from_source(MemorySource([1, 2, 3], name="numbers"), element_type=int)
    return head.map(lambda x: x * 2, element_type=int)


def _failing():
    def boom(x):
        if x == 2:
            raise RuntimeError("engine blew up")
        return x

    return Pipe.from_iterable([1, 2, 3]).map(boom)


def _transient_store(tmp_path, registry=None, **kwargs):
    return TransientFileSnapshotStore(
        SeqEngine(),
        registry if registry is not None else SourceRegistry(),
        temp_prefix=str(tmp_path / "snaps"),
        **kwargs,
    )


class TestMemorySnapshotStore:
    def test_materialize_collects_records(self):
        terminal = _doubled()
        handle = MemorySnapshotStore(SeqEngine()).materialize(SubgraphPlanner().plan(terminal))

        assert isinstance(handle, SnapshotHandle)
        assert handle.kind is BackendKind.MEMORY
        assert handle.record_count == 3
        assert handle.location is None
        assert handle.pipe.collection == (2, 4, 6)
        assert handle.pipe.element_type is terminal.element_type

    def test_failure_raises_materialization_error(self):
        store = MemorySnapshotStore(SeqEngine())

        with pytest.raises(MaterializationError, match="engine blew up") as exc_info:
            store.materialize(SubgraphPlanner().plan(_failing()))

        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestTransientFileSnapshotStore:
    def test_materialize_writes_uniquely_named_file(self, tmp_path):
        registry = SourceRegistry()
        store = _transient_store(tmp_path, registry)
        terminal = _doubled()

        handle = store.materialize(SubgraphPlanner().plan(terminal))

        prefix = re.escape(str(tmp_path / "snaps"))
        assert re.fullmatch(rf"{prefix}/snapshot-{UUID_PATTERN}\.pkl", handle.location)
        assert handle.snapshot_id in handle.location
        assert handle.kind is BackendKind.TRANSIENT_FILE
        assert handle.record_count == 3
        assert os.path.exists(handle.location)
        assert list(read_records(handle.location)) == [2, 4, 6]

    def test_snapshot_pipe_reads_registered_file(self, tmp_path):
        registry = SourceRegistry()
        handle = _transient_store(tmp_path, registry).materialize(
            SubgraphPlanner().plan(_doubled())
        )

        assert handle.pipe.is_direct_source_read()
        assert registry.is_registered(handle.location)
        assert handle.pipe.element_type is int
        assert list(handle.pipe.compute([])) == [2, 4, 6]

    def test_custom_extension_and_id_factory(self, tmp_path):
        store = _transient_store(tmp_path, extension=".seq", id_factory=lambda: "fixed")
        handle = store.materialize(SubgraphPlanner().plan(_doubled()))

        assert handle.location == str(tmp_path / "snaps" / "snapshot-fixed.seq")

    def test_locations_never_collide(self, tmp_path):
        store = _transient_store(tmp_path)
        locations = {store.new_location()[1] for _ in range(2000)}
        assert len(locations) == 2000

    def test_repeated_identifier_fails_instead_of_overwriting(self, tmp_path):
        store = _transient_store(tmp_path, id_factory=lambda: "same")
        plan = SubgraphPlanner().plan(_doubled())
        store.materialize(plan)

        with pytest.raises(MaterializationError):
            store.materialize(plan)

    def test_execution_failure_registers_nothing(self, tmp_path):
        registry = SourceRegistry()
        store = _transient_store(tmp_path, registry)

        with pytest.raises(MaterializationError):
            store.materialize(SubgraphPlanner().plan(_failing()))

        assert len(registry) == 0

    def test_write_failure_leaves_partial_file_behind(self, tmp_path):
        snapshot_id = uuid.uuid4()
        registry = SourceRegistry()
        store = _transient_store(tmp_path, registry, id_factory=lambda: snapshot_id)
        unpicklable = Pipe.from_iterable([1, threading.Lock()])

        with pytest.raises(MaterializationError):
            store.materialize(SubgraphPlanner().plan(unpicklable))

        location = tmp_path / "snaps" / f"snapshot-{snapshot_id}.pkl"
        assert location.exists()
        assert not registry.is_registered(str(location))

    def test_unwritable_prefix_raises_materialization_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = TransientFileSnapshotStore(
            SeqEngine(), SourceRegistry(), temp_prefix=str(blocker / "snaps")
        )

        with pytest.raises(MaterializationError):
            store.materialize(SubgraphPlanner().plan(_doubled()))


def test_store_for_dispatches_on_kind(tmp_path):
    registry = SourceRegistry()
    memory = store_for(BackendKind.MEMORY, SeqEngine(), registry, str(tmp_path))
    transient = store_for(BackendKind.TRANSIENT_FILE, SeqEngine(), registry, str(tmp_path))

    assert isinstance(memory, MemorySnapshotStore)
    assert isinstance(transient, TransientFileSnapshotStore)
    with pytest.raises(ValueError):
        store_for("bogus", SeqEngine(), registry, str(tmp_path))


def test_typed_pickle_file_streams_records(tmp_path):
    path = str(tmp_path / "records.pkl")
    dest = TypedPickleFile(path)

    assert dest.write([{"a": 1}, (2, 3), "four"]) == 3
    assert list(dest.open_for_read()) == [({"a": 1},), ((2, 3),), ("four",)]


def test_typed_pickle_file_missing_path(tmp_path):
    with pytest.raises(FileNotFoundError):
        TypedPickleFile(str(tmp_path / "missing.pkl")).open_for_read()


def test_codec_refuses_to_overwrite(tmp_path):
    path = str(tmp_path / "records.pkl")
    write_records(path, [1])

    with pytest.raises(FileExistsError):
        write_records(path, [2])
    assert write_records(path, [2, 3], exclusive=False) == 2
    assert list(read_records(path)) == [2, 3]
