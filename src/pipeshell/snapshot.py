"""Snapshot stores: make a plan's output readable as a new pipe.

Two backends implement the same capability:

- MemorySnapshotStore collects the records into an immutable in-process
  tuple and returns a collection-backed pipe.
- TransientFileSnapshotStore writes the records to a uniquely named file
  under a temporary prefix and returns a head pipe reading that file.

Snapshots are ephemeral. Transient files are not cleaned up by this module.
"""

import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

from .engine import Engine
from .exceptions import MaterializationError
from .modes import BackendKind
from .pipe import Pipe
from .planner import ExecutionPlan
from .sources import MemorySink, Sink, SourceRegistry, TypedPickleFile

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "snapshot-"


@dataclass(frozen=True)
class SnapshotHandle:
    """Result of a successful materialization.

    Attributes:
        kind: Backend that holds the records
        pipe: New pipe reading the materialized records
        record_count: Number of records materialized
        location: Snapshot file path (transient-file kind only)
        snapshot_id: Unique identifier embedded in ``location``
    """

    kind: BackendKind
    pipe: Pipe
    record_count: int
    location: Optional[str] = None
    snapshot_id: Optional[str] = None


def execute_into(engine: Engine, plan: ExecutionPlan, sink: Sink) -> int:
    """Run ``plan`` on ``engine`` into ``sink``, wrapping any failure.

    Raises:
        MaterializationError: If execution or the sink write fails
    """
    try:
        return engine.run(plan, sink)
    except MaterializationError:
        raise
    except Exception as e:
        logger.error(f"Materialization of {plan.terminal!r} failed: {e}")
        raise MaterializationError(
            f"Failed to materialize {plan.terminal!r}: {type(e).__name__}: {e}"
        ) from e


class SnapshotStore(ABC):
    """Abstract base class for snapshot backends."""

    kind: BackendKind

    def __init__(self, engine: Engine):
        self.engine = engine

    @abstractmethod
    def materialize(self, plan: ExecutionPlan) -> SnapshotHandle:
        """Execute ``plan`` and make its output readable.

        Args:
            plan: Minimal plan of the terminal pipe

        Returns:
            SnapshotHandle whose pipe yields the plan's records

        Raises:
            MaterializationError: If execution or writing fails
        """
        pass


class MemorySnapshotStore(SnapshotStore):
    """Collects a plan's output in process memory."""

    kind = BackendKind.MEMORY

    def materialize(self, plan: ExecutionPlan) -> SnapshotHandle:
        sink = MemorySink()
        count = execute_into(self.engine, plan, sink)
        pipe = Pipe.from_iterable(
            sink.read_results(),
            element_type=plan.terminal.element_type,
            name=f"snapshot({plan.terminal.name})",
        )
        logger.debug(f"Collected {count} records of {plan.terminal!r} in memory")
        return SnapshotHandle(kind=self.kind, pipe=pipe, record_count=count)


class TransientFileSnapshotStore(SnapshotStore):
    """Writes a plan's output to a uniquely named temporary file.

    Files are named ``<temp_prefix>/snapshot-<uuid>.<extension>`` and are
    registered as sources in the session registry once written, so the
    returned pipe is a head pipe eligible for direct iteration.

    Attributes:
        registry: Session registry the snapshot file is registered in
        temp_prefix: Directory holding snapshot files
        extension: File extension, without the leading dot
        id_factory: Zero-argument callable returning a unique identifier
    """

    kind = BackendKind.TRANSIENT_FILE

    def __init__(
        self,
        engine: Engine,
        registry: SourceRegistry,
        temp_prefix: str,
        extension: str = "pkl",
        id_factory: Callable[[], Any] = uuid.uuid4,
    ):
        super().__init__(engine)
        self.registry = registry
        self.temp_prefix = str(temp_prefix)
        self.extension = extension.lstrip(".")
        self.id_factory = id_factory

    def new_location(self) -> Tuple[str, str]:
        """Generate a fresh ``(snapshot_id, path)`` pair."""
        snapshot_id = str(self.id_factory())
        path = os.path.join(
            self.temp_prefix, f"{SNAPSHOT_PREFIX}{snapshot_id}.{self.extension}"
        )
        return snapshot_id, path

    def materialize(self, plan: ExecutionPlan) -> SnapshotHandle:
        snapshot_id, location = self.new_location()
        try:
            Path(self.temp_prefix).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create snapshot directory {self.temp_prefix}: {e}")
            raise MaterializationError(
                f"Cannot create snapshot directory {self.temp_prefix}: {e}"
            ) from e

        dest = TypedPickleFile(
            location, element_type=plan.terminal.element_type, exclusive=True
        )
        count = execute_into(self.engine, plan, dest)
        self.registry.register(dest)
        logger.info(f"Wrote snapshot of {plan.terminal!r} ({count} records) to {location}")

        return SnapshotHandle(
            kind=self.kind,
            pipe=Pipe.from_source(dest),
            record_count=count,
            location=location,
            snapshot_id=snapshot_id,
        )


def store_for(
    kind: BackendKind,
    engine: Engine,
    registry: SourceRegistry,
    temp_prefix: str,
    extension: str = "pkl",
    id_factory: Callable[[], Any] = uuid.uuid4,
) -> SnapshotStore:
    """Build the snapshot store for a backend kind."""
    if kind is BackendKind.MEMORY:
        return MemorySnapshotStore(engine)
    if kind is BackendKind.TRANSIENT_FILE:
        return TransientFileSnapshotStore(
            engine,
            registry,
            temp_prefix=temp_prefix,
            extension=extension,
            id_factory=id_factory,
        )
    raise ValueError(f"Unknown backend kind: {kind!r}")
