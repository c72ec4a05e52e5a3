"""Interactive shell session and the iteration bridge.

A Shell owns the source registry, the execution engine and the
materializer of one session, and turns pipes into local iterators:

1. a head pipe reading a registered source is streamed straight from the
   source (the fast path, no snapshot is written)
2. a pipe backed by an in-memory collection is iterated directly
3. anything else is materialized once, and the snapshot is iterated

Example:
    >>> from pipeshell import MemorySource, Shell
    >>>
    >>> shell = Shell()
    >>> numbers = shell.from_source(MemorySource([1, 2, 3], name="numbers"))
    >>> shell.to_list(numbers.map(lambda x: x * 2))
    [2, 4, 6]
"""

import logging
import sys
from typing import IO, Any, Callable, Iterable, Iterator, List, Optional, Sequence

from .callbacks import CallbackDispatcher, ShellCallback
from .config import ShellConfiguration
from .engine import Engine
from .exceptions import InvalidPlanError, UnregisteredSourceError
from .materializer import Materializer
from .modes import RuntimeMode
from .pipe import Pipe
from .snapshot import SnapshotHandle
from .sources import Sink, Source, SourceRegistry

logger = logging.getLogger(__name__)


class Shell:
    """One interactive session over lazily-built pipes.

    Args:
        config: Session configuration (defaults to local mode)
        registry: Source registry (defaults to an empty one)
        engine: Engine override, takes precedence over ``config.engine``
        callbacks: Callback override, takes precedence over ``config.callbacks``
    """

    def __init__(
        self,
        config: Optional[ShellConfiguration] = None,
        registry: Optional[SourceRegistry] = None,
        engine: Optional[Engine] = None,
        callbacks: Optional[List[ShellCallback]] = None,
    ):
        config = config or ShellConfiguration()
        if engine is not None:
            config = config.with_engine(engine)
        if callbacks is not None:
            config = config.with_callbacks(callbacks)
        self.config = config
        self.registry = registry if registry is not None else SourceRegistry()
        self.materializer = Materializer(self.config, self.registry)
        self.dispatcher = CallbackDispatcher(self.config.effective_callbacks)

    @property
    def mode(self) -> RuntimeMode:
        return self.config.mode

    def from_source(
        self,
        source: Source,
        fields: Optional[Sequence[str]] = None,
        converter: Optional[Callable[[tuple], Any]] = None,
        element_type: Optional[type] = None,
    ) -> Pipe:
        """Register ``source`` and return a head pipe reading it."""
        self.registry.register(source)
        return Pipe.from_source(
            source, fields=fields, converter=converter, element_type=element_type
        )

    def from_iterable(self, records: Iterable, element_type: Optional[type] = None) -> Pipe:
        return Pipe.from_iterable(records, element_type=element_type)

    def materialize(self, pipe: Pipe) -> Pipe:
        """Materialize ``pipe`` and return a pipe over the snapshot."""
        return self.materializer.materialize(pipe)

    def snapshot(self, pipe: Pipe) -> SnapshotHandle:
        """Materialize ``pipe`` and return the snapshot handle."""
        return self.materializer.snapshot(pipe)

    def save(self, pipe: Pipe, dest: Sink) -> Pipe:
        """Write ``pipe`` to ``dest`` and return a head pipe reading it."""
        return self.materializer.save(pipe, dest)

    def iterate(self, pipe: Pipe) -> Iterator:
        """Create a local iterator over the records of ``pipe``.

        For anything but a head pipe reading a registered source or a
        collection-backed pipe, a snapshot is created first. All of that
        happens before this method returns, so a failure is raised here and
        no records are ever yielded from a failed call.

        Raises:
            UnregisteredSourceError: If ``pipe`` reads a source that is not
                registered in this session
            InvalidPlanError: If ``pipe`` is not a Pipe, or its graph is cyclic
                or malformed
            MaterializationError: If the snapshot could not be created
        """
        if not isinstance(pipe, Pipe):
            logger.error(f"Cannot iterate {type(pipe).__name__}: expected a Pipe")
            raise InvalidPlanError(f"Cannot iterate {type(pipe).__name__}: expected a Pipe")

        if pipe.is_direct_source_read():
            name = pipe.source.name
            if not self.registry.is_registered(name):
                logger.error(f"Head pipe {pipe!r} reads unregistered source '{name}'")
                raise UnregisteredSourceError(
                    f"Invalid head: {pipe!r} has no upstream, but no source "
                    f"named '{name}' is registered"
                )
            logger.debug(f"Iterating {pipe!r} directly from source '{name}'")
            self.dispatcher.notify_fast_path(pipe)
            return pipe.convert(self.registry.open_for_read(name))

        if pipe.collection is not None:
            return iter(pipe.collection)

        return self.iterate(self.materializer.materialize(pipe))

    def to_list(self, pipe: Pipe) -> List:
        """Collect the records of ``pipe`` into a list.

        The caller must make sure the results actually fit in memory.
        """
        return list(self.iterate(pipe))

    def dump(self, pipe: Pipe, stream: Optional[IO[str]] = None) -> None:
        """Print the records of ``pipe``, one per line (stdout by default)."""
        records = self.iterate(pipe)
        out = stream if stream is not None else sys.stdout
        for record in records:
            print(record, file=out)

    def enrich(self, pipe: Pipe) -> "ShellPipe":
        return ShellPipe(pipe, self)


class ShellPipe:
    """Enrichment on a Pipe allowing it to be run locally through a Shell.

    Args:
        pipe: Pipe to wrap
        shell: Session the pipe runs in
    """

    def __init__(self, pipe: Pipe, shell: Shell):
        self.pipe = pipe
        self.shell = shell

    def save(self, dest: Sink) -> Pipe:
        """Shorthand for writing to ``dest`` and reading it back."""
        return self.shell.save(self.pipe, dest)

    def snapshot(self) -> Pipe:
        """Save a snapshot of the pipe and return a pipe reading it."""
        return self.shell.materialize(self.pipe)

    def to_iterator(self) -> Iterator:
        return self.shell.iterate(self.pipe)

    def to_list(self) -> List:
        return self.shell.to_list(self.pipe)

    def dump(self, stream: Optional[IO[str]] = None) -> None:
        self.shell.dump(self.pipe, stream=stream)

    def __repr__(self) -> str:
        return f"ShellPipe({self.pipe!r})"
