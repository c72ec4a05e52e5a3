"""Sources, sinks and the session source registry.

A Source hands out raw tuples, one per record, laid out according to its
``fields``. A Sink accepts a stream of records. ``TypedPickleFile`` is both,
which is what lets a snapshot written by one plan be read back as a head
pipe.
"""

import itertools
import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from . import codec
from .exceptions import UnregisteredSourceError

logger = logging.getLogger(__name__)

_memory_source_ids = itertools.count(1)


class Source(ABC):
    """Abstract base class for readable record sources.

    Attributes:
        name: Registry key of the source
        fields: Names of the entries in every tuple the source yields
        element_type: Type tag of the records, if known
    """

    name: str
    fields: Tuple[str, ...] = ("record",)
    element_type: Optional[type] = None

    @abstractmethod
    def open_for_read(self) -> Iterator[tuple]:
        """Open the source and iterate over its raw tuples."""
        pass


class Sink(ABC):
    """Abstract base class for record sinks."""

    @abstractmethod
    def write(self, records: Iterable[Any]) -> int:
        """Consume ``records`` and return how many were written."""
        pass


class MemorySource(Source):
    """Source over records already held in memory.

    With a single field each record becomes a one-entry tuple; with several
    fields each record must itself be a sequence of that length.
    """

    def __init__(
        self,
        records: Iterable[Any],
        fields: Sequence[str] = ("record",),
        name: Optional[str] = None,
        element_type: Optional[type] = None,
    ):
        self.records = tuple(records)
        self.fields = tuple(fields)
        if not self.fields:
            raise ValueError("A source needs at least one field")
        self.name = name or f"memory-{next(_memory_source_ids)}"
        self.element_type = element_type

    def open_for_read(self) -> Iterator[tuple]:
        if len(self.fields) == 1:
            return ((record,) for record in self.records)
        return (tuple(record) for record in self.records)

    def __repr__(self) -> str:
        return f"MemorySource({self.name}, records={len(self.records)})"


class MemorySink(Sink):
    """Sink collecting records into an in-process list."""

    def __init__(self):
        self._results: List[Any] = []

    def write(self, records: Iterable[Any]) -> int:
        before = len(self._results)
        self._results.extend(records)
        return len(self._results) - before

    def read_results(self) -> tuple:
        """Return everything written so far as an immutable tuple."""
        return tuple(self._results)


class TypedPickleFile(Source, Sink):
    """File of cloudpickle-framed records, usable as both sink and source.

    Useful for debugging flows and for transient snapshots. Not to be used
    for permanent storage: the encoding is tied to the interpreter and
    library versions that wrote it.

    Args:
        path: File path, also used as the registered source name
        element_type: Declared type of the stored records
        exclusive: Refuse to overwrite an existing file. Writing replaces
            the file otherwise.
    """

    fields = ("record",)

    def __init__(
        self, path: str, element_type: Optional[type] = None, exclusive: bool = False
    ):
        self.path = str(path)
        self.name = self.path
        self.element_type = element_type
        self.exclusive = exclusive

    def write(self, records: Iterable[Any]) -> int:
        count = codec.write_records(self.path, records, exclusive=self.exclusive)
        logger.debug(f"Wrote {count} records to {self.path}")
        return count

    def open_for_read(self) -> Iterator[tuple]:
        if not os.path.exists(self.path):
            raise FileNotFoundError(f"Snapshot file not found: {self.path}")
        return ((record,) for record in codec.read_records(self.path))

    def __repr__(self) -> str:
        return f"TypedPickleFile({self.path})"


class SourceRegistry:
    """Sources known to the current session, keyed by name."""

    def __init__(self):
        self._sources: Dict[str, Source] = {}
        self._lock = threading.Lock()

    def register(self, source: Source) -> str:
        """Register ``source`` under its name, replacing any previous entry."""
        if not isinstance(source, Source):
            raise TypeError(f"Expected a Source, got {type(source).__name__}")
        with self._lock:
            existing = self._sources.get(source.name)
            self._sources[source.name] = source
        if existing is not None and existing is not source:
            logger.info(f"Replacing registered source '{source.name}'")
        else:
            logger.debug(f"Registered source '{source.name}'")
        return source.name

    def unregister(self, name: str) -> None:
        with self._lock:
            self._sources.pop(name, None)

    def is_registered(self, name: str) -> bool:
        return name in self._sources

    def get(self, name: str) -> Source:
        try:
            return self._sources[name]
        except KeyError:
            raise UnregisteredSourceError(
                f"No source named '{name}' is registered"
            ) from None

    def open_for_read(self, name: str) -> Iterator[tuple]:
        return self.get(name).open_for_read()

    @property
    def names(self) -> List[str]:
        return sorted(self._sources)

    def __contains__(self, name: str) -> bool:
        return self.is_registered(name)

    def __len__(self) -> int:
        return len(self._sources)
