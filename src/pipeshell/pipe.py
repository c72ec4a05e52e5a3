"""Pipe class: an immutable node in a lazily-built pipeline DAG."""

import itertools
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence, Tuple

from .sources import Source

_pipe_ids = itertools.count(1)


def single_converter(entries: tuple) -> Any:
    """Convert a projected source tuple holding one entry into that entry."""
    return entries[0]


def tuple_converter(entries: tuple) -> tuple:
    """Convert a projected source tuple into a plain tuple record."""
    return tuple(entries)


def _callable_name(func: Callable) -> str:
    return getattr(func, "__name__", None) or func.__class__.__name__


class Pipe:
    """A deferred computation producing a sequence of records.

    A Pipe is one of three things:

    - a head pipe reading a source with no transformation applied
      (``source`` is set, see :meth:`is_direct_source_read`)
    - a pipe backed by an already collected, in-memory result
      (``collection`` is set)
    - a transformation over one or more upstream pipes (``transform`` is set)

    Pipes are never mutated. Upstreams are shared references, so a single
    pipe can feed many downstream pipes without being copied.

    Attributes:
        id: Process-unique identifier, used for hashing and equality
        name: Human-readable label
        element_type: Type tag of the produced records (None when unknown)
        upstreams: Ordered tuple of upstream pipes
        source: Source read by a head pipe
        fields: Names of the source tuple entries projected for each record
        converter: Turns a projected tuple into a record
        collection: In-memory records of a collected pipe
        transform: Callable receiving one record stream per upstream
        partitionwise: True when ``transform`` handles any slice of its input
            independently (map/filter/flat_map), so engines may split it
    """

    def __init__(
        self,
        *,
        upstreams: Sequence["Pipe"] = (),
        transform: Optional[Callable[..., Iterable]] = None,
        source: Optional[Source] = None,
        fields: Optional[Sequence[str]] = None,
        converter: Optional[Callable[[tuple], Any]] = None,
        collection: Optional[Iterable] = None,
        element_type: Optional[type] = None,
        name: Optional[str] = None,
        partitionwise: bool = False,
    ):
        kinds = [source is not None, collection is not None, transform is not None]
        if sum(kinds) != 1:
            raise ValueError(
                "A Pipe needs exactly one of 'source', 'collection' or 'transform'"
            )
        if transform is not None:
            if not callable(transform):
                raise TypeError(f"transform must be callable, got {transform!r}")
            if not upstreams:
                raise ValueError("A transform pipe needs at least one upstream")
        elif upstreams:
            raise ValueError("Only transform pipes can have upstreams")

        self._id = next(_pipe_ids)
        self._upstreams = tuple(upstreams)
        self._transform = transform
        self._source = source
        self._collection = tuple(collection) if collection is not None else None
        self._element_type = element_type
        self._partitionwise = partitionwise

        if source is not None:
            self._fields = tuple(fields) if fields is not None else tuple(source.fields)
            unknown = [f for f in self._fields if f not in source.fields]
            if unknown:
                raise ValueError(
                    f"Fields {unknown} are not provided by source '{source.name}'. "
                    f"Available fields: {', '.join(source.fields)}"
                )
            if converter is None:
                converter = single_converter if len(self._fields) == 1 else tuple_converter
        else:
            self._fields = ()
        self._converter = converter

        if name is None:
            if source is not None:
                name = source.name
            elif collection is not None:
                name = "iterable"
            else:
                name = _callable_name(transform)
        self._name = name

    @classmethod
    def from_source(
        cls,
        source: Source,
        fields: Optional[Sequence[str]] = None,
        converter: Optional[Callable[[tuple], Any]] = None,
        element_type: Optional[type] = None,
    ) -> "Pipe":
        """Create a head pipe reading ``source`` without transformation."""
        if element_type is None:
            element_type = source.element_type
        return cls(
            source=source,
            fields=fields,
            converter=converter,
            element_type=element_type,
        )

    @classmethod
    def from_iterable(
        cls,
        records: Iterable,
        element_type: Optional[type] = None,
        name: Optional[str] = None,
    ) -> "Pipe":
        """Create a pipe backed by an in-memory collection of records."""
        return cls(collection=records, element_type=element_type, name=name)

    @classmethod
    def merge(cls, *pipes: "Pipe") -> "Pipe":
        """Concatenate the outputs of several pipes, in argument order."""
        if len(pipes) < 2:
            raise ValueError("merge needs at least two pipes")
        types = {p.element_type for p in pipes}
        element_type = types.pop() if len(types) == 1 else None
        return cls(
            upstreams=pipes,
            transform=_concat,
            element_type=element_type,
            name="merge",
        )

    @property
    def id(self) -> int:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def element_type(self) -> Optional[type]:
        return self._element_type

    @property
    def upstreams(self) -> Tuple["Pipe", ...]:
        return self._upstreams

    @property
    def source(self) -> Optional[Source]:
        return self._source

    @property
    def fields(self) -> Tuple[str, ...]:
        return self._fields

    @property
    def converter(self) -> Optional[Callable[[tuple], Any]]:
        return self._converter

    @property
    def collection(self) -> Optional[tuple]:
        return self._collection

    @property
    def transform(self) -> Optional[Callable[..., Iterable]]:
        return self._transform

    @property
    def partitionwise(self) -> bool:
        return self._partitionwise

    def is_direct_source_read(self) -> bool:
        """True when this pipe is an unmodified read of a source."""
        return self._source is not None

    def compose(
        self,
        transform: Callable[[Iterable], Iterable],
        element_type: Optional[type] = None,
        name: Optional[str] = None,
        partitionwise: bool = False,
    ) -> "Pipe":
        """Return a new pipe applying ``transform`` to this pipe's records.

        ``transform`` receives an iterable over this pipe's output and returns
        an iterable of new records. The receiver is left untouched.
        """
        return Pipe(
            upstreams=(self,),
            transform=transform,
            element_type=element_type,
            name=name,
            partitionwise=partitionwise,
        )

    def map(self, func: Callable[[Any], Any], element_type: Optional[type] = None) -> "Pipe":
        return self.compose(
            _MapTransform(func),
            element_type=element_type,
            name=f"map({_callable_name(func)})",
            partitionwise=True,
        )

    def filter(self, predicate: Callable[[Any], bool]) -> "Pipe":
        return self.compose(
            _FilterTransform(predicate),
            element_type=self._element_type,
            name=f"filter({_callable_name(predicate)})",
            partitionwise=True,
        )

    def flat_map(
        self, func: Callable[[Any], Iterable], element_type: Optional[type] = None
    ) -> "Pipe":
        return self.compose(
            _FlatMapTransform(func),
            element_type=element_type,
            name=f"flat_map({_callable_name(func)})",
            partitionwise=True,
        )

    def convert(self, tuples: Iterable[tuple]) -> Iterator:
        """Convert raw source tuples into records of this head pipe."""
        if self._source is None:
            raise ValueError(f"{self!r} does not read a source")
        positions = [self._source.fields.index(f) for f in self._fields]
        converter = self._converter
        return (converter(tuple(tup[i] for i in positions)) for tup in tuples)

    def compute(self, upstream_outputs: Sequence[Iterable]) -> Iterator:
        """Evaluate this single pipe given the outputs of its upstreams.

        Args:
            upstream_outputs: One iterable per upstream, in upstream order

        Returns:
            Iterator over this pipe's records
        """
        if self._source is not None:
            return self.convert(self._source.open_for_read())
        if self._collection is not None:
            return iter(self._collection)
        return iter(self._transform(*upstream_outputs))

    def __add__(self, other: "Pipe") -> "Pipe":
        if not isinstance(other, Pipe):
            return NotImplemented
        return Pipe.merge(self, other)

    def __repr__(self) -> str:
        return f"Pipe({self._name}, id={self._id})"

    def __hash__(self) -> int:
        return hash(("Pipe", self._id))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Pipe):
            return False
        return self._id == other._id

    def __dask_tokenize__(self):
        return ("pipeshell.Pipe", self._id)


def _concat(*streams: Iterable) -> Iterator:
    return itertools.chain.from_iterable(streams)


class _MapTransform:
    """Apply ``func`` to every record of a stream."""

    def __init__(self, func: Callable):
        self.func = func

    def __call__(self, stream: Iterable) -> Iterator:
        func = self.func
        return (func(record) for record in stream)


class _FilterTransform(_MapTransform):
    def __call__(self, stream: Iterable) -> Iterator:
        func = self.func
        return (record for record in stream if func(record))


class _FlatMapTransform(_MapTransform):
    def __call__(self, stream: Iterable) -> Iterator:
        func = self.func
        return (item for record in stream for item in func(record))
