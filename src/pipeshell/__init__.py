"""pipeshell: interactive materialization for lazily-built pipelines.

Build pipelines as a DAG of deferred transformations, then pull concrete
results into the local session without re-running unrelated branches:

- Head pipes over registered sources are streamed directly
- Anything else is snapshotted once, in memory for local and test runs or
  to a uniquely named transient file for distributed runs
- Only the minimal upstream subgraph of the requested pipe is executed

Example:
    >>> from pipeshell import MemorySource, Shell
    >>>
    >>> shell = Shell()
    >>> words = shell.from_source(MemorySource(["a", "bb", "ccc"], name="words"))
    >>> lengths = words.map(len)
    >>> shell.to_list(lengths)
    [1, 2, 3]
    >>> shell.enrich(lengths).dump()
    1
    2
    3
"""

from .callbacks import CallbackDispatcher, ShellCallback
from .config import ShellConfiguration, load_pipeshell_config
from .engines import DaskEngine, Engine, SeqEngine
from .exceptions import (
    ConfigurationError,
    InvalidPlanError,
    MaterializationError,
    PipeShellError,
    UnregisteredSourceError,
)
from .materializer import Materializer
from .modes import BackendKind, RuntimeMode, select_backend
from .pipe import Pipe, single_converter, tuple_converter
from .planner import ExecutionPlan, SubgraphPlanner
from .shell import Shell, ShellPipe
from .snapshot import (
    MemorySnapshotStore,
    SnapshotHandle,
    SnapshotStore,
    TransientFileSnapshotStore,
)
from .sources import (
    MemorySink,
    MemorySource,
    Sink,
    Source,
    SourceRegistry,
    TypedPickleFile,
)

__version__ = "0.1.0"

__all__ = [
    # Session
    "Shell",
    "ShellPipe",
    "ShellConfiguration",
    "load_pipeshell_config",
    "RuntimeMode",
    # Pipes & planning
    "Pipe",
    "single_converter",
    "tuple_converter",
    "ExecutionPlan",
    "SubgraphPlanner",
    # Materialization
    "Materializer",
    "BackendKind",
    "select_backend",
    "SnapshotHandle",
    "SnapshotStore",
    "MemorySnapshotStore",
    "TransientFileSnapshotStore",
    # Sources & sinks
    "Source",
    "Sink",
    "MemorySource",
    "MemorySink",
    "TypedPickleFile",
    "SourceRegistry",
    # Engines
    "Engine",
    "SeqEngine",
    "DaskEngine",
    # Callbacks
    "ShellCallback",
    "CallbackDispatcher",
    # Exceptions
    "PipeShellError",
    "InvalidPlanError",
    "MaterializationError",
    "UnregisteredSourceError",
    "ConfigurationError",
]
