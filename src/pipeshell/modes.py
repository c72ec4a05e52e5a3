"""Runtime modes and the materialization backend selector.

The active RuntimeMode decides where a plan executes, and that decides which
snapshot backend is viable: in-process memory only makes sense when the plan
runs in this process, while a distributed engine needs a file it can write
to and that the shell can read back.
"""

from enum import Enum
from typing import TYPE_CHECKING, Union

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .engine import Engine


class RuntimeMode(str, Enum):
    """Execution backend active for a session."""

    LOCAL = "local"
    TEST = "test"
    DISTRIBUTED = "distributed"

    @property
    def is_in_process(self) -> bool:
        return self in (RuntimeMode.LOCAL, RuntimeMode.TEST)

    @classmethod
    def parse(cls, value: Union[str, "RuntimeMode"]) -> "RuntimeMode":
        """Parse a mode name such as ``"local"`` (case-insensitive)."""
        if isinstance(value, RuntimeMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ConfigurationError(
                f"Unknown runtime mode '{value}'. Valid modes: {valid}"
            ) from None


class BackendKind(str, Enum):
    """Where a snapshot's records are kept."""

    MEMORY = "memory"
    TRANSIENT_FILE = "transient-file"


def select_backend(mode: RuntimeMode) -> BackendKind:
    """Pick the snapshot backend for ``mode``.

    Local and test modes map to the memory backend, distributed mode maps to
    the transient-file backend.
    """
    if not isinstance(mode, RuntimeMode):
        raise ValueError(f"Expected a RuntimeMode, got {mode!r}")
    if mode.is_in_process:
        return BackendKind.MEMORY
    return BackendKind.TRANSIENT_FILE


def default_engine_for(mode: RuntimeMode) -> "Engine":
    """Default execution engine for ``mode``."""
    if select_backend(mode) is BackendKind.MEMORY:
        from .sequential_engine import SeqEngine

        return SeqEngine()

    from .integrations.dask.engine import DaskEngine

    return DaskEngine()
