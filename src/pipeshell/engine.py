"""Base class for plan execution engines.

An engine runs an ExecutionPlan and writes the terminal pipe's records into
a sink. From the caller's side ``run`` is a blocking call; how the work is
spread (one thread, a Dask scheduler) is up to the engine.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable, List, Sequence

if TYPE_CHECKING:
    from .pipe import Pipe
    from .planner import ExecutionPlan
    from .sources import Sink


class Engine(ABC):
    """Abstract base class for plan execution engines."""

    @abstractmethod
    def run(self, plan: "ExecutionPlan", sink: "Sink") -> int:
        """Execute ``plan`` and write the terminal's records to ``sink``.

        Args:
            plan: Minimal plan for the requested terminal pipe
            sink: Destination of the terminal's records

        Returns:
            Number of records written to the sink
        """
        pass


def evaluate_pipe(pipe: "Pipe", upstream_outputs: Sequence[Iterable]) -> List:
    """Evaluate one pipe into a list, given its upstreams' outputs."""
    return list(pipe.compute(upstream_outputs))
