"""Sequential execution engine - minimal implementation.

This engine evaluates the pipes of a plan one by one in plan order, inside
the calling process. No parallelism, no async - just simple, predictable
execution. It is the default for local and test modes.
"""

from collections import Counter
from typing import TYPE_CHECKING, Dict, List

from .engine import Engine, evaluate_pipe

if TYPE_CHECKING:
    from .planner import ExecutionPlan
    from .sources import Sink


class SeqEngine(Engine):
    """Sequential execution engine.

    Evaluates pipes one by one in plan order. Each intermediate output is
    kept only until its last downstream consumer has run.
    """

    def run(self, plan: "ExecutionPlan", sink: "Sink") -> int:
        """Execute plan sequentially."""
        pending_consumers = Counter(upstream.id for upstream, _ in plan.edges)
        outputs: Dict[int, List] = {}

        for pipe in plan.pipes:
            upstream_outputs = [outputs[u.id] for u in pipe.upstreams]
            outputs[pipe.id] = evaluate_pipe(pipe, upstream_outputs)
            self._release_upstreams(pipe, outputs, pending_consumers)

        return sink.write(outputs[plan.terminal.id])

    def _release_upstreams(
        self, pipe, outputs: Dict[int, List], pending_consumers: Counter
    ) -> None:
        for upstream in pipe.upstreams:
            pending_consumers[upstream.id] -= 1
            if pending_consumers[upstream.id] <= 0:
                outputs.pop(upstream.id, None)
