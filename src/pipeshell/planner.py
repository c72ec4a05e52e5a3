"""Subgraph planner for pipe DAGs.

Given a terminal pipe, the planner collects exactly the pipes reachable
through upstream references, so branches of a shared DAG that the terminal
does not depend on are never executed.

Key responsibilities:
- Visit every reachable pipe once
- Reject cycles and malformed upstream references
- Produce a deterministic execution order (upstreams first, terminal last)
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

from .exceptions import InvalidPlanError
from .pipe import Pipe

logger = logging.getLogger(__name__)

_EXHAUSTED = object()


@dataclass(frozen=True)
class ExecutionPlan:
    """Minimal acyclic subgraph producing one terminal pipe's output.

    Attributes:
        terminal: The pipe whose output the plan produces
        pipes: Reachable pipes in execution order, terminal last
        edges: ``(upstream, downstream)`` pairs, one per upstream slot
    """

    terminal: Pipe
    pipes: Tuple[Pipe, ...]
    edges: Tuple[Tuple[Pipe, Pipe], ...]

    @property
    def dependencies(self) -> Dict[Pipe, Tuple[Pipe, ...]]:
        """Mapping from each planned pipe to its direct upstreams."""
        return {pipe: pipe.upstreams for pipe in self.pipes}

    @property
    def pipe_ids(self) -> Tuple[int, ...]:
        return tuple(pipe.id for pipe in self.pipes)

    def __len__(self) -> int:
        return len(self.pipes)

    def __iter__(self) -> Iterator[Pipe]:
        return iter(self.pipes)

    def __contains__(self, pipe: object) -> bool:
        return pipe in self.pipes


class SubgraphPlanner:
    """Builds the minimal execution plan for a terminal pipe."""

    def plan(self, terminal: Pipe) -> ExecutionPlan:
        """Compute the plan for ``terminal``.

        Performs an iterative depth-first walk over upstream references
        with white/grey/black colouring, so each pipe is expanded once and
        a grey revisit reveals a cycle.

        Args:
            terminal: Pipe whose output is requested

        Returns:
            ExecutionPlan over the pipes reachable from ``terminal``

        Raises:
            InvalidPlanError: If the graph is cyclic or an upstream is not a Pipe
        """
        if not isinstance(terminal, Pipe):
            message = f"Cannot plan {type(terminal).__name__}: expected a Pipe"
            logger.error(message)
            raise InvalidPlanError(message)

        WHITE, GRAY, BLACK = 0, 1, 2
        color: Dict[int, int] = {terminal.id: GRAY}
        order: List[Pipe] = []
        edges: List[Tuple[Pipe, Pipe]] = []
        path: List[Pipe] = [terminal]
        stack = [iter(self._upstreams_of(terminal))]

        while stack:
            upstream = next(stack[-1], _EXHAUSTED)
            if upstream is _EXHAUSTED:
                stack.pop()
                done = path.pop()
                color[done.id] = BLACK
                order.append(done)
                continue

            downstream = path[-1]
            if not isinstance(upstream, Pipe):
                message = (
                    f"{downstream!r} has a malformed upstream: "
                    f"{type(upstream).__name__} is not a Pipe"
                )
                logger.error(message)
                raise InvalidPlanError(message)
            edges.append((upstream, downstream))

            state = color.get(upstream.id, WHITE)
            if state == GRAY:
                cycle = path[path.index(upstream):] + [upstream]
                message = f"Cycle detected in pipe graph: {' -> '.join(p.name for p in cycle)}"
                logger.error(message)
                raise InvalidPlanError(message)
            if state == BLACK:
                continue

            color[upstream.id] = GRAY
            path.append(upstream)
            stack.append(iter(self._upstreams_of(upstream)))

        return ExecutionPlan(terminal=terminal, pipes=tuple(order), edges=tuple(edges))

    def _upstreams_of(self, pipe: Pipe) -> Tuple:
        upstreams = pipe.upstreams
        if not isinstance(upstreams, tuple):
            message = f"{pipe!r} has malformed upstreams: {upstreams!r}"
            logger.error(message)
            raise InvalidPlanError(message)
        return upstreams
