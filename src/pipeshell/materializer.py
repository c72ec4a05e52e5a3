"""Materializer: turn a lazy pipe into a concrete snapshot.

The materializer composes the planner, the backend selector and the
snapshot stores. It attempts every materialization exactly once; failures
are reported to callbacks and raised to the caller unchanged.
"""

import logging
import time
from typing import Optional

from .callbacks import CallbackDispatcher
from .config import ShellConfiguration
from .engine import Engine
from .exceptions import MaterializationError
from .modes import select_backend
from .pipe import Pipe
from .planner import SubgraphPlanner
from .snapshot import SnapshotHandle, execute_into, store_for
from .sources import Sink, Source, SourceRegistry

logger = logging.getLogger(__name__)


class Materializer:
    """Runs the minimal plan of a pipe into the backend the mode calls for.

    Attributes:
        config: Session configuration (mode, temp prefix, callbacks)
        registry: Session source registry
        engine: Engine executing plans
        planner: Planner computing minimal subgraphs
    """

    def __init__(
        self,
        config: ShellConfiguration,
        registry: SourceRegistry,
        engine: Optional[Engine] = None,
        planner: Optional[SubgraphPlanner] = None,
    ):
        self.config = config
        self.registry = registry
        self.engine = engine if engine is not None else config.effective_engine
        self.planner = planner or SubgraphPlanner()
        self.dispatcher = CallbackDispatcher(config.effective_callbacks)

    def snapshot(self, terminal: Pipe) -> SnapshotHandle:
        """Materialize ``terminal`` and return the snapshot handle.

        Raises:
            InvalidPlanError: If the pipe graph is cyclic or malformed
            MaterializationError: If execution or writing fails
        """
        plan = self.planner.plan(terminal)
        kind = select_backend(self.config.mode)
        store = store_for(
            kind,
            self.engine,
            self.registry,
            temp_prefix=self.config.temp_prefix,
            extension=self.config.snapshot_extension,
            id_factory=self.config.id_factory,
        )
        logger.debug(
            f"Materializing {terminal!r}: {len(plan)} pipes, "
            f"mode={self.config.mode.value}, backend={kind.value}"
        )

        self.dispatcher.notify_materialize_start(terminal, plan, kind)
        start_time = time.time()
        try:
            handle = store.materialize(plan)
        except MaterializationError as e:
            self.dispatcher.notify_materialize_error(terminal, e)
            raise
        self.dispatcher.notify_materialize_end(handle, time.time() - start_time)
        return handle

    def materialize(self, terminal: Pipe) -> Pipe:
        """Materialize ``terminal`` and return a pipe over the snapshot."""
        return self.snapshot(terminal).pipe

    def save(self, terminal: Pipe, dest: Sink) -> Pipe:
        """Write ``terminal`` to ``dest`` and return a pipe reading it back.

        ``dest`` must be both a Sink and a Source. Once written it is
        registered in the session, so the returned head pipe can be iterated
        directly.

        Raises:
            TypeError: If ``dest`` cannot be read back
            InvalidPlanError: If the pipe graph is cyclic or malformed
            MaterializationError: If execution or writing fails
        """
        if not (isinstance(dest, Sink) and isinstance(dest, Source)):
            raise TypeError(
                f"save() needs a destination that is both a Sink and a Source, "
                f"got {type(dest).__name__}"
            )
        plan = self.planner.plan(terminal)
        self.dispatcher.notify_save_start(terminal, plan, dest)
        start_time = time.time()
        try:
            count = execute_into(self.engine, plan, dest)
        except MaterializationError as e:
            self.dispatcher.notify_materialize_error(terminal, e)
            raise
        self.registry.register(dest)
        logger.info(f"Saved {count} records of {terminal!r} to '{dest.name}'")
        self.dispatcher.notify_save_end(terminal, dest, count, time.time() - start_time)
        return Pipe.from_source(dest, element_type=terminal.element_type)
