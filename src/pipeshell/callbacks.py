"""Callback system for materialization lifecycle events."""

from typing import TYPE_CHECKING, Any, List

if TYPE_CHECKING:
    from .modes import BackendKind
    from .pipe import Pipe
    from .planner import ExecutionPlan
    from .snapshot import SnapshotHandle
    from .sources import Sink


class ShellCallback:
    """Base class for shell callbacks.

    Override methods to receive lifecycle events from a Shell.
    All methods are optional - only override what you need.
    """

    def on_fast_path(self, pipe: "Pipe") -> None:
        """Called when a head pipe is iterated straight from its source.

        Args:
            pipe: The head pipe being iterated
        """
        pass

    def on_materialize_start(
        self, pipe: "Pipe", plan: "ExecutionPlan", kind: "BackendKind"
    ) -> None:
        """Called before a plan is executed into a snapshot.

        Args:
            pipe: Terminal pipe being materialized
            plan: Minimal plan that will be executed
            kind: Snapshot backend chosen for the session mode
        """
        pass

    def on_materialize_end(self, handle: "SnapshotHandle", duration: float) -> None:
        """Called after a snapshot has been written.

        Args:
            handle: The new snapshot
            duration: Execution duration in seconds
        """
        pass

    def on_materialize_error(self, pipe: "Pipe", error: Exception) -> None:
        """Called when materializing a pipe fails.

        Args:
            pipe: Terminal pipe that failed
            error: Exception about to be raised to the caller
        """
        pass

    def on_save_start(self, pipe: "Pipe", plan: "ExecutionPlan", dest: "Sink") -> None:
        """Called before a plan is written to a user-supplied destination.

        Args:
            pipe: Terminal pipe being saved
            plan: Minimal plan that will be executed
            dest: Destination the records are written to
        """
        pass

    def on_save_end(self, pipe: "Pipe", dest: "Sink", record_count: int, duration: float) -> None:
        """Called after a destination has been written and registered."""
        pass


class CallbackDispatcher:
    """Dispatches events to a list of callbacks."""

    def __init__(self, callbacks: List[Any]):
        self.callbacks = callbacks or []

    def notify_fast_path(self, pipe: "Pipe") -> None:
        for callback in self.callbacks:
            callback.on_fast_path(pipe)

    def notify_materialize_start(
        self, pipe: "Pipe", plan: "ExecutionPlan", kind: "BackendKind"
    ) -> None:
        for callback in self.callbacks:
            callback.on_materialize_start(pipe, plan, kind)

    def notify_materialize_end(self, handle: "SnapshotHandle", duration: float) -> None:
        for callback in self.callbacks:
            callback.on_materialize_end(handle, duration)

    def notify_materialize_error(self, pipe: "Pipe", error: Exception) -> None:
        for callback in self.callbacks:
            callback.on_materialize_error(pipe, error)

    def notify_save_start(self, pipe: "Pipe", plan: "ExecutionPlan", dest: "Sink") -> None:
        for callback in self.callbacks:
            callback.on_save_start(pipe, plan, dest)

    def notify_save_end(
        self, pipe: "Pipe", dest: "Sink", record_count: int, duration: float
    ) -> None:
        for callback in self.callbacks:
            callback.on_save_end(pipe, dest, record_count, duration)
