"""Execution engines for pipeshell plans.

This module provides a unified import location for all execution engines:
- Engine: Base class for plan execution engines
- SeqEngine: Simple sequential in-process execution (local and test modes)
- DaskEngine: Parallel execution using Dask Bag (distributed mode)

Example:
    >>> from pipeshell import Shell, ShellConfiguration, RuntimeMode
    >>> from pipeshell.engines import DaskEngine
    >>>
    >>> config = ShellConfiguration(
    ...     mode=RuntimeMode.DISTRIBUTED,
    ...     engine=DaskEngine(scheduler="processes"),
    ... )
    >>> shell = Shell(config)
"""

from .engine import Engine
from .integrations.dask.engine import DaskEngine
from .sequential_engine import SeqEngine

__all__ = [
    "Engine",
    "SeqEngine",
    "DaskEngine",
]
