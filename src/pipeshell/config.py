"""Shell configuration management.

This module provides the ShellConfiguration class holding the settings of
one interactive session (runtime mode, snapshot location, engine,
callbacks), and loading of an optional ``pipeshell.yaml`` file.

The configuration is frozen: a session that needs a different mode builds
a new configuration with ``with_mode`` instead of changing a live one.
"""

import logging
import os
import tempfile
import uuid
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union

import yaml

from .exceptions import ConfigurationError
from .modes import RuntimeMode, default_engine_for

if TYPE_CHECKING:
    from .callbacks import ShellCallback
    from .engine import Engine

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "pipeshell.yaml"
DEFAULT_TEMP_PREFIX = os.path.join(tempfile.gettempdir(), "pipeshell")
DEFAULT_SNAPSHOT_EXTENSION = "pkl"
MODE_ENV_VAR = "PIPESHELL_MODE"

_FILE_KEYS = ("mode", "temp_prefix", "snapshot_extension")


def load_pipeshell_config(path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load settings from a yaml file, or return {} if it does not exist.

    The ``PIPESHELL_MODE`` environment variable, when set, overrides the
    file's ``mode``.
    """
    config: Dict[str, Any] = {}
    if os.path.exists(path):
        with open(path, "r") as f:
            config = yaml.safe_load(f) or {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"Expected a mapping in {path}, got {type(config).__name__}")
        unknown = sorted(set(config) - set(_FILE_KEYS))
        if unknown:
            logger.warning(f"Ignoring unknown keys in {path}: {', '.join(unknown)}")
            config = {k: v for k, v in config.items() if k in _FILE_KEYS}

    env_mode = os.environ.get(MODE_ENV_VAR)
    if env_mode:
        config["mode"] = env_mode
    return config


@dataclass(frozen=True)
class ShellConfiguration:
    """Encapsulates the settings of an interactive session.

    Attributes:
        mode: Active runtime mode (local, test or distributed)
        temp_prefix: Directory for transient snapshot files
        snapshot_extension: File extension of transient snapshots
        engine: Execution engine (None = default engine for ``mode``)
        callbacks: Callbacks notified of fast-path and materialization events
        id_factory: Generator of unique snapshot identifiers
    """

    mode: Union[RuntimeMode, str] = RuntimeMode.LOCAL
    temp_prefix: str = DEFAULT_TEMP_PREFIX
    snapshot_extension: str = DEFAULT_SNAPSHOT_EXTENSION
    engine: Optional["Engine"] = None
    callbacks: Optional[List["ShellCallback"]] = field(default=None, compare=False)
    id_factory: Callable[[], Any] = field(default=uuid.uuid4, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "mode", RuntimeMode.parse(self.mode))
        if not self.temp_prefix or not str(self.temp_prefix).strip():
            raise ConfigurationError("temp_prefix must be a non-empty path")
        object.__setattr__(self, "temp_prefix", str(self.temp_prefix))
        extension = str(self.snapshot_extension or "").lstrip(".")
        if not extension:
            raise ConfigurationError("snapshot_extension must be non-empty")
        object.__setattr__(self, "snapshot_extension", extension)
        if not callable(self.id_factory):
            raise ConfigurationError("id_factory must be callable")

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_PATH, **overrides: Any) -> "ShellConfiguration":
        """Build a configuration from a yaml file, keyword overrides winning.

        Example:
            >>> config = ShellConfiguration.from_file("pipeshell.yaml", engine=my_engine)
        """
        settings = load_pipeshell_config(path)
        settings.update(overrides)
        return cls(**settings)

    @property
    def effective_engine(self) -> "Engine":
        """Configured engine or the default engine for the mode."""
        if self.engine is not None:
            return self.engine
        return default_engine_for(self.mode)

    @property
    def effective_callbacks(self) -> List["ShellCallback"]:
        return list(self.callbacks or [])

    def with_mode(self, mode: Union[RuntimeMode, str]) -> "ShellConfiguration":
        return replace(self, mode=mode)

    def with_temp_prefix(self, temp_prefix: str) -> "ShellConfiguration":
        return replace(self, temp_prefix=temp_prefix)

    def with_engine(self, engine: "Engine") -> "ShellConfiguration":
        return replace(self, engine=engine)

    def with_callbacks(self, callbacks: List["ShellCallback"]) -> "ShellConfiguration":
        return replace(self, callbacks=callbacks)
