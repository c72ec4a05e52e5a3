"""Custom exceptions for the pipeshell materialization engine."""


class PipeShellError(Exception):
    """Base exception for all pipeshell errors."""
    pass


class InvalidPlanError(PipeShellError):
    """Raised when a cyclic or malformed pipe graph is handed to the planner."""
    pass


class MaterializationError(PipeShellError):
    """Raised when executing a plan or writing its snapshot fails."""
    pass


class UnregisteredSourceError(PipeShellError):
    """Raised when a head pipe reads a source the session does not know about."""
    pass


class ConfigurationError(PipeShellError):
    """Raised when a session configuration value is invalid."""
    pass
