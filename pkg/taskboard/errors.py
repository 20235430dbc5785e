"""Exception types shared across the taskboard client."""
from typing import Optional


class TaskboardError(Exception):
    """Base class for all taskboard errors."""
    pass


class ApiError(TaskboardError):
    """Raised when a request fails at the transport level or with a non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class ValidationError(TaskboardError):
    """Raised when input fails client-side validation."""
    pass


class SnapshotError(TaskboardError):
    """Raised when a local snapshot cannot be read."""
    pass


class ConfigError(TaskboardError):
    """Raised when configuration is invalid."""
    pass
