"""Exceptions raised by the registry reaper."""

__all__ = [
    "ConfigError",
    "ReaperError",
    "ServiceError",
]


class ReaperError(Exception):
    """Base class for reaper errors."""


class ConfigError(ReaperError):
    """Run parameters are missing or invalid.

    Always raised before any request is made to the registry.
    """


class ServiceError(ReaperError):
    """A request to the registry service failed.

    Whether this is fatal depends on where it is raised: failing to connect
    or to enumerate repositories ends the run, while failing to list the
    images of one repository, or to delete one image, is recorded in the
    run report and processing continues.

    Parameters
    ----------
    message
        Human-readable description of the failure.
    operation
        Registry operation that failed, if known.
    """

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation

    def __str__(self) -> str:
        msg = super().__str__()
        if self.operation:
            return f"{self.operation}: {msg}"
        return msg
