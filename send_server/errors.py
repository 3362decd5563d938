"""
Errors raised by the upload service.

Errors are chained with `raise ... from exc` so the original cause stays
attached; `describe` flattens that chain into one log line.
"""

from __future__ import annotations


class SendError(Exception):
    """Base error of the upload service."""


class ConfigError(SendError):
    """The configuration file or environment overrides are invalid."""


class MetadataError(SendError):
    """Upload metadata could not be parsed."""


class StorageError(SendError):
    """The object store rejected or failed a request."""


class UploadRejected(SendError):
    """The client sent an upload the service refuses to store."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def describe(exc: BaseException) -> str:
    """
    Render an exception with its causes, outermost first.

    Example: `error parsing config: invalid value: not an integer`.
    """
    parts: list[str] = []
    current: BaseException | None = exc
    while current is not None:
        message = str(current) or type(current).__name__
        # Skip a cause that repeats its wrapper word for word.
        if not parts or parts[-1] != message:
            parts.append(message)
        current = current.__cause__
    return ": ".join(parts)
