######## errors.py
########

from __future__ import annotations

from typing import Optional


class SitespeedError(Exception):
    """Base class for everything the service raises on purpose."""


class ValidationError(SitespeedError, ValueError):
    """Rejected input. Raised before any filesystem or storage side effect."""


class RunError(SitespeedError):
    """
    A run failed after the external process was started.
    `details` carries diagnostic text (stderr, exception message) for the error payload.
    """

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class MeasurementFailedError(RunError):
    """The measurement process exited non-zero or could not be executed."""


class MissingOutputError(RunError):
    """The process exited 0 but the expected summary output is absent."""


class StorageError(SitespeedError):
    """Durable storage failure other than a missing key."""


class ObjectNotFoundError(StorageError):
    """No object stored under the requested key."""

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}")
        self.key = key


class ArchiveNotFoundError(SitespeedError):
    """Requested archive or archive entry is unavailable."""
