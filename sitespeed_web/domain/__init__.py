from .errors import (
    ArchiveNotFoundError,
    MeasurementFailedError,
    MissingOutputError,
    ObjectNotFoundError,
    RunError,
    SitespeedError,
    StorageError,
    ValidationError,
)
from .models import ArchiveEntry, MeasurementResult, ResultId, RunRequest, StoredObject, SummaryMetrics

__all__ = [
    "ArchiveEntry",
    "ArchiveNotFoundError",
    "MeasurementFailedError",
    "MeasurementResult",
    "MissingOutputError",
    "ObjectNotFoundError",
    "ResultId",
    "RunError",
    "RunRequest",
    "SitespeedError",
    "StorageError",
    "StoredObject",
    "SummaryMetrics",
    "ValidationError",
]
