from .archive_file_server import ArchiveFileServer
from .measurement_runner import MeasurementRunner, SitespeedRunner
from .run_orchestrator import RunOrchestrator
from .temp_reaper import StaleArtifactReaper
from .url_validation import AbsoluteUrlValidator, UrlValidator

__all__ = [
    "AbsoluteUrlValidator",
    "ArchiveFileServer",
    "MeasurementRunner",
    "RunOrchestrator",
    "SitespeedRunner",
    "StaleArtifactReaper",
    "UrlValidator",
]
