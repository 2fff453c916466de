######## models.py
########

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, BinaryIO, Mapping, Optional, Union

from sitespeed_web.domain.errors import ValidationError

MIN_URLS = 1
MAX_URLS = 5


@dataclass(frozen=True)
class ResultId:
    """
    Opaque per-run identifier. Construction validates, so any ResultId instance
    is safe to use as a path segment or storage-key segment.
    """
    value: str

    def __post_init__(self):
        v = self.value
        if not isinstance(v, str) or not v:
            raise ValidationError("Invalid ID")
        if ".." in v or "/" in v or "\\" in v:
            raise ValidationError("Invalid ID")
        # "." collapses to the parent directory when joined onto a path
        if not v.strip("."):
            raise ValidationError("Invalid ID")

    @classmethod
    def parse(cls, raw: Union[str, "ResultId"]) -> "ResultId":
        # Re-validates even when handed an existing ResultId.
        if isinstance(raw, ResultId):
            return cls(raw.value)
        return cls(raw)

    @property
    def archive_key(self) -> str:
        return f"results/{self.value}/result.zip"

    @property
    def screenshot_key(self) -> str:
        return f"results/{self.value}/screenshot.png"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RunRequest:
    result_id: ResultId
    urls: tuple[str, ...]


def _median(doc: Optional[Mapping[str, Any]], *path: str) -> float:
    node: Any = doc
    for key in path:
        if not isinstance(node, Mapping):
            return 0.0
        node = node.get(key)
    if not isinstance(node, Mapping):
        return 0.0
    value = node.get("median")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


@dataclass(frozen=True)
class SummaryMetrics:
    ttfb: float = 0.0
    fully_loaded: float = 0.0
    largest_contentful_paint: float = 0.0
    first_contentful_paint: float = 0.0
    cumulative_layout_shift: float = 0.0
    transfer_size: float = 0.0

    @classmethod
    def from_documents(
        cls,
        browsertime: Optional[Mapping[str, Any]],
        pagexray: Optional[Mapping[str, Any]] = None,
    ) -> "SummaryMetrics":
        """Missing fields (or a missing pagexray document) default to 0."""
        return cls(
            ttfb=_median(browsertime, "googleWebVitals", "ttfb"),
            fully_loaded=_median(browsertime, "timings", "fullyLoaded"),
            largest_contentful_paint=_median(browsertime, "googleWebVitals", "largestContentfulPaint"),
            first_contentful_paint=_median(browsertime, "googleWebVitals", "firstContentfulPaint"),
            cumulative_layout_shift=_median(browsertime, "googleWebVitals", "cumulativeLayoutShift"),
            transfer_size=_median(pagexray, "transferSize"),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "ttfb": self.ttfb,
            "fullyLoaded": self.fully_loaded,
            "largestContentfulPaint": self.largest_contentful_paint,
            "firstContentfulPaint": self.first_contentful_paint,
            "cumulativeLayoutShift": self.cumulative_layout_shift,
            "transferSize": self.transfer_size,
        }


@dataclass(frozen=True)
class MeasurementResult:
    returncode: int
    stdout: str
    stderr: str


@dataclass(frozen=True)
class StoredObject:
    """An open object from durable storage. Closing `stream` releases the transport."""
    stream: BinaryIO
    content_type: Optional[str]
    last_modified: Optional[datetime]
    etag: Optional[str]


@dataclass(frozen=True)
class ArchiveEntry:
    """One resolved archive entry, open for reading. Closing `stream` closes the archive too."""
    name: str
    stream: BinaryIO
    content_type: str
    last_modified: datetime
