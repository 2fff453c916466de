from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from sitespeed_web.config.ini_config import AppSettings, StorageSettings
from sitespeed_web.domain.errors import ObjectNotFoundError
from sitespeed_web.domain.models import MeasurementResult, StoredObject
from sitespeed_web.services.measurement_runner import MeasurementRunner

BROWSERTIME_DOC = {
    "googleWebVitals": {
        "ttfb": {"median": 120.0},
        "largestContentfulPaint": {"median": 1800.0},
        "firstContentfulPaint": {"median": 900.0},
        "cumulativeLayoutShift": {"median": 0.05},
        "totalBlockingTime": {"median": 10.0},
    },
    "timings": {"fullyLoaded": {"median": 3200.0}},
}
PAGEXRAY_DOC = {"transferSize": {"median": 524288.0}}
SCREENSHOT_BYTES = b"\x89PNG\r\n\x1a\nfake-screenshot"


# -----------------------------
# Test doubles
# -----------------------------
class FakeObjectStore:
    """In-memory single-bucket store. Records every durable read."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.get_calls: list[str] = []
        self.put_calls: list[str] = []
        self.delete_calls: list[str] = []

    def put(self, key: str, source) -> None:
        self.put_calls.append(key)
        if isinstance(source, (str, Path)):
            self.objects[key] = Path(source).read_bytes()
        else:
            self.objects[key] = source.read()

    def get(self, key: str) -> StoredObject:
        self.get_calls.append(key)
        if key not in self.objects:
            raise ObjectNotFoundError(key)
        return StoredObject(
            stream=io.BytesIO(self.objects[key]),
            content_type="application/octet-stream",
            last_modified=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            etag='"etag-1"',
        )

    def download(self, key: str, destination: Path) -> None:
        obj = self.get(key)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with obj.stream as src:
            destination.write_bytes(src.read())

    def delete(self, key: str) -> None:
        self.delete_calls.append(key)
        self.objects.pop(key, None)


class FakeRunner(MeasurementRunner):
    """Writes a sitespeed-like output tree instead of spawning a process."""

    def __init__(
        self,
        *,
        returncode: int = 0,
        stderr: str = "",
        browsertime: Optional[dict] = BROWSERTIME_DOC,
        pagexray: Optional[dict] = PAGEXRAY_DOC,
        write_pages: bool = True,
        screenshot: bool = True,
        index_html: str = "<html>report</html>",
    ):
        self.returncode = returncode
        self.stderr = stderr
        self.browsertime = browsertime
        self.pagexray = pagexray
        self.write_pages = write_pages
        self.screenshot = screenshot
        self.index_html = index_html
        self.calls: list[tuple[Path, tuple[str, ...]]] = []

    def run(self, output_dir: Path, urls: Sequence[str]) -> MeasurementResult:
        self.calls.append((output_dir, tuple(urls)))
        if self.returncode != 0:
            return MeasurementResult(returncode=self.returncode, stdout="", stderr=self.stderr)

        (output_dir / "index.html").write_text(self.index_html, encoding="utf-8")
        data = output_dir / "data"
        data.mkdir(parents=True, exist_ok=True)
        if self.browsertime is not None:
            (data / "browsertime.summary-total.json").write_text(json.dumps(self.browsertime), encoding="utf-8")
        if self.pagexray is not None:
            (data / "pagexray.summary-total.json").write_text(json.dumps(self.pagexray), encoding="utf-8")

        if self.write_pages:
            page = output_dir / "pages" / "www_example_com"
            (page / "data").mkdir(parents=True, exist_ok=True)
            (page / "index.html").write_text("<html>page</html>", encoding="utf-8")
            if self.screenshot:
                shots = page / "data" / "screenshots" / "1"
                shots.mkdir(parents=True)
                (shots / "afterPageCompleteCheck.png").write_bytes(SCREENSHOT_BYTES)

        return MeasurementResult(returncode=0, stdout="done", stderr=self.stderr)


# -----------------------------
# Helpers
# -----------------------------
def make_settings(temp_root: Path, *, auth_token: str = "") -> AppSettings:
    return AppSettings(
        node_bin="node",
        sitespeed_bin="sitespeed.io",
        timeout_seconds=60,
        temp_root=temp_root,
        storage=StorageSettings(
            service_url="http://localhost:9000",
            access_key="key",
            secret_key="secret",
            bucket_name="sitespeed-results",
            region="us-east-1",
            disable_payload_signing=True,
        ),
        auth_token=auth_token,
        cleanup_interval_seconds=300,
        cleanup_max_age_seconds=300,
        reaper_root=temp_root,
        flask_host="127.0.0.1",
        flask_port=8080,
        flask_debug=False,
    )
