from __future__ import annotations

import logging
import shutil
import threading
import time
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CHROMIUM_TEMP_PREFIX = ".org.chromium.Chromium."


class StaleArtifactReaper:
    """
    Deletes Chromium temp directories the measurement process leaks into the
    temp root. Runs once on start, then every `interval_seconds` on a daemon
    thread until stop() is called.
    """

    def __init__(
        self,
        temp_root: Path,
        *,
        prefix: str = CHROMIUM_TEMP_PREFIX,
        interval_seconds: int = 300,
        max_age_seconds: int = 300,
    ):
        self.temp_root = Path(temp_root)
        self.prefix = prefix
        self.interval_seconds = interval_seconds
        self.max_age_seconds = max_age_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def sweep(self, now: Optional[float] = None) -> list[Path]:
        now = time.time() if now is None else now
        removed: list[Path] = []

        try:
            entries = list(self.temp_root.iterdir())
        except OSError:
            logger.exception("Failed to read temp dir for cleanup: %s", self.temp_root)
            return removed

        for entry in entries:
            if not entry.name.startswith(self.prefix):
                continue
            try:
                if not entry.is_dir():
                    continue
                age = now - entry.stat().st_mtime
                if age <= self.max_age_seconds:
                    continue
                shutil.rmtree(entry)
            except OSError:
                logger.exception("Failed to clean up %s", entry)
                continue
            removed.append(entry)
            logger.info("Cleaned up Chromium temp directory (%dmin old): %s", int(age // 60), entry)

        return removed

    def _loop(self) -> None:
        while True:
            try:
                self.sweep()
            except Exception:
                logger.exception("Chromium temp file cleanup failed")
            if self._stop.wait(self.interval_seconds):
                return

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        logger.info("Chromium temp file cleanup scheduled every %d minutes", self.interval_seconds // 60)
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="temp-reaper", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
