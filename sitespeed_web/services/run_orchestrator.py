from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from sitespeed_web.domain.errors import (
    MeasurementFailedError,
    MissingOutputError,
    RunError,
    StorageError,
)
from sitespeed_web.domain.models import ResultId, RunRequest, StoredObject, SummaryMetrics
from sitespeed_web.repositories.archive_cache import ArchiveCache
from sitespeed_web.repositories.run_workspace import RunWorkspace
from sitespeed_web.services.measurement_runner import MeasurementRunner
from sitespeed_web.services.url_validation import AbsoluteUrlValidator, UrlValidator, build_run_request

logger = logging.getLogger(__name__)

RUN_FAILED = "Failed to run sitespeed analysis"
NO_OUTPUT = "Web vital data not found"


class ObjectStore(Protocol):
    def put(self, key: str, source) -> None: ...
    def get(self, key: str) -> StoredObject: ...
    def delete(self, key: str) -> None: ...


def _load_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


@dataclass
class RunOrchestrator:
    """
    Service layer: turns a validated request into a published result archive.

    run() steps, strictly in order: validate, prepare work dir, run the
    measurement process, check output, parse metrics, publish screenshot,
    package + publish archive, invalidate cache. The work dir and the local
    package are removed on every exit path once the work dir exists.
    """
    workspace: RunWorkspace
    runner: MeasurementRunner
    store: ObjectStore
    cache: ArchiveCache
    url_validator: UrlValidator = AbsoluteUrlValidator()

    def validate(self, result_id, urls: Optional[Sequence[str]]) -> RunRequest:
        return build_run_request(result_id, urls, self.url_validator)

    def run(self, result_id, urls: Optional[Sequence[str]]) -> SummaryMetrics:
        request = self.validate(result_id, urls)
        rid = request.result_id

        try:
            work_dir = self.workspace.prepare(rid)
        except OSError as e:
            raise RunError("Failed to create directory", str(e)) from e

        logger.info("Starting sitespeed analysis for %s with URLs: %s", rid, ", ".join(request.urls))
        try:
            return self._execute(request, work_dir)
        except RunError:
            raise
        except Exception as e:
            logger.exception("Error running sitespeed for %s", rid)
            raise RunError(RUN_FAILED, str(e)) from e
        finally:
            self.workspace.cleanup(rid)

    def _execute(self, request: RunRequest, work_dir: Path) -> SummaryMetrics:
        rid = request.result_id

        result = self.runner.run(work_dir, request.urls)
        if result.returncode != 0:
            logger.error("Sitespeed failed for %s (exit=%s): %s", rid, result.returncode, result.stderr)
            raise MeasurementFailedError(RUN_FAILED, result.stderr)

        logger.info("Sitespeed analysis completed for %s", rid)

        page_dir = self.workspace.first_page_dir(work_dir)
        browsertime_path = self.workspace.browsertime_summary(work_dir)
        if page_dir is None or not browsertime_path.is_file():
            raise MissingOutputError(NO_OUTPUT)

        try:
            browsertime = _load_json(browsertime_path)
        except (OSError, ValueError) as e:
            raise RunError("Failed to parse web vital data", str(e)) from e

        pagexray = None
        pagexray_path = self.workspace.pagexray_summary(work_dir)
        if pagexray_path.is_file():
            try:
                pagexray = _load_json(pagexray_path)
            except (OSError, ValueError):
                logger.warning("Ignoring unreadable %s for %s", pagexray_path.name, rid)

        metrics = SummaryMetrics.from_documents(browsertime, pagexray)

        screenshot = self.workspace.screenshot_path(page_dir)
        if screenshot.is_file():
            try:
                self.store.put(rid.screenshot_key, screenshot)
            except StorageError:
                logger.exception("Failed to upload screenshot for %s", rid)

        package = self.workspace.package(rid)
        self.cache.invalidate(rid)
        self.store.put(rid.archive_key, package)
        # A read between the two invalidations may have re-pulled the old archive
        self.cache.invalidate(rid)

        return metrics

    def delete(self, result_id) -> None:
        rid = ResultId.parse(result_id)
        self.cache.invalidate(rid)
        self.store.delete(rid.archive_key)
        self.store.delete(rid.screenshot_key)
        self.cache.invalidate(rid)
        logger.info("Deleted result %s", rid)

    def screenshot(self, result_id) -> StoredObject:
        """Open the durable screenshot object directly; the archive cache is not involved."""
        rid = ResultId.parse(result_id)
        return self.store.get(rid.screenshot_key)
