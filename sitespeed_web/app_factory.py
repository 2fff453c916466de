from __future__ import annotations

import time
from typing import Optional

from flask import Flask, g, request

from sitespeed_web.adapters.s3_object_store import S3ObjectStore
from sitespeed_web.config.ini_config import AppSettings, IniConfig
from sitespeed_web.repositories.archive_cache import ArchiveCache
from sitespeed_web.repositories.run_workspace import RunWorkspace
from sitespeed_web.services.archive_file_server import ArchiveFileServer
from sitespeed_web.services.measurement_runner import MeasurementRunner, SitespeedRunner
from sitespeed_web.services.run_orchestrator import RunOrchestrator
from sitespeed_web.services.temp_reaper import StaleArtifactReaper
from sitespeed_web.web.routes import create_blueprint


def create_reaper(settings: AppSettings) -> StaleArtifactReaper:
    return StaleArtifactReaper(
        settings.reaper_root,
        interval_seconds=settings.cleanup_interval_seconds,
        max_age_seconds=settings.cleanup_max_age_seconds,
    )


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    store=None,
    runner: Optional[MeasurementRunner] = None,
) -> Flask:
    if settings is None:
        settings = IniConfig.from_env_or_default().load_settings()

    if store is None:
        store = S3ObjectStore(settings.storage)
    if runner is None:
        runner = SitespeedRunner(
            node_bin=settings.node_bin,
            sitespeed_bin=settings.sitespeed_bin,
            timeout_seconds=settings.timeout_seconds,
        )

    cache = ArchiveCache(temp_root=settings.temp_root, store=store)
    orchestrator = RunOrchestrator(
        workspace=RunWorkspace(temp_root=settings.temp_root),
        runner=runner,
        store=store,
        cache=cache,
    )
    file_server = ArchiveFileServer(cache=cache)

    app = Flask(__name__)
    app.register_blueprint(create_blueprint(orchestrator, file_server, settings.auth_token))

    @app.before_request
    def log_request_start():
        g.request_started = time.perf_counter()
        app.logger.info("Started %s %s", request.method, request.path)

    @app.after_request
    def log_request_end(response):
        started = g.get("request_started")
        elapsed_ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0
        app.logger.info("Completed %s %s %s in %.1fms", request.method, request.path, response.status_code, elapsed_ms)
        return response

    app.config["SETTINGS"] = settings
    app.config["HOST"] = settings.flask_host
    app.config["PORT"] = settings.flask_port
    app.config["DEBUG"] = settings.flask_debug

    return app
