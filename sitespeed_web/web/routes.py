## routes.py
from __future__ import annotations

import hmac

from flask import Blueprint, Response, current_app, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.wsgi import wrap_file

from sitespeed_web.domain.errors import (
    ArchiveNotFoundError,
    ObjectNotFoundError,
    RunError,
    StorageError,
    ValidationError,
)
from sitespeed_web.domain.models import ResultId, SummaryMetrics

CACHE_MAX_AGE = 604800  # one week; archived results are immutable
API_PREFIX = "/api"


def _error(message: str, status: int, details: str | None = None):
    payload = {"error": message}
    if details is not None:
        payload["details"] = details
    return jsonify(payload), status


def _stream_response(stream, mimetype: str, last_modified=None) -> Response:
    resp = Response(wrap_file(request.environ, stream), mimetype=mimetype, direct_passthrough=True)
    resp.cache_control.public = True
    resp.cache_control.max_age = CACHE_MAX_AGE
    if last_modified is not None:
        resp.last_modified = last_modified
    return resp


def create_blueprint(orchestrator, file_server, auth_token: str = "") -> Blueprint:
    bp = Blueprint("web", __name__)

    @bp.before_app_request
    def require_bearer_token():
        path = request.path
        if not auth_token or not (path == API_PREFIX or path.startswith(API_PREFIX + "/")):
            return None
        header = request.headers.get("Authorization", "")
        if header.startswith("Bearer ") and hmac.compare_digest(header[7:].encode(), auth_token.encode()):
            return None
        current_app.logger.warning("Rejected unauthenticated %s %s", request.method, request.path)
        return Response("Unauthorized", status=401, mimetype="text/plain")

    @bp.post("/api/result/<result_id>")
    def run_analysis(result_id: str):
        rid = ResultId.parse(result_id)

        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return _error("Invalid Request Body", 400)

        metrics: SummaryMetrics = orchestrator.run(rid, body.get("urls"))
        current_app.logger.info("Run %s finished: %s", rid, metrics)
        return jsonify(metrics.to_dict())

    @bp.delete("/api/result/<result_id>")
    def delete_result(result_id: str):
        orchestrator.delete(ResultId.parse(result_id))
        return Response(status=200)

    @bp.get("/result/<result_id>/", defaults={"subpath": ""})
    @bp.get("/result/<result_id>/<path:subpath>")
    def get_result_file(result_id: str, subpath: str):
        entry = file_server.serve(ResultId.parse(result_id), subpath)
        return _stream_response(entry.stream, entry.content_type, entry.last_modified)

    @bp.get("/screenshot/<result_id>")
    def get_screenshot(result_id: str):
        obj = orchestrator.screenshot(ResultId.parse(result_id))
        resp = _stream_response(obj.stream, "image/png", obj.last_modified)
        if obj.etag:
            resp.set_etag(obj.etag.strip('"'))
        return resp

    @bp.app_errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return _error(str(e), 400)

    @bp.app_errorhandler(ArchiveNotFoundError)
    @bp.app_errorhandler(ObjectNotFoundError)
    def handle_not_found(e):
        return _error("Not Found", 404)

    @bp.app_errorhandler(RunError)
    def handle_run_error(e: RunError):
        return _error(e.message, 500, e.details)

    @bp.app_errorhandler(StorageError)
    def handle_storage_error(e: StorageError):
        current_app.logger.error("Storage failure: %s", e)
        return _error("Storage request failed", 500, str(e))

    @bp.app_errorhandler(Exception)
    def handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return e
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return _error("Internal Server Error", 500)

    return bp
