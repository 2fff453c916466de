from __future__ import annotations

import logging
import posixpath
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sitespeed_web.adapters.owned_stream import OwnedStream
from sitespeed_web.domain.errors import ArchiveNotFoundError
from sitespeed_web.domain.models import ArchiveEntry, ResultId
from sitespeed_web.repositories.archive_cache import ArchiveCache

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
INDEX_NAME = "index.html"

CONTENT_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".har": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".log": "text/plain",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".gz": "application/gzip",
    ".zip": "application/zip",
    ".pdf": "application/pdf",
}


def content_type_for(name: str) -> str:
    ext = posixpath.splitext(name)[1].lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def normalize_path(logical_path: Optional[str]) -> str:
    path = (logical_path or "").replace("\\", "/")
    return path or INDEX_NAME


def _find_file(archive: zipfile.ZipFile, name: str) -> Optional[zipfile.ZipInfo]:
    try:
        info = archive.getinfo(name)
    except KeyError:
        return None
    return None if info.is_dir() else info


def resolve_entry(archive: zipfile.ZipFile, path: str) -> Optional[zipfile.ZipInfo]:
    """Exact match, then `<path>/index.html` unless the path already ends with '/'."""
    info = _find_file(archive, path)
    if info is None and not path.endswith("/"):
        info = _find_file(archive, f"{path}/{INDEX_NAME}")
    return info


@dataclass
class ArchiveFileServer:
    cache: ArchiveCache

    def serve(self, result_id, logical_path: Optional[str] = "") -> ArchiveEntry:
        """
        Open one file inside the result archive for streaming.

        Returned entry stream owns the archive handle: closing it closes the
        entry first and the archive second. Missing archive, missing entry and
        unreadable archive all raise ArchiveNotFoundError.
        """
        rid = ResultId.parse(result_id)
        zip_path = self.cache.acquire(rid)
        path = normalize_path(logical_path)

        archive = None
        try:
            archive = zipfile.ZipFile(zip_path)
            info = resolve_entry(archive, path)
            if info is None:
                raise ArchiveNotFoundError(f"{path} not found in {rid}")
            stream = archive.open(info)
        except ArchiveNotFoundError:
            if archive is not None:
                archive.close()
            raise
        except Exception as e:
            if archive is not None:
                archive.close()
            logger.warning("Unreadable archive entry %s in %s: %s", path, zip_path, e)
            raise ArchiveNotFoundError(f"{path} unavailable in {rid}") from e

        return ArchiveEntry(
            name=info.filename,
            stream=OwnedStream(stream, archive),
            content_type=content_type_for(info.filename),
            last_modified=datetime(*info.date_time, tzinfo=timezone.utc),
        )
