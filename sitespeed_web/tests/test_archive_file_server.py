from __future__ import annotations

import io
import zipfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from sitespeed_web.domain.errors import ArchiveNotFoundError
from sitespeed_web.domain.models import ResultId
from sitespeed_web.repositories.archive_cache import ArchiveCache
from sitespeed_web.services.archive_file_server import (
    ArchiveFileServer,
    content_type_for,
    normalize_path,
)
from sitespeed_web.tests.fakes import FakeObjectStore


def _zip_bytes(files: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in files.items():
            info = zipfile.ZipInfo(name, date_time=(2024, 5, 1, 10, 30, 0))
            zf.writestr(info, content)
    return buf.getvalue()


def make_server(tmp_path: Path, files: dict[str, bytes]) -> tuple[ArchiveFileServer, FakeObjectStore]:
    store = FakeObjectStore()
    store.objects["results/abc/result.zip"] = _zip_bytes(files)
    return ArchiveFileServer(cache=ArchiveCache(temp_root=tmp_path, store=store)), store


def _read(entry) -> bytes:
    with entry.stream as s:
        return s.read()


def test_empty_path_serves_index_html(tmp_path: Path):
    server, _ = make_server(tmp_path, {"index.html": b"<html>root</html>"})

    entry = server.serve("abc", "")

    assert entry.name == "index.html"
    assert entry.content_type == "text/html"
    assert entry.last_modified == datetime(2024, 5, 1, 10, 30, 0, tzinfo=timezone.utc)
    assert _read(entry) == b"<html>root</html>"


def test_directory_index_fallback(tmp_path: Path):
    server, _ = make_server(tmp_path, {"sub/index.html": b"sub index", "sub/other.css": b"body{}"})

    assert _read(server.serve("abc", "sub")) == b"sub index"


def test_trailing_separator_gets_no_fallback(tmp_path: Path):
    server, _ = make_server(tmp_path, {"sub/index.html": b"sub index"})

    with pytest.raises(ArchiveNotFoundError):
        server.serve("abc", "sub/")


def test_backslashes_are_normalized(tmp_path: Path):
    server, _ = make_server(tmp_path, {"pages/a/data/file.json": b"{}"})

    entry = server.serve("abc", "pages\\a\\data\\file.json")

    assert entry.content_type == "application/json"
    assert _read(entry) == b"{}"


def test_missing_entry_is_not_found(tmp_path: Path):
    server, _ = make_server(tmp_path, {"index.html": b"x"})

    with pytest.raises(ArchiveNotFoundError):
        server.serve("abc", "nope.html")


def test_missing_archive_is_not_found(tmp_path: Path):
    server = ArchiveFileServer(cache=ArchiveCache(temp_root=tmp_path, store=FakeObjectStore()))

    with pytest.raises(ArchiveNotFoundError):
        server.serve("abc", "")


def test_corrupt_cache_file_is_not_found(tmp_path: Path):
    server, store = make_server(tmp_path, {"index.html": b"x"})
    cached = server.cache.path_for(ResultId("abc"))
    cached.parent.mkdir(parents=True)
    cached.write_bytes(b"this is not a zip archive")

    with pytest.raises(ArchiveNotFoundError):
        server.serve("abc", "")
    assert store.get_calls == []


def test_second_serve_is_a_cache_hit(tmp_path: Path):
    server, store = make_server(tmp_path, {"index.html": b"x"})

    _read(server.serve("abc", ""))
    _read(server.serve("abc", "index.html"))

    assert server.cache.path_for(ResultId("abc")).is_file()
    assert store.get_calls == ["results/abc/result.zip"]


def test_closing_entry_stream_closes_archive(tmp_path: Path):
    server, _ = make_server(tmp_path, {"index.html": b"x"})

    entry = server.serve("abc", "")
    archive = entry.stream._resource
    entry.stream.close()

    assert archive.fp is None


@pytest.mark.parametrize(
    "name, expected",
    [
        ("index.html", "text/html"),
        ("a/b/app.JS", "text/javascript"),
        ("video/1.mp4", "video/mp4"),
        ("shot.png", "image/png"),
        ("data.har", "application/json"),
        ("README", "application/octet-stream"),
        ("archive.unknownext", "application/octet-stream"),
    ],
)
def test_content_type_table(name, expected):
    assert content_type_for(name) == expected


@pytest.mark.parametrize("raw, expected", [("", "index.html"), (None, "index.html"), ("a\\b.html", "a/b.html")])
def test_normalize_path(raw, expected):
    assert normalize_path(raw) == expected
