from __future__ import annotations

import os
import shutil
import time
from pathlib import Path

from sitespeed_web.services.temp_reaper import CHROMIUM_TEMP_PREFIX, StaleArtifactReaper


def _make_dir(base: Path, name: str, mtime: float) -> Path:
    d = base / name
    d.mkdir(parents=True, exist_ok=True)
    (d / "SingletonLock").write_text("x", encoding="utf-8")
    os.utime(d, (mtime, mtime))
    return d


def test_sweep_removes_only_old_chromium_dirs(tmp_path: Path):
    now = time.time()
    old = _make_dir(tmp_path, CHROMIUM_TEMP_PREFIX + "abc123", now - 600)
    fresh = _make_dir(tmp_path, CHROMIUM_TEMP_PREFIX + "def456", now - 60)
    unrelated = _make_dir(tmp_path, "sitespeed", now - 6000)
    stray_file = tmp_path / (CHROMIUM_TEMP_PREFIX + "file")
    stray_file.write_text("x", encoding="utf-8")
    os.utime(stray_file, (now - 6000, now - 6000))

    removed = StaleArtifactReaper(tmp_path, max_age_seconds=300).sweep(now=now)

    assert removed == [old]
    assert not old.exists()
    assert fresh.exists()
    assert unrelated.exists()
    assert stray_file.exists()


def test_sweep_skips_failures_and_continues(tmp_path: Path, monkeypatch):
    now = time.time()
    first = _make_dir(tmp_path, CHROMIUM_TEMP_PREFIX + "a", now - 600)
    second = _make_dir(tmp_path, CHROMIUM_TEMP_PREFIX + "b", now - 600)

    real_rmtree = shutil.rmtree

    def flaky_rmtree(path, *args, **kwargs):
        if Path(path) == first:
            raise PermissionError("busy")
        return real_rmtree(path, *args, **kwargs)

    monkeypatch.setattr(shutil, "rmtree", flaky_rmtree)

    removed = StaleArtifactReaper(tmp_path, max_age_seconds=300).sweep(now=now)

    assert removed == [second]
    assert first.exists()


def test_sweep_on_missing_temp_root_returns_empty(tmp_path: Path):
    assert StaleArtifactReaper(tmp_path / "missing").sweep() == []


def test_start_sweeps_immediately_and_stop_joins(tmp_path: Path):
    old = _make_dir(tmp_path, CHROMIUM_TEMP_PREFIX + "old", time.time() - 3600)
    reaper = StaleArtifactReaper(tmp_path, interval_seconds=3600, max_age_seconds=300)

    reaper.start()
    deadline = time.time() + 5
    while old.exists() and time.time() < deadline:
        time.sleep(0.01)
    reaper.stop()

    assert not old.exists()
    assert reaper._thread is None
