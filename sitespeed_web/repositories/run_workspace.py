from __future__ import annotations

import os
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sitespeed_web.domain.models import ResultId

WORK_SUBDIR = "sitespeed"
BROWSERTIME_SUMMARY = Path("data") / "browsertime.summary-total.json"
PAGEXRAY_SUMMARY = Path("data") / "pagexray.summary-total.json"
SCREENSHOT_NAME = Path("data") / "screenshots" / "1" / "afterPageCompleteCheck.png"


@dataclass
class RunWorkspace:
    """
    Repository pattern: encapsulates the local layout of one run's output
    (`<temp_root>/sitespeed/<id>`) and its packaged archive (`<temp_root>/sitespeed/<id>.zip`).
    """
    temp_root: Path

    def work_dir(self, result_id: ResultId) -> Path:
        rid = ResultId.parse(result_id)
        return self.temp_root / WORK_SUBDIR / rid.value

    def package_path(self, result_id: ResultId) -> Path:
        rid = ResultId.parse(result_id)
        return self.temp_root / WORK_SUBDIR / f"{rid.value}.zip"

    def prepare(self, result_id: ResultId) -> Path:
        """Delete-if-exists then create, so no earlier run's files leak in."""
        d = self.work_dir(result_id)
        if d.exists():
            shutil.rmtree(d)
        d.mkdir(parents=True)
        return d

    def cleanup(self, result_id: ResultId) -> None:
        shutil.rmtree(self.work_dir(result_id), ignore_errors=True)
        self.package_path(result_id).unlink(missing_ok=True)

    @staticmethod
    def first_page_dir(work_dir: Path) -> Optional[Path]:
        pages = work_dir / "pages"
        if not pages.is_dir():
            return None
        candidates = sorted(p for p in pages.iterdir() if p.is_dir())
        return candidates[0] if candidates else None

    @staticmethod
    def browsertime_summary(work_dir: Path) -> Path:
        return work_dir / BROWSERTIME_SUMMARY

    @staticmethod
    def pagexray_summary(work_dir: Path) -> Path:
        return work_dir / PAGEXRAY_SUMMARY

    @staticmethod
    def screenshot_path(page_dir: Path) -> Path:
        return page_dir / SCREENSHOT_NAME

    def package(self, result_id: ResultId) -> Path:
        """Zip the full work dir tree. Entry names are relative, forward-slash separated."""
        source = self.work_dir(result_id)
        target = self.package_path(result_id)
        target.unlink(missing_ok=True)

        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for root, dirs, files in os.walk(source):
                dirs.sort()
                root_path = Path(root)
                for name in dirs:
                    d = root_path / name
                    zf.write(d, d.relative_to(source).as_posix() + "/")
                for name in sorted(files):
                    f = root_path / name
                    zf.write(f, f.relative_to(source).as_posix())
        return target
