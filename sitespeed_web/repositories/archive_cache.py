from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from sitespeed_web.domain.errors import ArchiveNotFoundError, ObjectNotFoundError
from sitespeed_web.domain.models import ResultId

logger = logging.getLogger(__name__)

CACHE_SUBDIR = "sitespeed-cache"


class ArchiveSource(Protocol):
    def download(self, key: str, destination: Path) -> None: ...


@dataclass
class ArchiveCache:
    """
    Pull-through cache of result archives at `<temp_root>/sitespeed-cache/<id>.zip`.

    A present file is trusted as-is; only `invalidate` makes the next
    `acquire` go back to durable storage. Concurrent misses for one id may
    both download; the rename in `download` makes the last one win whole.
    """
    temp_root: Path
    store: ArchiveSource

    @property
    def cache_dir(self) -> Path:
        return self.temp_root / CACHE_SUBDIR

    def path_for(self, result_id: ResultId) -> Path:
        rid = ResultId.parse(result_id)
        return self.cache_dir / f"{rid.value}.zip"

    def acquire(self, result_id: ResultId) -> Path:
        rid = ResultId.parse(result_id)
        path = self.path_for(rid)
        if path.is_file():
            return path

        logger.info("Cache miss for %s, pulling %s", rid, rid.archive_key)
        try:
            self.store.download(rid.archive_key, path)
        except ObjectNotFoundError as e:
            raise ArchiveNotFoundError(f"No archive for {rid}") from e
        return path

    def invalidate(self, result_id: ResultId) -> bool:
        path = self.path_for(result_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Invalidated cached archive %s", path)
        return True
