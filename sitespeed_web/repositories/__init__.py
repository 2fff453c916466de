from .archive_cache import ArchiveCache
from .run_workspace import RunWorkspace

__all__ = ["ArchiveCache", "RunWorkspace"]
