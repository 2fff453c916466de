from __future__ import annotations

import io
from typing import BinaryIO, Protocol


class Closeable(Protocol):
    def close(self) -> None: ...


class OwnedStream(io.RawIOBase):
    """
    Read-only stream that owns an inner byte stream plus one extra resource.

    Closing closes the inner stream first and the resource second, on every
    path (normal end, consumer abort, garbage collection). Used for archive
    entries (resource = the ZipFile) and S3 bodies (resource = the pooled
    connection).
    """

    def __init__(self, inner: BinaryIO, resource: Closeable):
        super().__init__()
        self._inner = inner
        self._resource = resource

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if self.closed:
            raise ValueError("I/O operation on closed stream.")
        return self._inner.read(size)

    def readinto(self, b) -> int:
        data = self.read(len(b))
        n = len(data)
        b[:n] = data
        return n

    def readall(self) -> bytes:
        return self.read(-1)

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._inner.close()
        finally:
            try:
                self._resource.close()
            finally:
                super().close()
