"""File-backed advisory lock guarding the single active scan."""

from __future__ import annotations

import fcntl
import os
from typing import IO

from jdowser.exceptions import LockContendedError


class ScanLock:
    """Exclusive ``flock`` on a fixed file.

    Every acquisition opens the file anew, so a second ScanLock on the same
    path contends even inside one process. The lock is not reentrant.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._file: IO[bytes] | None = None

    @property
    def held(self) -> bool:
        return self._file is not None

    def try_acquire(self) -> None:
        """Take the lock or raise ``LockContendedError`` without blocking.

        Raises ``OSError`` if the lock file cannot be opened.
        """
        self._lock(fcntl.LOCK_EX | fcntl.LOCK_NB)

    def acquire(self) -> None:
        """Block until the lock is available."""
        self._lock(fcntl.LOCK_EX)

    def release(self) -> None:
        """Drop the lock; a no-op when not held."""
        if self._file is not None:
            f, self._file = self._file, None
            f.close()

    def _lock(self, flags: int) -> None:
        if self._file is not None:
            self.release()
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o600)
        f = os.fdopen(fd, "r+b")
        try:
            fcntl.flock(f.fileno(), flags)
        except BlockingIOError:
            f.close()
            raise LockContendedError(self.path) from None
        except OSError:
            f.close()
            raise
        self._file = f

    def __enter__(self) -> ScanLock:
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
