"""Advisory file lock guarding writes to the tracker document.

The lock is a sentinel file created with exclusive-create mode, which is
atomic on POSIX and Windows alike.  A lock file older than ``stale_after``
seconds is assumed to belong to a crashed process and is removed.

Classes
-------
FileLock
    Exclusive sentinel-file lock usable as a context manager.
"""
from __future__ import annotations

import time
from pathlib import Path
from typing import IO

_POLL_INTERVAL_SECONDS: float = 0.05


class FileLock:
    """Sentinel-file advisory lock.

    Parameters
    ----------
    lock_path:
        Path of the sentinel file.  Created on acquisition, removed on
        release.
    timeout:
        Seconds to wait before raising :class:`TimeoutError`.
    stale_after:
        Age in seconds after which an existing sentinel is considered
        abandoned and broken.  ``None`` disables stale-lock recovery.
    """

    def __init__(
        self,
        lock_path: str | Path,
        timeout: float = 10.0,
        stale_after: float | None = 60.0,
    ) -> None:
        self._lock_path: Path = Path(lock_path)
        self._timeout: float = timeout
        self._stale_after: float | None = stale_after
        self._handle: IO[str] | None = None

    @property
    def path(self) -> Path:
        return self._lock_path

    @property
    def is_held(self) -> bool:
        return self._handle is not None

    def _break_if_stale(self) -> None:
        if self._stale_after is None:
            return
        try:
            age = time.time() - self._lock_path.stat().st_mtime
        except FileNotFoundError:
            return
        if age > self._stale_after:
            self._lock_path.unlink(missing_ok=True)

    def acquire(self) -> None:
        """Block until the sentinel is created or the timeout expires.

        Raises
        ------
        TimeoutError
            If another holder keeps the lock for longer than ``timeout``.
        """
        deadline = time.monotonic() + self._timeout
        while True:
            try:
                self._handle = open(self._lock_path, "x", encoding="utf-8")  # noqa: SIM115
                return
            except FileExistsError:
                self._break_if_stale()
                if time.monotonic() >= deadline:
                    raise TimeoutError(
                        f"Could not acquire lock {self._lock_path} within {self._timeout}s"
                    ) from None
                time.sleep(_POLL_INTERVAL_SECONDS)

    def release(self) -> None:
        """Close and remove the sentinel.  Safe to call when not held."""
        if self._handle is None:
            return
        self._handle.close()
        self._handle = None
        self._lock_path.unlink(missing_ok=True)

    def __enter__(self) -> FileLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.release()
