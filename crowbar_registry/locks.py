"""Named, cross-process locks.

Role saves must be serialized between processes, not only threads, so the
lock lives in the filesystem: one lock file per name under a shared lock
directory, held with ``flock``. The kernel drops the lock if the holder dies.

Acquisition polls until ``timeout`` seconds have passed and then raises
:class:`~crowbar_registry.errors.LockTimeoutError`. A timeout of ``None``
waits forever.
"""

from __future__ import annotations

import fcntl
import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Protocol
from urllib.parse import quote

from crowbar_registry.errors import LockError, LockTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class LockHandle:
    """A held lock. Only the service that issued it can release it."""

    name: str
    path: Path
    fd: int
    acquired_at: float


class NamedLockService(Protocol):
    def acquire(self, name: str) -> LockHandle: ...

    def release(self, handle: LockHandle) -> None: ...


class FileLockService:
    """``flock``-based :class:`NamedLockService`."""

    def __init__(
        self,
        lock_dir: str | Path,
        timeout: Optional[float] = 60.0,
        poll_interval: float = 0.05,
    ) -> None:
        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout
        self.poll_interval = poll_interval

    def _lock_path(self, name: str) -> Path:
        return self.lock_dir / f"{quote(name, safe='')}.lock"

    def acquire(self, name: str) -> LockHandle:
        """Block until the lock ``name`` is held by this caller."""
        path = self._lock_path(name)
        try:
            fd = os.open(path, os.O_CREAT | os.O_RDWR, 0o644)
        except OSError as e:
            raise LockError(f"Cannot open lock file {path}: {e}", {"name": name}) from e

        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if deadline is not None and time.monotonic() >= deadline:
                    os.close(fd)
                    raise LockTimeoutError(name, self.timeout) from None
                time.sleep(self.poll_interval)
            except OSError as e:
                os.close(fd)
                raise LockError(f"Cannot lock {path}: {e}", {"name": name}) from e

        logger.debug("Acquired lock %s", name)
        return LockHandle(name=name, path=path, fd=fd, acquired_at=time.monotonic())

    def release(self, handle: LockHandle) -> None:
        """Release a lock obtained from :meth:`acquire`."""
        try:
            fcntl.flock(handle.fd, fcntl.LOCK_UN)
        finally:
            os.close(handle.fd)
        held = time.monotonic() - handle.acquired_at
        logger.debug("Released lock %s after %.3fs", handle.name, held)


@contextmanager
def hold(service: NamedLockService, name: str) -> Iterator[LockHandle]:
    """Hold ``name`` for the duration of a ``with`` block, releasing on any exit."""
    handle = service.acquire(name)
    try:
        yield handle
    finally:
        service.release(handle)
