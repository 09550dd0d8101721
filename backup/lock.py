"""Process-exclusive run lock backed by a pid file."""
from __future__ import annotations

import contextlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import psutil

from .errors import ConfigurationError, ContentionError
from .logs import BackupLogger


@dataclass(slots=True)
class LockHandle:
    path: Path
    pid: int
    released: bool = False


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        proc = psutil.Process(pid)
        return proc.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        # The process exists but belongs to someone else.
        return True


def read_owner(path: Path) -> Optional[int]:
    """Return the pid recorded in the lock file, or ``None`` if absent or unreadable."""

    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _create_exclusive(path: Path, pid: int) -> bool:
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
    except FileExistsError:
        return False
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(f"{pid}\n")
    return True


class LockManager:
    """Acquire and release the run lock at a well-known path."""

    def __init__(self, path: Path, *, logger: Optional[BackupLogger] = None, pid: Optional[int] = None) -> None:
        self._path = Path(path)
        self._logger = logger
        self._pid = pid if pid is not None else os.getpid()

    @property
    def path(self) -> Path:
        return self._path

    def acquire(self) -> LockHandle:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if not _create_exclusive(self._path, self._pid):
                self._reclaim()
        except OSError as exc:
            raise ConfigurationError(f"Cannot create lock file {self._path}: {exc}") from exc
        current = read_owner(self._path)
        if current != self._pid:
            raise ContentionError(f"Lock {self._path} was taken by PID {current} during acquisition")
        return LockHandle(path=self._path, pid=self._pid)

    def _reclaim(self) -> None:
        owner = read_owner(self._path)
        if owner == self._pid:
            return
        if owner is not None and _pid_alive(owner):
            raise ContentionError(f"Another backup appears to be running (PID {owner}). Exiting.")
        if self._logger is not None:
            self._logger.info("Reclaiming stale lock %s (owner %s)", self._path, owner if owner is not None else "unknown")
        # A rival that unlinks between our create and read-back can still slip
        # in; only the exclusive create below is atomic.
        self._path.unlink(missing_ok=True)
        if not _create_exclusive(self._path, self._pid):
            winner = read_owner(self._path)
            raise ContentionError(f"Lock {self._path} was taken by PID {winner} during acquisition")

    def release(self, handle: LockHandle) -> bool:
        """Delete the lock file if *handle* still owns it. Safe to call repeatedly."""

        if handle.released:
            return False
        handle.released = True
        if read_owner(handle.path) != handle.pid:
            return False
        try:
            handle.path.unlink()
        except FileNotFoundError:
            return False
        return True

    @contextlib.contextmanager
    def hold(self) -> Iterator[LockHandle]:
        handle = self.acquire()
        try:
            yield handle
        finally:
            self.release(handle)


__all__ = ["LockHandle", "LockManager", "read_owner"]
