"""Best-effort capacity probes used before writing an archive."""
from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from .errors import SpaceError

MIB = 1024 * 1024


class SpaceProbe(Protocol):
    name: str

    def available(self) -> bool: ...

    def available_space(self, path: Path) -> Optional[int]: ...


class DiskUsageProbe:
    name = "disk_usage"

    def available(self) -> bool:
        return hasattr(shutil, "disk_usage")

    def available_space(self, path: Path) -> Optional[int]:
        try:
            return int(shutil.disk_usage(path).free)
        except OSError:
            return None


class StatvfsProbe:
    name = "statvfs"

    def available(self) -> bool:
        return hasattr(os, "statvfs")

    def available_space(self, path: Path) -> Optional[int]:
        try:
            stats = os.statvfs(path)
        except OSError:
            return None
        return int(stats.f_bavail * stats.f_frsize)


class NullProbe:
    """Fallback that never knows; the capacity check is then skipped."""

    name = "none"

    def available(self) -> bool:
        return True

    def available_space(self, path: Path) -> Optional[int]:
        return None


DEFAULT_SPACE_PROBES: Sequence[Callable[[], SpaceProbe]] = (DiskUsageProbe, StatvfsProbe)


def select_space_probe(candidates: Sequence[Callable[[], SpaceProbe]] = DEFAULT_SPACE_PROBES) -> SpaceProbe:
    for factory in candidates:
        probe = factory()
        if probe.available():
            return probe
    return NullProbe()


def source_size(path: Path) -> Optional[int]:
    """Sum regular file sizes under *path* without following symlinks."""

    path = Path(path)
    try:
        root_stat = path.lstat()
    except OSError:
        return None
    if not path.is_dir() or path.is_symlink():
        return int(root_stat.st_size)
    total = 0
    errors: List[OSError] = []
    for dirpath, _dirnames, filenames in os.walk(path, onerror=errors.append):
        for filename in filenames:
            try:
                total += os.lstat(os.path.join(dirpath, filename)).st_size
            except OSError:
                continue
    if errors and errors[0].filename == str(path):
        return None
    return total


def required_space(size: int) -> int:
    """Estimated bytes needed for an archive of *size* source bytes: +10% and 1 MiB."""

    return size + size // 10 + MIB


def check_capacity(source: Path, destination: Path, probe: SpaceProbe) -> Optional[int]:
    """Raise :class:`SpaceError` if the destination is too small.

    Returns the required byte count, or ``None`` when either figure is unknown
    and the check was skipped.
    """

    size = source_size(source)
    free = probe.available_space(destination)
    if size is None or free is None:
        return None
    required = required_space(size)
    if free < required:
        raise SpaceError(
            f"Not enough disk space for backup. Required approx {required} bytes, available {free} bytes"
        )
    return required


__all__ = [
    "DEFAULT_SPACE_PROBES",
    "DiskUsageProbe",
    "MIB",
    "NullProbe",
    "SpaceProbe",
    "StatvfsProbe",
    "check_capacity",
    "required_space",
    "select_space_probe",
    "source_size",
]
