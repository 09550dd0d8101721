"""Create compressed snapshots of a source tree."""
from __future__ import annotations

import fnmatch
import os
import shlex
import tarfile
import zlib
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .errors import ArchiverError, ConfigurationError
from .logs import BackupLogger
from .probe import SpaceProbe, check_capacity
from .records import archive_name


def is_excluded(arcname: str, patterns: Sequence[str]) -> bool:
    """Unanchored tar-style exclusion: match any contiguous run of path components.

    A pattern naming a directory therefore excludes every entry below it.
    """

    parts = [part for part in arcname.split("/") if part]
    for start in range(len(parts)):
        for end in range(start + 1, len(parts) + 1):
            candidate = "/".join(parts[start:end])
            for pattern in patterns:
                if fnmatch.fnmatchcase(candidate, pattern):
                    return True
    return False


def describe_command(archive: Path, source: Path, patterns: Sequence[str]) -> str:
    """Return the equivalent ``tar`` command line for log output."""

    args: List[str] = ["tar", "-czf", str(archive)]
    args.extend(f"--exclude={pattern}" for pattern in patterns)
    args.extend(["-C", str(source.parent), source.name])
    return " ".join(shlex.quote(arg) for arg in args)


def validate_source(source: Path) -> Path:
    if not source.exists():
        raise ConfigurationError(f"Source folder not found: {source}")
    if not os.access(source, os.R_OK):
        raise ConfigurationError(f"Cannot read folder, permission denied: {source}")
    return source.resolve()


class ArchiveCreator:
    """Build ``backup-<date>-<HHMM>.tar.gz`` archives in the destination."""

    def __init__(
        self,
        destination: Path,
        *,
        logger: BackupLogger,
        probe: SpaceProbe,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._destination = Path(destination)
        self._logger = logger
        self._probe = probe
        self._clock = clock

    def target_path(self) -> Path:
        # Minute resolution: a second run in the same minute overwrites the first.
        return self._destination / archive_name(self._clock())

    def create(self, source: Path, exclude_patterns: Sequence[str], *, dry_run: bool = False) -> Path:
        source = validate_source(Path(source))
        patterns = [pattern.strip() for pattern in exclude_patterns if pattern and pattern.strip()]
        archive = self.target_path()
        check_capacity(source, self._destination, self._probe)

        if dry_run:
            self._logger.info("DRY RUN: Would start backup of %s to %s", source, archive)
            self._logger.info("DRY RUN: Would run: %s", describe_command(archive, source, patterns))
            return archive

        self._logger.info("Starting backup of %s", source)

        def _filter(info: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
            if is_excluded(info.name, patterns):
                return None
            return info

        try:
            with tarfile.open(archive, "w:gz") as tar:
                tar.add(source, arcname=source.name, filter=_filter)
        except (tarfile.TarError, OSError, zlib.error) as exc:
            raise ArchiverError(f"Failed to create archive {archive}: {exc}") from exc

        self._logger.success("Backup created: %s", archive.name)
        return archive


__all__ = ["ArchiveCreator", "describe_command", "is_excluded", "validate_source"]
