"""Resolve and extract a named archive."""
from __future__ import annotations

import tarfile
import zlib
from pathlib import Path
from typing import Dict

from .errors import ArchiveNotFoundError, RestoreError, RestoreTargetError
from .logs import BackupLogger


def resolve_archive(archive_ref: str | Path, destination: Path) -> Path:
    """Look up *archive_ref* as a path first, then as a name inside *destination*."""

    direct = Path(archive_ref).expanduser()
    if direct.is_file():
        return direct.resolve()
    in_destination = destination / str(archive_ref)
    if in_destination.is_file():
        return in_destination.resolve()
    raise ArchiveNotFoundError(f"Restore file not found: {archive_ref}")


def _extract_all(tar: tarfile.TarFile, target: Path) -> None:
    if hasattr(tarfile, "data_filter"):
        tar.extractall(target, filter="data")
    else:  # pragma: no cover - interpreters without extraction filters
        tar.extractall(target)


def restore_backup(
    archive_ref: str | Path,
    target_dir: Path,
    *,
    destination: Path,
    logger: BackupLogger,
    dry_run: bool = False,
) -> Dict[str, object]:
    archive = resolve_archive(archive_ref, destination)
    target = Path(target_dir).expanduser()
    if dry_run:
        logger.info("DRY RUN: Would restore %s to %s", archive, target)
        return {"archive": archive, "target": target, "dry_run": True}

    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RestoreTargetError(f"Cannot create restore directory {target}: {exc}") from exc

    logger.info("Restoring %s to %s", archive, target)
    # Files extracted before a failure are left in place.
    try:
        with tarfile.open(archive, "r:*") as tar:
            _extract_all(tar, target)
    except (tarfile.TarError, OSError, EOFError, zlib.error) as exc:
        raise RestoreError(f"Restore failed for {archive}: {exc}") from exc

    logger.success("Restored %s to %s", archive, target)
    return {"archive": archive, "target": target, "dry_run": False}


__all__ = ["resolve_archive", "restore_backup"]
