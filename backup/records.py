"""Archive naming and discovery inside the destination directory."""
from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .types import BackupRecord, BackupSummary

ARCHIVE_PREFIX = "backup-"
ARCHIVE_EXTENSION = "tar.gz"
SIDECAR_EXTENSIONS = ("sha256", "sha512", "sha384", "sha224", "sha1", "md5")

_ARCHIVE_PATTERN = re.compile(r"^backup-(\d{4}-\d{2}-\d{2}-\d{4})\.tar\.gz$")
_TIMESTAMP_FORMAT = "%Y-%m-%d-%H%M"


def archive_name(moment: datetime) -> str:
    return f"{ARCHIVE_PREFIX}{moment.strftime(_TIMESTAMP_FORMAT)}.{ARCHIVE_EXTENSION}"


def parse_archive_name(name: str) -> Optional[datetime]:
    """Return the timestamp embedded in *name*, or ``None`` if it is not an archive name."""

    match = _ARCHIVE_PATTERN.match(name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), _TIMESTAMP_FORMAT)
    except ValueError:
        return None


def sidecar_path(archive: Path, algorithm: str) -> Path:
    return archive.with_name(f"{archive.name}.{algorithm}")


def find_sidecar(archive: Path) -> Optional[Path]:
    for extension in SIDECAR_EXTENSIONS:
        candidate = sidecar_path(archive, extension)
        if candidate.is_file():
            return candidate
    return None


def scan_backups(destination: Path) -> List[BackupRecord]:
    """Read the destination afresh and return its archives, newest first."""

    records: List[BackupRecord] = []
    if not destination.is_dir():
        return records
    for child in destination.iterdir():
        created = parse_archive_name(child.name)
        if created is None or not child.is_file():
            continue
        records.append(BackupRecord(name=child.name, path=child, created=created, sidecar=find_sidecar(child)))
    records.sort(key=lambda record: (record.created, record.name), reverse=True)
    return records


def _stored_digest(sidecar: Optional[Path]) -> str:
    if sidecar is None:
        return ""
    try:
        text = sidecar.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return ""
    fields = text.split(" ", 1)
    return fields[0].strip() if fields else ""


def list_backups(destination: Path) -> List[BackupSummary]:
    summaries: List[BackupSummary] = []
    for record in scan_backups(destination):
        try:
            size = record.path.stat().st_size
        except OSError:
            size = 0
        summaries.append(
            BackupSummary(
                name=record.name,
                date_part=record.date_part,
                size_bytes=int(size),
                checksum=_stored_digest(record.sidecar),
                path=record.path,
            )
        )
    return summaries


def format_listing(destination: Path, summaries: List[BackupSummary]) -> str:
    lines = [f"Available backups in {destination}:"]
    lines.append(f"{'FILENAME':<30} {'DATE':<15} {'SIZE':<10} CHECKSUM")
    for summary in summaries:
        lines.append(f"{summary.name:<30} {summary.date_part:<15} {summary.size_bytes:<10} {summary.checksum}")
    return "\n".join(lines)


__all__ = [
    "ARCHIVE_EXTENSION",
    "ARCHIVE_PREFIX",
    "SIDECAR_EXTENSIONS",
    "archive_name",
    "find_sidecar",
    "format_listing",
    "list_backups",
    "parse_archive_name",
    "scan_backups",
    "sidecar_path",
]
