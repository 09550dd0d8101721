"""Common dataclasses shared across backup modules."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional


class BackupState(str, enum.Enum):
    INIT = "init"
    LOCK_ACQUIRED = "lock_acquired"
    ARCHIVED = "archived"
    CHECKSUMMED = "checksummed"
    VERIFIED = "verified"
    RETAINED = "retained"
    DONE = "done"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


class RestoreState(str, enum.Enum):
    INIT = "init"
    LOCK_ACQUIRED = "lock_acquired"
    RESTORED = "restored"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


@dataclass(slots=True)
class BackupRecord:
    """Archive on disk, identified by its filename."""

    name: str
    path: Path
    created: datetime
    sidecar: Optional[Path] = None

    @property
    def date_part(self) -> str:
        return self.created.strftime("%Y-%m-%d-%H%M")


@dataclass(slots=True)
class BackupSummary:
    name: str
    date_part: str
    size_bytes: int
    checksum: str
    path: Path


@dataclass(slots=True)
class RetentionDecision:
    record: BackupRecord
    keep: bool
    bucket: Optional[str]
    day: str
    week: str
    month: str


@dataclass(slots=True)
class RetentionSummary:
    kept: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    freed_bytes: int = 0
    dry_run: bool = False


@dataclass(slots=True)
class BackupRunResult:
    archive_path: Path
    sidecar_path: Optional[Path]
    dry_run: bool
    states: List[BackupState]
    retention: Optional[RetentionSummary] = None


@dataclass(slots=True)
class RestoreResult:
    archive_path: Path
    target_dir: Path
    dry_run: bool
    states: List[RestoreState]


__all__ = [
    "BackupRecord",
    "BackupRunResult",
    "BackupState",
    "BackupSummary",
    "RestoreResult",
    "RestoreState",
    "RetentionDecision",
    "RetentionSummary",
]
