"""Scheduled, verified directory backups with tiered retention."""
from __future__ import annotations

from .api import BackupService
from .config import BackupConfig
from .errors import BackupError, BackupInterrupted
from .retention import RetentionPolicy
from .types import BackupRunResult, BackupSummary, RestoreResult, RetentionSummary

__version__ = "1.0.0"

__all__ = [
    "BackupConfig",
    "BackupError",
    "BackupInterrupted",
    "BackupRunResult",
    "BackupService",
    "BackupSummary",
    "RestoreResult",
    "RetentionPolicy",
    "RetentionSummary",
]
