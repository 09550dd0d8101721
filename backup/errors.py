"""Error hierarchy for backup operations."""
from __future__ import annotations

import logging

from core.logging_utils import FAILED


class BackupError(RuntimeError):
    """Base exception for backup related failures."""

    log_level = logging.ERROR


class ConfigurationError(BackupError):
    """Raised when the destination, source, or settings are unusable."""


class ContentionError(BackupError):
    """Raised when the lock is held by a live process. Never retried."""


class SpaceError(BackupError):
    """Raised when the destination cannot hold the estimated archive."""


class ArchiverError(BackupError):
    """Raised when the archive could not be written."""


class ChecksumToolError(BackupError):
    """Raised when no digest algorithm is available."""


class IntegrityError(BackupError):
    """Raised when a recomputed digest does not match the sidecar."""

    log_level = FAILED


class CorruptArchiveError(BackupError):
    """Raised when listing or extracting a test entry fails."""

    log_level = FAILED


class RestoreError(BackupError):
    """Raised when restoring an archive fails."""


class ArchiveNotFoundError(RestoreError):
    """Raised when a restore reference resolves to no archive."""


class RestoreTargetError(RestoreError):
    """Raised when the restore directory cannot be created."""


class DeletionError(BackupError):
    """Raised when retention cannot remove an old archive."""


class BackupInterrupted(BaseException):
    """Raised from a signal handler to unwind a run on external cancellation."""

    def __init__(self, signum: int | None = None) -> None:
        super().__init__(signum)
        self.signum = signum


__all__ = [
    "ArchiveNotFoundError",
    "ArchiverError",
    "BackupError",
    "BackupInterrupted",
    "ChecksumToolError",
    "ConfigurationError",
    "ContentionError",
    "CorruptArchiveError",
    "DeletionError",
    "IntegrityError",
    "RestoreError",
    "RestoreTargetError",
    "SpaceError",
]
