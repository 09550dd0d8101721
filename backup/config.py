"""Resolved, immutable configuration for a backup run."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Tuple

from core.paths import (
    expand_path,
    get_default_destination,
    get_default_lock_path,
    get_log_path,
    get_notification_path,
)

from .errors import ConfigurationError
from .retention import RetentionPolicy


def split_patterns(raw: object) -> Tuple[str, ...]:
    """Split a comma separated string (or sequence) into trimmed, non-empty patterns."""

    if raw is None:
        return ()
    if isinstance(raw, str):
        items: Sequence[object] = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = raw
    else:
        raise ConfigurationError(f"exclude_patterns must be a string or list, got {type(raw).__name__}")
    patterns = []
    for item in items:
        text = str(item).strip()
        if text:
            patterns.append(text)
    return tuple(patterns)


def _keep_count(section: Mapping[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if value is None or value == "":
        return default
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"retention.{key} must be an integer, got {value!r}") from None
    return max(0, count)


@dataclass(frozen=True, slots=True)
class BackupConfig:
    destination: Path
    exclude_patterns: Tuple[str, ...]
    retention: RetentionPolicy
    checksum_algo: str = "sha256"
    notify_email: Optional[str] = None
    log_file: str = "backup.log"
    lock_path: Path = get_default_lock_path()

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "BackupConfig":
        raw_destination = settings.get("destination")
        if raw_destination:
            destination = expand_path(str(raw_destination))
        else:
            destination = get_default_destination()

        retention_raw = settings.get("retention")
        if not isinstance(retention_raw, Mapping):
            retention_raw = {}
        policy = RetentionPolicy(
            daily_keep=_keep_count(retention_raw, "daily_keep", 7),
            weekly_keep=_keep_count(retention_raw, "weekly_keep", 4),
            monthly_keep=_keep_count(retention_raw, "monthly_keep", 3),
        )

        algo = str(settings.get("checksum_algo") or "sha256").strip().lower()
        notify = str(settings.get("notify_email") or "").strip() or None
        log_file = str(settings.get("log_file") or "backup.log").strip() or "backup.log"
        raw_lock = settings.get("lock_path")
        lock_path = expand_path(str(raw_lock)) if raw_lock else get_default_lock_path()

        return cls(
            destination=destination,
            exclude_patterns=split_patterns(settings.get("exclude_patterns")),
            retention=policy,
            checksum_algo=algo,
            notify_email=notify,
            log_file=log_file,
            lock_path=lock_path,
        )

    @property
    def log_path(self) -> Path:
        return get_log_path(self.destination, self.log_file)

    @property
    def notification_path(self) -> Path:
        return get_notification_path(self.destination)


__all__ = ["BackupConfig", "split_patterns"]
