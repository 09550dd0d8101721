from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import List, Optional

__all__ = [
    "expand_path",
    "get_default_destination",
    "get_default_lock_path",
    "get_default_settings_paths",
    "get_log_path",
    "get_notification_path",
]

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_USER_CONFIG_DIR = Path("~/.config/tiered-backup")
_LOCK_FILENAME = "backup.lock"
_NOTIFICATION_FILENAME = "email.txt"


def expand_path(value: str | os.PathLike[str]) -> Path:
    """Expand ``~`` and environment variables, returning an absolute path."""

    expanded = os.path.expandvars(os.path.expanduser(str(value)))
    return Path(expanded).resolve()


def get_default_destination() -> Path:
    return Path.home() / "backups"


def get_default_lock_path() -> Path:
    return Path(tempfile.gettempdir()) / _LOCK_FILENAME


def get_log_path(destination: Path, log_file: str) -> Path:
    """Return the log target; relative names live inside *destination*."""

    candidate = Path(os.path.expanduser(log_file))
    if candidate.is_absolute():
        return candidate
    return destination / candidate


def get_notification_path(destination: Path) -> Path:
    return destination / _NOTIFICATION_FILENAME


def get_default_settings_paths(explicit: Optional[str | os.PathLike[str]] = None) -> List[Path]:
    """Return the search order for configuration files."""

    if explicit:
        return [expand_path(explicit)]
    paths: List[Path] = []
    env_config = os.environ.get("BACKUP_CONFIG")
    if env_config:
        paths.append(expand_path(env_config))
    paths.append(expand_path(_USER_CONFIG_DIR / "settings.json"))
    paths.append(_PROJECT_ROOT / "settings.json")
    paths.append(_PROJECT_ROOT / "backup.config")
    return paths
