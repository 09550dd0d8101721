from __future__ import annotations

import json
import os
import shlex
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .settings_schema import SETTINGS_VALIDATOR

from .paths import get_default_settings_paths

__all__ = [
    "DEFAULT_SETTINGS",
    "LEGACY_KEYS",
    "SETTINGS_VERSION",
    "SettingsFileError",
    "load_settings",
    "merge_defaults",
    "parse_legacy_config",
    "unknown_settings_keys",
]

SETTINGS_VERSION = 1


class SettingsFileError(ValueError):
    """Raised when an explicitly requested settings file cannot be read."""


DEFAULT_SETTINGS: Dict[str, Any] = {
    "version": SETTINGS_VERSION,
    "destination": None,
    "exclude_patterns": ".git,node_modules,.cache",
    "retention": {
        "daily_keep": 7,
        "weekly_keep": 4,
        "monthly_keep": 3,
    },
    "checksum_algo": "sha256",
    "notify_email": "",
    "log_file": "backup.log",
    "lock_path": None,
}

# Shell-style names accepted from the environment and from ``backup.config``.
LEGACY_KEYS: Dict[str, Tuple[str, ...]] = {
    "BACKUP_DESTINATION": ("destination",),
    "EXCLUDE_PATTERNS": ("exclude_patterns",),
    "DAILY_KEEP": ("retention", "daily_keep"),
    "WEEKLY_KEEP": ("retention", "weekly_keep"),
    "MONTHLY_KEEP": ("retention", "monthly_keep"),
    "CHECKSUM_ALGO": ("checksum_algo",),
    "NOTIFY_EMAIL": ("notify_email",),
    "LOG_FILE": ("log_file",),
    "BACKUP_LOCK_FILE": ("lock_path",),
}


def merge_defaults(data: Dict[str, Any]) -> Dict[str, Any]:
    def _merge(default: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in default.items():
            if isinstance(value, dict):
                current = payload.get(key)
                if isinstance(current, dict):
                    result[key] = _merge(value, current)
                else:
                    result[key] = _merge(value, {})
            elif isinstance(value, list):
                current = payload.get(key)
                result[key] = list(current) if isinstance(current, list) else list(value)
            else:
                result[key] = payload.get(key, value)
        for key, value in payload.items():
            if key not in result:
                result[key] = value
        return result

    return _merge(DEFAULT_SETTINGS, data or {})


def _assign(target: Dict[str, Any], path: Tuple[str, ...], value: Any) -> None:
    node = target
    for key in path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[path[-1]] = value


def _from_legacy(pairs: Mapping[str, str]) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for name, value in pairs.items():
        path = LEGACY_KEYS.get(name)
        if path is None:
            data[name] = value
            continue
        _assign(data, path, value)
    return data


def parse_legacy_config(text: str) -> Dict[str, Any]:
    """Parse ``KEY=value`` lines as written for the original shell tool."""

    pairs: Dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()
        name, sep, value = line.partition("=")
        if not sep:
            continue
        name = name.strip()
        try:
            tokens = shlex.split(value, comments=True)
        except ValueError:
            tokens = [value.strip()]
        pairs[name] = " ".join(tokens)
    return _from_legacy(pairs)


def _environment_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    return _from_legacy({name: environ[name] for name in LEGACY_KEYS if name in environ})


def _deep_update(base: Dict[str, Any], payload: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in payload.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def _read_settings_file(path: Path) -> Optional[Dict[str, Any]]:
    if path.suffix.lower() == ".json":
        with open(path, "r", encoding="utf-8") as handle:
            loaded = json.load(handle)
        return loaded if isinstance(loaded, dict) else None
    return parse_legacy_config(path.read_text(encoding="utf-8"))


def load_settings(
    config_path: Optional[str | os.PathLike[str]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Return merged settings: defaults, then environment, then the config file.

    An explicit *config_path* must exist and parse; discovered candidates that
    are missing or malformed are skipped.
    """

    env = os.environ if environ is None else environ
    data: Dict[str, Any] = {}
    source: Optional[Path] = None
    for candidate in get_default_settings_paths(config_path):
        try:
            loaded = _read_settings_file(candidate)
        except FileNotFoundError:
            if config_path:
                raise SettingsFileError(f"Config file not found: {candidate}") from None
            continue
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            if config_path:
                raise SettingsFileError(f"Cannot read config file {candidate}: {exc}") from exc
            continue
        if isinstance(loaded, dict):
            data = loaded
            source = candidate
            break
    merged = merge_defaults({})
    _deep_update(merged, _environment_overrides(env))
    _deep_update(merged, data)
    if source is not None:
        merged["config_path"] = str(source)
    return merged


def unknown_settings_keys(settings: Mapping[str, Any]) -> List[str]:
    payload = {key: value for key, value in settings.items() if key != "config_path"}
    return list(SETTINGS_VALIDATOR.unknown_keys(payload))
