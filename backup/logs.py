"""Log line helpers for backup operations."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from core.logging_utils import FAILED, SUCCESS, configure_backup_logging

LOGGER = logging.getLogger("backup")


class BackupLogger:
    """Write ``[ts] LEVEL: message`` lines to the log target and stdout."""

    def __init__(self, log_path: Optional[Path] = None, *, echo: bool = True) -> None:
        self._log_path = Path(log_path) if log_path is not None else None
        self._logger = configure_backup_logging(self._log_path, echo=echo)

    @property
    def log_path(self) -> Optional[Path]:
        return self._log_path

    # ------------------------------------------------------------------
    def log(self, level: int, message: str, *args: Any) -> None:
        self._logger.log(level, message, *args)

    def info(self, message: str, *args: Any) -> None:
        self._logger.log(logging.INFO, message, *args)

    def success(self, message: str, *args: Any) -> None:
        self._logger.log(SUCCESS, message, *args)

    def warning(self, message: str, *args: Any) -> None:
        self._logger.log(logging.WARNING, message, *args)

    def error(self, message: str, *args: Any) -> None:
        self._logger.log(logging.ERROR, message, *args)

    def failed(self, message: str, *args: Any) -> None:
        self._logger.log(FAILED, message, *args)


__all__ = ["BackupLogger"]
