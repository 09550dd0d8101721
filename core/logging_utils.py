from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

SUCCESS = 25
FAILED = 45

logging.addLevelName(SUCCESS, "SUCCESS")
logging.addLevelName(FAILED, "FAILED")

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class BackupLogFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(LOG_FORMAT, LOG_DATEFMT)


def _has_file_handler(logger: logging.Logger, log_path: Path) -> bool:
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and getattr(handler, "baseFilename", None) == str(log_path):
            return True
    return False


def configure_backup_logging(
    log_path: Optional[Path],
    name: str = "backup",
    *,
    echo: bool = True,
) -> logging.Logger:
    """Attach the file and stdout handlers to *name* once, returning the logger."""

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    handlers: List[logging.Handler] = []
    if log_path is not None:
        log_path = Path(log_path).resolve()
        # One log target per process; a new target replaces the previous one.
        for handler in list(logger.handlers):
            if isinstance(handler, logging.FileHandler) and handler.baseFilename != str(log_path):
                logger.removeHandler(handler)
                handler.close()
        if not _has_file_handler(logger, log_path):
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    if echo and not any(getattr(handler, "_backup_echo", False) for handler in logger.handlers):
        stream = logging.StreamHandler(sys.stdout)
        stream._backup_echo = True  # type: ignore[attr-defined]
        handlers.append(stream)
    for handler in handlers:
        handler.setFormatter(BackupLogFormatter())
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def close_backup_logging(name: str = "backup") -> None:
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


__all__ = [
    "BackupLogFormatter",
    "FAILED",
    "LOG_DATEFMT",
    "LOG_FORMAT",
    "SUCCESS",
    "close_backup_logging",
    "configure_backup_logging",
]
